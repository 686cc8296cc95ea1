"""Upgrading the packages recorded by the last scan."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from revise_deps.errors import EmptyState, UpdateFailure
from revise_deps.npm import NpmClient
from revise_deps.state import StateStore

logger = logging.getLogger(__name__)


@dataclass
class PackageUpdate:
    """Outcome of upgrading one package."""

    package: str
    status: str  # updated, failed, dry-run
    command: str = ""
    error: UpdateFailure | None = None

    @property
    def message(self) -> str:
        if self.status == "updated":
            return f"Updated {self.package} to the latest version"
        if self.status == "dry-run":
            return f"Would run: {self.command}"
        return str(self.error)


@dataclass
class UpdateResult:
    """Result of an update batch."""

    updates: list[PackageUpdate] = field(default_factory=list)
    state_cleared: bool = False

    @property
    def updated(self) -> list[PackageUpdate]:
        return [u for u in self.updates if u.status == "updated"]

    @property
    def failures(self) -> list[UpdateFailure]:
        return [u.error for u in self.updates if u.error is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "state_cleared": self.state_cleared,
            "updates": [
                {"package": u.package, "status": u.status, "message": u.message}
                for u in self.updates
            ],
        }


def update_package(client: NpmClient, package: str) -> PackageUpdate:
    """Install the latest version of one package, converting failures to a result."""
    command = " ".join(client.install_command(package))
    try:
        client.install_latest(package)
    except subprocess.CalledProcessError as e:
        error = UpdateFailure(package, f"Command failed: {command} (exit status {e.returncode})")
    except subprocess.TimeoutExpired:
        error = UpdateFailure(package, f"Command timed out: {command}")
    except OSError as e:
        error = UpdateFailure(package, str(e))
    else:
        return PackageUpdate(package=package, status="updated", command=command)

    logger.info("Update failed: %s", error)
    return PackageUpdate(package=package, status="failed", command=command, error=error)


def run_update(
    store: StateStore,
    client: NpmClient,
    dry_run: bool = False,
    on_update: Callable[[PackageUpdate], None] | None = None,
) -> UpdateResult:
    """Upgrade every package listed in the state file, then clear it.

    A failed package does not stop the batch. The state file is removed
    once every package has been attempted, whatever the outcome, except in
    dry-run mode where nothing is installed and the file is kept.

    Raises:
        MissingState: no scan has been run.
        CorruptState: the state file could not be read.
        EmptyState: the last scan found nothing outdated.
    """
    state = store.load()
    if not state.packages:
        raise EmptyState("All dependencies are up-to-date.")

    result = UpdateResult()
    try:
        for package in state.packages:
            if dry_run:
                update = PackageUpdate(
                    package=package,
                    status="dry-run",
                    command=" ".join(client.install_command(package)),
                )
            else:
                update = update_package(client, package)
            result.updates.append(update)
            if on_update:
                on_update(update)
    finally:
        # The file goes even if reporting a result blew up mid-batch.
        if not dry_run:
            result.state_cleared = store.clear()
    return result
