"""The pending-update state file shared between ``scan`` and ``update``.

The file is a small versioned JSON record::

    {
      "schema": "revise-deps/outdated",
      "version": 1,
      "created_at": "2026-01-01T12:00:00",
      "packages": ["left-pad"]
    }

A bare JSON list of names, as written by older releases, is still read.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from revise_deps.errors import CorruptState, MissingState

logger = logging.getLogger(__name__)

SCHEMA = "revise-deps/outdated"
SCHEMA_VERSION = 1


def dedupe(names: Iterable[str]) -> list[str]:
    """Drop repeated names, keeping the first occurrence."""
    seen: set[str] = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


@dataclass
class OutdatedState:
    """Packages found outdated by the last scan."""

    packages: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    version: int = SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": SCHEMA,
            "version": self.version,
            "created_at": self.created_at,
            "packages": list(self.packages),
        }

    @classmethod
    def from_data(cls, data: Any) -> OutdatedState:
        """Validate decoded JSON and build a state record.

        Raises:
            CorruptState: data is not a record this release understands.
        """
        if isinstance(data, list):
            # Legacy format: bare list of names
            return cls(packages=_validate_names(data), created_at="", version=0)

        if not isinstance(data, dict):
            raise CorruptState(f"expected an object, got {type(data).__name__}")
        if data.get("schema") != SCHEMA:
            raise CorruptState(f"unknown schema tag {data.get('schema')!r}")
        version = data.get("version")
        if version != SCHEMA_VERSION:
            raise CorruptState(f"unsupported state version {version!r}")
        packages = data.get("packages")
        if not isinstance(packages, list):
            raise CorruptState("'packages' must be a list")
        return cls(
            packages=_validate_names(packages),
            created_at=str(data.get("created_at", "")),
            version=version,
        )


def _validate_names(names: list[Any]) -> list[str]:
    for name in names:
        if not isinstance(name, str) or not name.strip():
            raise CorruptState(f"invalid package name {name!r}")
    return dedupe(names)


class StateStore:
    """Reads, writes and clears the state file in a project directory."""

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, packages: Iterable[str]) -> OutdatedState:
        """Overwrite the state file with a new record.

        The record is written to a temporary file next to the target and
        moved into place, so readers never see a half-written file.
        """
        state = OutdatedState(packages=dedupe(packages))
        payload = json.dumps(state.to_dict(), indent=2) + "\n"

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Wrote %d package(s) to %s", len(state.packages), self.path)
        return state

    def load(self) -> OutdatedState:
        """Read the state file.

        Raises:
            MissingState: no state file exists.
            CorruptState: the file cannot be read or is not a valid record.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise MissingState(f"No state file at {self.path}") from None
        except OSError as e:
            raise CorruptState(f"Could not read {self.path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptState(f"{self.path} is not valid JSON: {e}") from e

        return OutdatedState.from_data(data)

    def clear(self) -> bool:
        """Delete the state file. Returns True if a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Removed %s", self.path)
        return True
