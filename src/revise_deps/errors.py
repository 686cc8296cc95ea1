"""Error taxonomy for revise-deps.

Every failure the tool knows how to report derives from ReviseDepsError.
Commands catch these at the point of occurrence, record them on their
result objects and keep going where the batch allows it.
"""

from __future__ import annotations


def first_line(text: str) -> str:
    """Return the first non-empty line of a (possibly multi-line) message."""
    for line in str(text).splitlines():
        if line.strip():
            return line.strip()
    return ""


class ReviseDepsError(Exception):
    """Base class for all revise-deps errors."""

    kind = "error"


class ManifestError(ReviseDepsError):
    """The project manifest is missing or malformed."""

    kind = "manifest"


class InvalidVersion(ReviseDepsError):
    """A declared version range has no concrete version in it."""

    kind = "invalid-version"

    def __init__(self, package: str, declared: object):
        self.package = package
        self.declared = declared
        super().__init__(f"Invalid version for {package}: {declared}")


class PackageNotFound(ReviseDepsError):
    """The registry has no package by this name."""

    kind = "not-found"

    def __init__(self, package: str):
        self.package = package
        super().__init__(f"Package {package} not found in the registry.")


class RegistryError(ReviseDepsError):
    """Looking up the latest version failed for some other reason."""

    kind = "registry"

    def __init__(self, package: str, message: str):
        self.package = package
        self.message = first_line(message) or "unknown error"
        super().__init__(f"Failed to fetch latest version for {package}: {self.message}")


class StateError(ReviseDepsError):
    """Problems with the pending-update state file."""

    kind = "state"


class MissingState(StateError):
    """No scan has been run in this directory."""

    kind = "missing-state"


class EmptyState(StateError):
    """The last scan found nothing to update."""

    kind = "empty-state"


class CorruptState(StateError):
    """The state file exists but does not hold a valid record."""

    kind = "corrupt-state"


class UpdateFailure(ReviseDepsError):
    """Upgrading a single package failed."""

    kind = "update"

    def __init__(self, package: str, message: str):
        self.package = package
        self.message = first_line(message) or "unknown error"
        super().__init__(f"Failed to update {package}: {self.message}")


class AuditFailure(ReviseDepsError):
    """The audit could not be run or its output could not be read."""

    kind = "audit"

    def __init__(self, message: str):
        self.message = first_line(message) or "unknown error"
        super().__init__(f"Error running npm audit: {self.message}")
