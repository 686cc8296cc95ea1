"""Version information for revise-deps."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from revise_deps.npm import run

__all__ = ["VERSION", "get_version_info", "VersionInfo"]

VERSION = "0.1.0"


@dataclass
class VersionInfo:
    """Tool version plus the npm it drives."""

    version: str
    npm_version: str | None

    def format_short(self) -> str:
        return f"v{self.version}"

    def format_full(self) -> str:
        """Format as full version string."""
        parts = [f"revise-deps v{self.version}"]
        if self.npm_version:
            parts.append(f"(npm {self.npm_version})")
        else:
            parts.append("(npm not found)")
        return " ".join(parts)


def _npm_version(command: str = "npm") -> str | None:
    """Return the installed npm version, or None if npm is unavailable."""
    code, stdout, _ = run([command, "--version"], timeout=10)
    if code == 0 and stdout:
        return stdout.splitlines()[-1].strip()
    return None


@lru_cache(maxsize=1)
def get_version_info() -> VersionInfo:
    """Get version information including the npm version.

    Results are cached for the lifetime of the process.
    """
    return VersionInfo(version=VERSION, npm_version=_npm_version())
