"""Outdated / up-to-date classification."""

from __future__ import annotations

from enum import Enum

import semver


class DependencyStatus(Enum):
    """Outcome of checking a single dependency."""

    UP_TO_DATE = "up-to-date"
    OUTDATED = "outdated"
    INVALID_VERSION = "invalid-version"
    NOT_FOUND = "not-found"
    ERROR = "error"

    @property
    def checked(self) -> bool:
        """True when both versions were known and compared."""
        return self in (DependencyStatus.UP_TO_DATE, DependencyStatus.OUTDATED)


def _as_version(value: semver.Version | str) -> semver.Version:
    if isinstance(value, semver.Version):
        return value
    return semver.Version.parse(value)


def is_outdated(baseline: semver.Version | str, latest: semver.Version | str) -> bool:
    """True when the baseline sorts strictly before the latest release."""
    return _as_version(baseline) < _as_version(latest)


def classify(baseline: semver.Version | str, latest: semver.Version | str) -> DependencyStatus:
    if is_outdated(baseline, latest):
        return DependencyStatus.OUTDATED
    return DependencyStatus.UP_TO_DATE
