"""Checking every declared dependency against the registry."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from revise_deps.classifier import DependencyStatus, classify
from revise_deps.errors import InvalidVersion, PackageNotFound, RegistryError
from revise_deps.manifest import Manifest
from revise_deps.resolver import VersionResolver
from revise_deps.state import dedupe

logger = logging.getLogger(__name__)


@dataclass
class DependencyCheck:
    """Result of checking one declared dependency."""

    name: str
    section: str
    declared: Any
    status: DependencyStatus
    baseline: str | None = None
    latest: str | None = None
    error: str | None = None

    @property
    def outdated(self) -> bool:
        return self.status == DependencyStatus.OUTDATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "section": self.section,
            "declared": self.declared,
            "baseline": self.baseline,
            "latest": self.latest,
            "status": self.status.value,
            "error": self.error,
        }


@dataclass
class ScanResult:
    """Result of scanning a manifest."""

    checks: list[DependencyCheck] = field(default_factory=list)
    sections: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def outdated(self) -> list[str]:
        """Outdated package names in manifest order, without repeats."""
        return dedupe(c.name for c in self.checks if c.outdated)

    @property
    def failed(self) -> list[DependencyCheck]:
        return [c for c in self.checks if not c.status.checked]

    @property
    def errors(self) -> list[str]:
        return [c.error for c in self.failed if c.error]

    def in_section(self, section: str) -> list[DependencyCheck]:
        return [c for c in self.checks if c.section == section]

    @property
    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in DependencyStatus}
        for c in self.checks:
            counts[c.status.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "summary": self.summary,
            "outdated": self.outdated,
            "dependencies": [c.to_dict() for c in self.checks],
        }


def check_dependency(
    resolver: VersionResolver, name: str, declared: Any, section: str
) -> DependencyCheck:
    """Resolve and classify a single dependency, never raising for lookup errors."""
    check = DependencyCheck(
        name=name, section=section, declared=declared, status=DependencyStatus.ERROR
    )
    try:
        baseline, latest = resolver.resolve(name, declared)
    except InvalidVersion as e:
        check.status = DependencyStatus.INVALID_VERSION
        check.error = str(e)
    except PackageNotFound as e:
        check.status = DependencyStatus.NOT_FOUND
        check.error = str(e)
    except RegistryError as e:
        check.status = DependencyStatus.ERROR
        check.error = str(e)
    else:
        check.baseline = str(baseline)
        check.latest = str(latest)
        check.status = classify(baseline, latest)
        logger.debug("%s: %s -> %s (%s)", name, baseline, latest, check.status.value)
        return check

    logger.info("Skipping %s: %s", name, check.error)
    return check


def scan_manifest(
    manifest: Manifest,
    resolver: VersionResolver,
    include_dev: bool = True,
    jobs: int = 1,
) -> ScanResult:
    """Check every dependency in the manifest.

    With ``jobs > 1`` registry lookups run on a bounded thread pool; results
    are still reported in manifest order (dependencies, then devDependencies).
    """
    result = ScanResult()
    work: list[tuple[str, Any, str]] = []
    for section, deps in manifest.sections(include_dev=include_dev):
        result.sections.append(section)
        work.extend((name, declared, section) for name, declared in deps.items())

    if jobs <= 1 or len(work) <= 1:
        result.checks = [check_dependency(resolver, *item) for item in work]
        return result

    with ThreadPoolExecutor(max_workers=min(jobs, len(work))) as executor:
        futures = [executor.submit(check_dependency, resolver, *item) for item in work]
        result.checks = [future.result() for future in futures]
    return result
