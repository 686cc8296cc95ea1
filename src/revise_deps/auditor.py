"""Vulnerability counts from ``npm audit``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from revise_deps.errors import AuditFailure
from revise_deps.npm import NpmClient

logger = logging.getLogger(__name__)

# Lowest to highest, as npm orders them
SEVERITY_ORDER = ("info", "low", "moderate", "high", "critical")


@dataclass
class AuditSummary:
    """Issue counts per severity, in the order npm reported them."""

    counts: dict[str, int] = field(default_factory=dict)
    total: int = 0

    @property
    def clean(self) -> bool:
        return self.total == 0

    def nonzero(self) -> list[tuple[str, int]]:
        """Severities with at least one issue."""
        return [(severity, count) for severity, count in self.counts.items() if count > 0]

    def at_or_above(self, threshold: str) -> int:
        """Number of issues with a severity at or above ``threshold``."""
        threshold = threshold.lower()
        if threshold not in SEVERITY_ORDER:
            raise ValueError(f"Unknown severity: {threshold}")
        floor = SEVERITY_ORDER.index(threshold)
        return sum(
            count
            for severity, count in self.counts.items()
            if severity in SEVERITY_ORDER and SEVERITY_ORDER.index(severity) >= floor
        )

    def to_dict(self) -> dict[str, Any]:
        return {"vulnerabilities": dict(self.counts), "total": self.total}


def parse_audit_output(text: str) -> AuditSummary:
    """Parse the JSON printed by ``npm audit --json``.

    Both npm 6 and npm 7+ carry a ``metadata.vulnerabilities`` map of
    severity -> count, plus a ``total``.

    Raises:
        AuditFailure: the text is not an audit report.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AuditFailure(f"Could not parse npm audit output: {e}") from e

    if not isinstance(data, dict):
        raise AuditFailure("Unexpected npm audit output")

    error = data.get("error")
    if error:
        if isinstance(error, dict):
            raise AuditFailure(error.get("summary") or error.get("code") or "npm audit failed")
        raise AuditFailure(str(error))

    vulns = data.get("metadata", {}).get("vulnerabilities")
    if not isinstance(vulns, dict):
        raise AuditFailure("npm audit output has no vulnerability metadata")

    counts: dict[str, int] = {}
    for severity, count in vulns.items():
        if severity == "total":
            continue
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise AuditFailure(f"Invalid count for {severity}: {count!r}")
        counts[severity] = count

    total = vulns.get("total")
    if not isinstance(total, int) or isinstance(total, bool):
        total = sum(counts.values())
    return AuditSummary(counts=counts, total=total)


def run_audit(client: NpmClient) -> AuditSummary:
    """Run the audit once and summarise it.

    Raises:
        AuditFailure: npm could not be run or printed something unreadable.
    """
    code, stdout, stderr = client.audit_json()
    logger.debug("npm audit exited with %d", code)
    # npm audit returns non-zero if vulnerabilities found
    if not stdout:
        raise AuditFailure(stderr or f"npm audit exited with code {code} and no output")
    return parse_audit_output(stdout)
