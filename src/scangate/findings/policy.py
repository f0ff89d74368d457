"""Ignore policy evaluation over scan findings."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from scangate.errors import InternalInvariantViolation
from scangate.findings.severity import SeverityLevel, list_severities, validate_severities
from scangate.findings.types import Finding, IgnorePolicy

IGNORED_SEVERITY_REASON = "ignored severity level"
IGNORED_CVE_REASON = "ignored individual CVE"


def dedup(items: Iterable[str]) -> list[str]:
    """Drop repeated items, keeping the first occurrence of each."""
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def build_policy(severities: Sequence[str], finding_ids: Sequence[str]) -> IgnorePolicy:
    """Validate and deduplicate user input into an IgnorePolicy.

    Raises:
        InvalidSeverityError: If a severity token is unknown.
    """
    validate_severities(severities)
    return IgnorePolicy(
        ignored_severities=tuple(SeverityLevel(value) for value in dedup(severities)),
        ignored_finding_ids=tuple(dedup(finding_ids)),
    )


def is_ignored(finding: Finding, policy: IgnorePolicy) -> tuple[bool, str]:
    """Decide whether one finding is exempt and why.

    The severity check runs first, so a finding matching both rules reports
    the severity reason.
    """
    if policy.ignores_severity(finding.severity):
        return True, IGNORED_SEVERITY_REASON
    if policy.ignores_id(finding.id):
        return True, IGNORED_CVE_REASON
    return False, ""


def classify_by_severity(findings: Iterable[Finding]) -> dict[SeverityLevel, list[Finding]]:
    """Group findings by severity; every level is present, even when empty."""
    buckets: dict[SeverityLevel, list[Finding]] = {level: [] for level in list_severities()}
    for finding in findings:
        buckets[finding.severity].append(finding)
    return buckets


def select_ignored(findings: Sequence[Finding], policy: IgnorePolicy) -> list[Finding]:
    """Return the ignored subset of ``findings`` in original order."""
    ignored = [finding for finding in findings if is_ignored(finding, policy)[0]]

    if len(ignored) > len(findings):
        raise InternalInvariantViolation(
            "number of ignored findings exceeds the total number of findings; "
            "this indicates an internal logic error, please report it to the maintainers"
        )
    return ignored
