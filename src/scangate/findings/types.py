"""Finding and ignore policy types."""

from __future__ import annotations

from dataclasses import dataclass

from scangate.findings.severity import SeverityLevel


@dataclass(frozen=True)
class Finding:
    """One vulnerability record reported by the scan backend."""

    severity: SeverityLevel
    id: str | None = None  # CVE name, e.g. CVE-2023-1234
    description: str | None = None
    uri: str | None = None


@dataclass(frozen=True)
class IgnorePolicy:
    """User declared exemptions, by severity level or by finding id.

    Both collections are deduplicated; order of first occurrence is kept so
    reports echo the user's input back in the order it was given.
    """

    ignored_severities: tuple[SeverityLevel, ...] = ()
    ignored_finding_ids: tuple[str, ...] = ()

    def ignores_severity(self, severity: SeverityLevel) -> bool:
        return severity in self.ignored_severities

    def ignores_id(self, finding_id: str | None) -> bool:
        return finding_id is not None and finding_id in self.ignored_finding_ids
