"""Scan status and scan outcome types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from scangate.findings.types import Finding


class ScanStatus(str, Enum):
    """Status values reported by the scan backend."""

    PENDING = "PENDING"  # scan not registered yet
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    UNSUPPORTED_IMAGE = "UNSUPPORTED_IMAGE"
    ACTIVE = "ACTIVE"
    SCAN_ELIGIBILITY_EXPIRED = "SCAN_ELIGIBILITY_EXPIRED"
    FINDINGS_UNAVAILABLE = "FINDINGS_UNAVAILABLE"


POLLING_STATUSES = frozenset({ScanStatus.PENDING, ScanStatus.IN_PROGRESS})


class WaitState(str, Enum):
    """States of the scan wait protocol."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class ScanStatusReport:
    """One answer from the scan backend."""

    status: ScanStatus
    description: str | None = None
    findings: tuple[Finding, ...] | None = None
    # False while the backend has no scan registered for the image at all
    registered: bool = True


@dataclass(frozen=True)
class Findings:
    """Scan completed; carries every reported finding."""

    findings: tuple[Finding, ...]


@dataclass(frozen=True)
class Unsupported:
    """The backend cannot scan this image type."""

    reason: str
    finding: Finding


@dataclass(frozen=True)
class TimedOut:
    """The scan was still running when the wait deadline elapsed."""

    timeout: float


@dataclass(frozen=True)
class BackendError:
    """The backend failed or reported a scan failure."""

    cause: Exception


ScanOutcome = Findings | Unsupported | TimedOut | BackendError
