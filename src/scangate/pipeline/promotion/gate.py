"""Gate decision over a scan outcome."""

from __future__ import annotations

from collections.abc import Sequence

from scangate.errors import ScanTimeout, TransportError
from scangate.findings.policy import select_ignored
from scangate.findings.types import Finding, IgnorePolicy
from scangate.pipeline.promotion.types import GateVerdict
from scangate.scan.types import BackendError, Findings, ScanOutcome, TimedOut, Unsupported


def evaluate(
    findings: Sequence[Finding],
    policy: IgnorePolicy,
    *,
    unsupported_reason: str | None = None,
) -> GateVerdict:
    """Compute the verdict for ``findings`` under ``policy``.

    Passes when there are no findings or when no more findings exist than
    were ignored. ``select_ignored`` guarantees the ignored list is a subset
    of the findings, so the second rule means every finding is ignored.
    """
    ignored = select_ignored(findings, policy)
    passed = len(findings) == 0 or len(findings) <= len(ignored)
    return GateVerdict(
        findings=tuple(findings),
        ignored=tuple(ignored),
        passed=passed,
        unsupported_reason=unsupported_reason,
    )


def decide(outcome: ScanOutcome, policy: IgnorePolicy) -> GateVerdict:
    """Turn a scan outcome into a verdict.

    An unsupported image yields one synthetic INFORMATIONAL finding which
    goes through the ignore policy like any other finding: it blocks the
    promotion unless INFORMATIONAL or its id is ignored.

    Raises:
        ScanTimeout: If the scan did not finish in time.
        TransportError: If the backend failed.
    """
    if isinstance(outcome, TimedOut):
        raise ScanTimeout(outcome.timeout)
    if isinstance(outcome, BackendError):
        raise TransportError(f"image scan failed: {outcome.cause}") from outcome.cause
    if isinstance(outcome, Unsupported):
        return evaluate([outcome.finding], policy, unsupported_reason=outcome.reason)
    if isinstance(outcome, Findings):
        return evaluate(outcome.findings, policy)
    raise TypeError(f"unknown scan outcome: {outcome!r}")
