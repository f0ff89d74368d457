"""Promotion gate types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from scangate.findings.types import Finding
from scangate.registry.types import ImageIdentity


@dataclass(frozen=True)
class GateVerdict:
    """Pass/fail decision over a set of findings.

    Derived from (findings, policy) alone, so the report and the decision
    always agree.
    """

    findings: tuple[Finding, ...]
    ignored: tuple[Finding, ...]
    passed: bool
    unsupported_reason: str | None = None

    @property
    def unignored(self) -> tuple[Finding, ...]:
        return tuple(finding for finding in self.findings if finding not in self.ignored)


class PromotionStage(str, Enum):
    """Final stage of a promotion run that was not blocked.

    A blocked run raises ``GateBlocked`` instead of returning a stage.
    """

    PROMOTED = "promoted"
    SKIPPED_BY_FLAG = "skipped_by_flag"


@dataclass
class PromotionResult:
    """Outcome of a promotion run that was not blocked."""

    stage: PromotionStage
    staging_ref: str
    identity: ImageIdentity
    verdict: GateVerdict
    pushed_refs: list[str] = field(default_factory=list)
