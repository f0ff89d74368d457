"""Error taxonomy for the promotion gate.

Every failure surfaced to the CLI derives from ``ScanGateError`` so the
command layer can map it to an exit code:

- ``ValidationError``: bad user input, raised before any network action
- ``TransportError``: a registry or scan backend call failed
- ``ScanTimeout``: the scan did not finish before the wait deadline
- ``GateBlocked``: unignored findings remain; a policy decision, not a fault
- ``InternalInvariantViolation``: internal consistency check failed
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scangate.pipeline.promotion.types import GateVerdict


class ScanGateError(RuntimeError):
    """Base class for all promotion gate failures."""


class ValidationError(ScanGateError):
    """Raised when user supplied input is rejected."""


class InvalidSeverityError(ValidationError):
    """Raised when a severity token is not one of the known levels."""

    def __init__(self, value: str, valid_set: Sequence[str]):
        self.value = value
        self.valid_set = tuple(valid_set)
        super().__init__(
            f"{value} is not a valid finding severity level. "
            f"Valid levels are: {', '.join(self.valid_set)}"
        )


class TransportError(ScanGateError):
    """Raised when a registry or scan backend call fails."""


class ScanTimeout(ScanGateError):
    """Raised when the image scan does not complete before the deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"image scan did not complete within {timeout:g} seconds; "
            "the image was not pushed to the destination"
        )


class GateBlocked(ScanGateError):
    """Raised when the gate verdict failed; carries the verdict."""

    def __init__(self, verdict: GateVerdict):
        self.verdict = verdict
        unignored = len(verdict.unignored)
        super().__init__(
            f"there are CVEs found ({unignored} not ignored)! Please, fix them first. "
            "Will not proceed with pushing to the destination registries"
        )


class InternalInvariantViolation(ScanGateError):
    """Raised when an internal consistency check fails. Never expected."""
