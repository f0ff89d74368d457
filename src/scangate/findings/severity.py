"""Finding severity taxonomy."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from scangate.errors import InvalidSeverityError


class SeverityLevel(str, Enum):
    """Severity of a scan finding, most severe first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFORMATIONAL = "INFORMATIONAL"
    UNDEFINED = "UNDEFINED"


def list_severities() -> tuple[SeverityLevel, ...]:
    """Return every severity level in report order (CRITICAL first)."""
    return tuple(SeverityLevel)


def severity_values() -> tuple[str, ...]:
    return tuple(level.value for level in list_severities())


def severity_levels_as_string() -> str:
    """Comma-joined level names, used in help text and error messages."""
    return ", ".join(severity_values())


def validate_severities(candidates: Sequence[str]) -> None:
    """Check that every candidate exactly matches a severity level name.

    Matching is case sensitive. Splitting user input into tokens is left to
    the caller.

    Raises:
        InvalidSeverityError: On the first candidate that does not match.
    """
    valid = severity_values()
    for candidate in candidates:
        if candidate not in valid:
            raise InvalidSeverityError(candidate, valid)


def parse_backend_severity(raw: str | None) -> SeverityLevel:
    """Map a backend severity string onto the taxonomy.

    Unknown or missing values land in UNDEFINED so every finding belongs to
    exactly one level.
    """
    if raw is None:
        return SeverityLevel.UNDEFINED
    try:
        return SeverityLevel(raw.upper())
    except ValueError:
        return SeverityLevel.UNDEFINED
