"""Schema validation for backend payloads and written reports."""

from __future__ import annotations

from typing import Any

from jsonschema.validators import Draft202012Validator

from scangate.schemas.registry import get_registry


def validate_data(
    data: dict[str, Any] | list[Any],
    schema_name: str,
    strict: bool = True
) -> tuple[bool, list[str]]:
    """Validate data against a packaged schema.

    Args:
        data: Data to validate
        schema_name: Name of schema to validate against
        strict: If True, raise on validation errors; if False, return error list

    Returns:
        Tuple of (is_valid, error_messages)

    Raises:
        KeyError: If schema not found in package data
        ValueError: If validation fails and strict=True
    """
    schema = get_registry().get_json(schema_name)
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])

    if errors:
        error_messages = [
            f"{'.'.join(str(p) for p in e.path)}: {e.message}"
            if e.path
            else e.message
            for e in errors
        ]

        if strict:
            raise ValueError(
                f"Schema validation failed for '{schema_name}':\n" +
                "\n".join(f"  - {msg}" for msg in error_messages)
            )

        return False, error_messages

    return True, []
