"""Schema registry backed by the scangate_schemas package data."""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib.resources import files
from typing import Any

SCHEMA_PACKAGE = "scangate_schemas"
SCHEMA_SUFFIX = ".schema.json"


@dataclass(frozen=True)
class SchemaRegistry:
    """Registry of schemas shipped as package data.

    Attributes:
        available: Sorted tuple of schema names (without the .schema.json suffix)
    """

    available: tuple[str, ...] = ()

    def __init__(self) -> None:
        object.__setattr__(self, "available", tuple(sorted(self._discover_schemas())))

    def _discover_schemas(self) -> list[str]:
        try:
            schema_files = files(SCHEMA_PACKAGE)
        except ModuleNotFoundError:
            return []
        return [
            item.name.removesuffix(SCHEMA_SUFFIX)
            for item in schema_files.iterdir()
            if item.name.endswith(SCHEMA_SUFFIX)
        ]

    def get_text(self, name: str) -> str:
        """Load schema text by name.

        Raises:
            KeyError: If the schema is not packaged.
        """
        canonical_name = name.removesuffix(SCHEMA_SUFFIX)
        if canonical_name not in self.available:
            raise KeyError(
                f"Schema '{canonical_name}' not found in {SCHEMA_PACKAGE}. "
                f"Available schemas: {', '.join(self.available) or 'none'}"
            )
        return (files(SCHEMA_PACKAGE) / f"{canonical_name}{SCHEMA_SUFFIX}").read_text(encoding="utf-8")

    def get_json(self, name: str) -> dict[str, Any]:
        text = self.get_text(name)
        try:
            res: dict[str, Any] = json.loads(text)
            return res
        except json.JSONDecodeError as e:
            raise ValueError(f"Schema '{name}' contains invalid JSON: {e}") from e


_registry: SchemaRegistry | None = None


def get_registry() -> SchemaRegistry:
    """Get global schema registry instance (singleton)."""
    global _registry
    if _registry is None:
        _registry = SchemaRegistry()
    return _registry
