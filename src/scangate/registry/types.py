"""Types for registry operations."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageIdentity:
    """Content digest and tag reported by a successful push."""

    digest: str
    tag: str
