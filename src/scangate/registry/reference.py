"""Container image reference parsing.

A reference looks like ``[domain/]path[:tag][@digest]``. Only the parts the
gate needs are modelled: the registry domain (for authentication and ECR
checks), the repository path (what the scan backend calls the repository
name), and the tag.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from scangate.errors import ValidationError

DEFAULT_DOMAIN = "docker.io"
ECR_DOMAIN_MARKER = "amazonaws.com"

_PATH_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_DIGEST_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}$")
_ECR_REGION_RE = re.compile(r"\.dkr\.ecr\.([a-z0-9-]+)\.amazonaws\.com")


@dataclass(frozen=True)
class ImageReference:
    """Parsed image reference."""

    domain: str
    path: str
    tag: str | None = None
    digest: str | None = None

    @property
    def name(self) -> str:
        """Repository name including the registry domain."""
        return f"{self.domain}/{self.path}"

    def with_tag(self, tag: str) -> ImageReference:
        """Return the same repository with a new tag and no digest."""
        if not _TAG_RE.match(tag):
            raise ValidationError(f"invalid image tag: {tag!r}")
        return replace(self, tag=tag, digest=None)

    def is_ecr(self) -> bool:
        return ECR_DOMAIN_MARKER in self.domain

    def ecr_region(self) -> str | None:
        """AWS region encoded in an ECR domain, if any."""
        match = _ECR_REGION_RE.search(self.domain)
        return match.group(1) if match else None

    def __str__(self) -> str:
        rendered = self.name
        if self.tag:
            rendered += f":{self.tag}"
        if self.digest:
            rendered += f"@{self.digest}"
        return rendered


def _looks_like_domain(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def parse_reference(value: str) -> ImageReference:
    """Parse an image reference string.

    Raises:
        ValidationError: If the reference is malformed.
    """
    text = value.strip()
    if not text:
        raise ValidationError("image reference must not be empty")

    remainder, _, digest = text.partition("@")
    if digest and not _DIGEST_RE.match(digest):
        raise ValidationError(f"invalid digest in image reference {value!r}")

    tag: str | None = None
    last_slash = remainder.rfind("/")
    last_colon = remainder.rfind(":")
    if last_colon > last_slash:
        remainder, tag = remainder[:last_colon], remainder[last_colon + 1 :]
        if not _TAG_RE.match(tag):
            raise ValidationError(f"invalid tag {tag!r} in image reference {value!r}")

    domain = DEFAULT_DOMAIN
    parts = remainder.split("/")
    if len(parts) > 1 and _looks_like_domain(parts[0]):
        domain = parts[0]
        parts = parts[1:]
    elif len(parts) == 1:
        parts = ["library", *parts]

    for component in parts:
        if not _PATH_COMPONENT_RE.match(component):
            raise ValidationError(
                f"invalid repository path component {component!r} in image reference {value!r}"
            )

    return ImageReference(domain=domain, path="/".join(parts), tag=tag, digest=digest or None)


def require_ecr_repo(value: str) -> ImageReference:
    """Parse ``value`` and require it to point at an AWS ECR registry."""
    reference = parse_reference(value)
    if not reference.is_ecr():
        raise ValidationError(
            f"unexpected ECR registry name {value}. "
            "Expected format: AWS_ACCOUNT_ID.dkr.ecr.REGION.amazonaws.com/myrepo/name"
        )
    return reference
