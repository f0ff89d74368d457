"""Unit tests for image reference parsing."""

from __future__ import annotations

import pytest

from scangate.errors import ValidationError
from scangate.registry.reference import parse_reference, require_ecr_repo

ECR = "123456789012.dkr.ecr.eu-west-1.amazonaws.com"


def test_parse_full_ecr_reference() -> None:
    ref = parse_reference(f"{ECR}/team/app:1.2.3")
    assert ref.domain == ECR
    assert ref.path == "team/app"
    assert ref.tag == "1.2.3"
    assert ref.digest is None
    assert ref.is_ecr()
    assert ref.ecr_region() == "eu-west-1"
    assert str(ref) == f"{ECR}/team/app:1.2.3"


def test_parse_docker_hub_short_name() -> None:
    ref = parse_reference("nginx")
    assert ref.domain == "docker.io"
    assert ref.path == "library/nginx"
    assert ref.tag is None
    assert not ref.is_ecr()


def test_parse_registry_with_port_and_no_tag() -> None:
    ref = parse_reference("localhost:5000/app")
    assert ref.domain == "localhost:5000"
    assert ref.path == "app"
    assert ref.tag is None


def test_parse_digest() -> None:
    digest = "sha256:" + "c" * 64
    ref = parse_reference(f"{ECR}/app@{digest}")
    assert ref.digest == digest
    assert ref.tag is None


def test_with_tag_replaces_tag_and_drops_digest() -> None:
    ref = parse_reference(f"{ECR}/app:old@sha256:" + "d" * 64)
    assert str(ref.with_tag("new")) == f"{ECR}/app:new"


@pytest.mark.parametrize("value", ["", "UPPER/case", f"{ECR}/app:bad tag", f"{ECR}/app@nothex"])
def test_parse_rejects_malformed(value: str) -> None:
    with pytest.raises(ValidationError):
        parse_reference(value)


def test_with_tag_rejects_invalid_tag() -> None:
    with pytest.raises(ValidationError, match="invalid image tag"):
        parse_reference(f"{ECR}/app").with_tag("-bad")


def test_require_ecr_repo_rejects_other_registries() -> None:
    with pytest.raises(ValidationError, match="unexpected ECR registry name"):
        require_ecr_repo("ghcr.io/team/app")
    assert require_ecr_repo(f"{ECR}/app").path == "app"
