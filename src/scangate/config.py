"""Run configuration for one gate invocation.

Built once at startup from CLI options (which also read ``SCANGATE_*``
environment variables) and an optional YAML policy file, then passed to the
orchestrator unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from scangate.errors import ValidationError
from scangate.findings.policy import build_policy, dedup
from scangate.findings.types import IgnorePolicy
from scangate.registry.exec import DEFAULT_COMMAND_TIMEOUT
from scangate.registry.reference import parse_reference, require_ecr_repo
from scangate.ui import console

DEFAULT_POLICY_FILE = Path("scangate.yaml")
DEFAULT_SCAN_WAIT_TIMEOUT_MINUTES = 20
DEFAULT_POLL_INTERVAL_SECONDS = 10


@dataclass(frozen=True)
class PolicyFile:
    """Ignore lists read from a YAML policy file."""

    ignore_levels: tuple[str, ...] = ()
    ignore_cve: tuple[str, ...] = ()


@dataclass(frozen=True)
class GateConfig:
    """Immutable configuration for one promotion run."""

    images: tuple[str, ...]
    stage_repo: str
    policy: IgnorePolicy
    junit_report_path: Path | None = None
    json_report_path: Path | None = None
    scan_wait_timeout_minutes: int = DEFAULT_SCAN_WAIT_TIMEOUT_MINUTES
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    skip_push: bool = False
    additional_tags: tuple[str, ...] = ()

    @property
    def scan_wait_timeout(self) -> float:
        """Scan wait deadline in seconds."""
        return self.scan_wait_timeout_minutes * 60.0


def split_tokens(value: str | None) -> list[str]:
    """Split a whitespace separated option value into tokens."""
    return (value or "").split()


def _as_tokens(raw: Any, key: str, path: Path) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return tuple(raw.split())
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return tuple(raw)
    raise ValidationError(f"{path}: '{key}' must be a list of strings or a space-separated string")


def load_policy_file(path: Path) -> PolicyFile:
    """Load ``ignore_levels`` and ``ignore_cve`` from a YAML file.

    Raises:
        ValidationError: If the file is unreadable or malformed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ValidationError(f"Failed to read policy file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ValidationError(f"Invalid YAML in policy file {path}: {exc}") from exc

    if data is None:
        return PolicyFile()
    if not isinstance(data, dict):
        raise ValidationError(f"{path}: policy file must contain a mapping")

    unknown = sorted(set(data) - {"ignore_levels", "ignore_cve"})
    if unknown:
        raise ValidationError(f"{path}: unknown policy keys: {', '.join(unknown)}")

    return PolicyFile(
        ignore_levels=_as_tokens(data.get("ignore_levels"), "ignore_levels", path),
        ignore_cve=_as_tokens(data.get("ignore_cve"), "ignore_cve", path),
    )


def build_config(
    *,
    images: str,
    stage_repo: str | None = None,
    ignore_levels: str | None = None,
    ignore_cve: str | None = None,
    policy_file: Path | None = None,
    junit_report_path: Path | None = None,
    json_report_path: Path | None = None,
    scan_wait_timeout: int = DEFAULT_SCAN_WAIT_TIMEOUT_MINUTES,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    skip_push: bool = False,
    additional_tags: str | None = None,
) -> GateConfig:
    """Validate raw option values and build the run configuration.

    All validation happens here, before any registry or backend call.

    Raises:
        ValidationError: On any invalid input.
    """
    levels = split_tokens(ignore_levels)
    cves = split_tokens(ignore_cve)

    if policy_file is None and DEFAULT_POLICY_FILE.is_file():
        policy_file = DEFAULT_POLICY_FILE
    if policy_file is not None:
        from_file = load_policy_file(policy_file)
        console.print(f"Loaded ignore policy from {policy_file}")
        levels.extend(from_file.ignore_levels)
        cves.extend(from_file.ignore_cve)

    policy = build_policy(levels, cves)

    image_list = dedup(split_tokens(images))
    if not image_list:
        raise ValidationError("at least one image reference is required")
    for image in image_list:
        parse_reference(image)

    if not stage_repo:
        console.print(
            "Note: Stage repo is not specified - will use the repo of the first given image as a scanning silo"
        )
        stage_repo = image_list[0]
    require_ecr_repo(stage_repo)

    tags = dedup(split_tokens(additional_tags))
    probe = parse_reference(image_list[0])
    for tag in tags:
        probe.with_tag(tag)

    if scan_wait_timeout <= 0:
        raise ValidationError("scan wait timeout must be a positive number of minutes")
    if poll_interval <= 0:
        raise ValidationError("poll interval must be positive")
    if command_timeout <= 0:
        raise ValidationError("command timeout must be positive")

    return GateConfig(
        images=tuple(image_list),
        stage_repo=stage_repo,
        policy=policy,
        junit_report_path=junit_report_path,
        json_report_path=json_report_path,
        scan_wait_timeout_minutes=scan_wait_timeout,
        poll_interval=poll_interval,
        command_timeout=command_timeout,
        skip_push=skip_push,
        additional_tags=tuple(tags),
    )
