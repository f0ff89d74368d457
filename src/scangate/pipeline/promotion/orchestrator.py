"""Promotion orchestrator: stage, scan, decide, promote.

One run moves through these steps in order:

    tag -> push to staging -> wait for scan -> decide -> PROMOTED
                                                     -> GateBlocked (raised)
                                                     -> SKIPPED_BY_FLAG

Only a run that is not blocked returns a PromotionResult.

The first image is tagged into the staging repository and pushed there so
the registry scans it. Nothing reaches the destination until the verdict
passes. Every failure raises immediately. Staging tags are never removed,
and additional tags pushed before a failure are not rolled back.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Protocol

from scangate.config import GateConfig
from scangate.errors import GateBlocked
from scangate.findings.types import IgnorePolicy
from scangate.pipeline.promotion.gate import decide
from scangate.pipeline.promotion.types import GateVerdict, PromotionResult, PromotionStage
from scangate.registry.reference import ImageReference, parse_reference, require_ecr_repo
from scangate.registry.types import ImageIdentity
from scangate.scan.wait import ScanBackend, wait_for_scan
from scangate.ui import console

SCAN_TAG_PREFIX = "scangate-scan"
MAX_TAG_LENGTH = 128

_TAG_SANITIZE_RE = re.compile(r"[^a-zA-Z0-9_.-]+")


class RegistryClient(Protocol):
    def tag(self, source_ref: str, target_ref: str) -> None: ...

    def push(self, image_ref: str) -> ImageIdentity: ...


class ReportSink(Protocol):
    def emit(self, verdict: GateVerdict, policy: IgnorePolicy) -> None: ...


def scanning_tag(now: datetime, destination: ImageReference) -> str:
    """Build the staging tag from the current time and the destination tag.

    Characters outside ``[a-zA-Z0-9_.-]`` become ``-``. Two runs started in
    the same second for the same destination tag collide.
    """
    raw = f"{SCAN_TAG_PREFIX}-{int(now.timestamp())}-{destination.tag or 'latest'}"
    return _TAG_SANITIZE_RE.sub("-", raw)[:MAX_TAG_LENGTH]


def _promote_to_destination(
    registry: RegistryClient,
    images: Sequence[str],
    additional_tags: Sequence[str],
) -> list[str]:
    pushed: list[str] = []
    try:
        for ref in images:
            console.print(f"Pushing: {ref}")
            registry.push(ref)
            pushed.append(ref)

        for ref in images:
            for extra_tag in additional_tags:
                target = str(parse_reference(ref).with_tag(extra_tag))
                console.print(f"Tagging {ref} as {target}")
                registry.tag(ref, target)
                console.print(f"Pushing: {target}")
                registry.push(target)
                pushed.append(target)
    except Exception:
        if pushed:
            console.print(f"[yellow]Already pushed before the failure:[/yellow] {', '.join(pushed)}")
        raise
    return pushed


def promote(
    *,
    images: Sequence[str],
    stage_repo: str,
    policy: IgnorePolicy,
    registry: RegistryClient,
    backend: ScanBackend,
    sinks: Sequence[ReportSink] = (),
    scan_wait_timeout: float,
    poll_interval: float,
    skip_push: bool = False,
    additional_tags: Sequence[str] = (),
    now: datetime | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PromotionResult:
    """Run the promotion gate for ``images``.

    Returns:
        PromotionResult with stage PROMOTED or SKIPPED_BY_FLAG

    Raises:
        ValidationError: If the stage repo or an image reference is invalid
        TransportError: If a registry or backend call fails
        ScanTimeout: If the scan does not complete in time
        GateBlocked: If unignored findings remain
    """
    if not images:
        raise ValueError("promote() needs at least one image")

    stage_named = require_ecr_repo(stage_repo)
    destination = parse_reference(images[0])
    staging_ref = str(stage_named.with_tag(scanning_tag(now or datetime.now(UTC), destination)))

    console.print(f"Push image to the scanning repo as {staging_ref}")
    registry.tag(images[0], staging_ref)

    identity = registry.push(staging_ref)

    console.print(f"Checking scan result for the image {staging_ref}")
    outcome = wait_for_scan(
        backend,
        identity,
        stage_named.path,
        timeout=scan_wait_timeout,
        poll_interval=poll_interval,
        clock=clock,
        sleep=sleep,
    )

    verdict = decide(outcome, policy)
    for sink in sinks:
        sink.emit(verdict, policy)

    if not verdict.passed:
        raise GateBlocked(verdict)

    if skip_push:
        console.print("Skip push to destination repo because of --skip-push flag or SCANGATE_SKIP_PUSH env variable")
        return PromotionResult(
            stage=PromotionStage.SKIPPED_BY_FLAG,
            staging_ref=staging_ref,
            identity=identity,
            verdict=verdict,
        )

    pushed = _promote_to_destination(registry, images, additional_tags)
    return PromotionResult(
        stage=PromotionStage.PROMOTED,
        staging_ref=staging_ref,
        identity=identity,
        verdict=verdict,
        pushed_refs=pushed,
    )


def promote_with_config(
    config: GateConfig,
    *,
    registry: RegistryClient,
    backend: ScanBackend,
    sinks: Sequence[ReportSink] = (),
    now: datetime | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PromotionResult:
    """Run ``promote`` with values from a GateConfig."""
    return promote(
        images=config.images,
        stage_repo=config.stage_repo,
        policy=config.policy,
        registry=registry,
        backend=backend,
        sinks=sinks,
        scan_wait_timeout=config.scan_wait_timeout,
        poll_interval=config.poll_interval,
        skip_push=config.skip_push,
        additional_tags=config.additional_tags,
        now=now,
        clock=clock,
        sleep=sleep,
    )
