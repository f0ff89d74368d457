"""Wait for an asynchronous image scan to finish.

The backend is polled on a fixed interval until the scan status leaves the
polling states or the deadline elapses. The interval is constant so the
poll lines in CI logs are evenly spaced and scan latency is easy to read.

Unsupported images need special care: the backend reports them as a plain
``FAILED`` status and only says "UnsupportedImageError" in the free-text
description. ``classify_unsupported_image`` isolates that substring check.
If the backend ever changes that wording, unsupported images will be
reported as scan failures instead.

A scan that never shows up at all (scan-on-push disabled, wrong repository)
is given a few polls to register after the push and is then reported as a
backend error rather than waiting out the whole deadline.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol

from scangate.errors import TransportError
from scangate.findings.severity import SeverityLevel
from scangate.findings.types import Finding
from scangate.registry.types import ImageIdentity
from scangate.scan.types import (
    POLLING_STATUSES,
    BackendError,
    Findings,
    ScanOutcome,
    ScanStatus,
    ScanStatusReport,
    TimedOut,
    Unsupported,
    WaitState,
)
from scangate.ui import console

DEFAULT_SCAN_WAIT_TIMEOUT = 20 * 60.0
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_NOT_REGISTERED_POLLS = 6
MIN_QUERY_TIMEOUT = 10.0

UNSUPPORTED_IMAGE_MARKER = "UnsupportedImageError"
UNSUPPORTED_IMAGE_FINDING_ID = "ECR_ERROR_UNSUPPORTED_IMAGE"


class ScanBackend(Protocol):
    def query_scan_status(
        self,
        identity: ImageIdentity,
        repository: str,
        *,
        timeout: float | None = None,
    ) -> ScanStatusReport: ...


def classify_unsupported_image(report: ScanStatusReport) -> Unsupported | None:
    """Return an Unsupported outcome when a failed scan means "cannot scan this image".

    The returned outcome carries one synthetic INFORMATIONAL finding so that
    reports and the gate treat the image as scanned.
    """
    if report.status in POLLING_STATUSES or report.status == ScanStatus.COMPLETE:
        return None
    description = report.description or ""
    if UNSUPPORTED_IMAGE_MARKER not in description:
        return None
    return Unsupported(
        reason=description,
        finding=Finding(
            id=UNSUPPORTED_IMAGE_FINDING_ID,
            severity=SeverityLevel.INFORMATIONAL,
            description=description,
        ),
    )


def _state_for(status: ScanStatus) -> WaitState:
    if status == ScanStatus.PENDING:
        return WaitState.PENDING
    if status == ScanStatus.IN_PROGRESS:
        return WaitState.IN_PROGRESS
    if status == ScanStatus.COMPLETE:
        return WaitState.COMPLETE
    return WaitState.FAILED


def wait_for_scan(
    backend: ScanBackend,
    identity: ImageIdentity,
    repository: str,
    *,
    timeout: float = DEFAULT_SCAN_WAIT_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    not_registered_polls: int = DEFAULT_NOT_REGISTERED_POLLS,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> ScanOutcome:
    """Poll the scan backend until the scan for ``identity`` is terminal.

    Each query is given at most the time left before the deadline (never
    less than ``MIN_QUERY_TIMEOUT``), so a slow backend call near the end
    overruns ``timeout`` by a few seconds at most.

    Args:
        backend: Scan backend to query
        identity: Digest and tag of the pushed image
        repository: Repository name as the backend knows it (no domain)
        timeout: Overall deadline in seconds
        poll_interval: Fixed delay between queries in seconds
        not_registered_polls: Consecutive "no scan registered" answers
            tolerated right after the push before giving up
        clock: Monotonic clock, injectable for tests
        sleep: Sleep function, injectable for tests

    Returns:
        Findings, Unsupported, TimedOut or BackendError. Never raises for
        backend failures; they are returned as BackendError.
    """
    deadline = clock() + timeout
    state = WaitState.PENDING
    polls = 0
    unregistered = 0

    while True:
        polls += 1
        query_timeout = max(deadline - clock(), MIN_QUERY_TIMEOUT)
        try:
            report = backend.query_scan_status(identity, repository, timeout=query_timeout)
        except TransportError as exc:
            return BackendError(cause=exc)

        if report.registered:
            unregistered = 0
        else:
            unregistered += 1
            if unregistered >= not_registered_polls:
                return BackendError(
                    cause=TransportError(
                        f"no image scan was registered for {repository} after {unregistered} queries; "
                        "check that scan-on-push is enabled for the repository"
                    )
                )

        new_state = _state_for(report.status)
        if new_state != state or polls == 1:
            console.print(f"Image scan status: {report.status.value}")
        state = new_state

        if state == WaitState.COMPLETE:
            return Findings(findings=tuple(report.findings or ()))

        if state == WaitState.FAILED:
            unsupported = classify_unsupported_image(report)
            if unsupported is not None:
                console.print(f"[yellow]Image is not supported by the scanner:[/yellow] {unsupported.reason}")
                return unsupported
            return BackendError(
                cause=TransportError(
                    f"image scan failed with status {report.status.value}: "
                    f"{report.description or 'no description'}"
                )
            )

        now = clock()
        if now >= deadline:
            console.print(f"[red]Image scan still {report.status.value} after {timeout:g} seconds[/red]")
            return TimedOut(timeout=timeout)

        console.print(f"[dim]Waiting for scan ({state.value}), poll #{polls}...[/dim]")
        sleep(min(poll_interval, deadline - now))
