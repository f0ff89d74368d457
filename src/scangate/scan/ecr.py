"""Scan backend for AWS ECR basic scanning, driven through the aws CLI."""

from __future__ import annotations

import json
from typing import Any

from scangate.errors import TransportError
from scangate.findings.severity import parse_backend_severity
from scangate.findings.types import Finding
from scangate.registry.exec import DEFAULT_COMMAND_TIMEOUT, ExecError, run_command
from scangate.registry.types import ImageIdentity
from scangate.scan.types import ScanStatus, ScanStatusReport
from scangate.schemas.validator import validate_data

SCAN_NOT_FOUND_MARKER = "ScanNotFoundException"


def parse_scan_findings(payload: dict[str, Any]) -> ScanStatusReport:
    """Turn a DescribeImageScanFindings response into a ScanStatusReport.

    Raises:
        TransportError: If the payload does not match the expected shape or
            carries an unknown status.
    """
    ok, errors = validate_data(payload, "ecr_scan_findings", strict=False)
    if not ok:
        raise TransportError(f"unexpected describe-image-scan-findings response: {'; '.join(errors)}")

    scan_status = payload["imageScanStatus"]
    try:
        status = ScanStatus(scan_status["status"])
    except ValueError as exc:
        raise TransportError(f"unknown image scan status: {scan_status['status']}") from exc

    findings: tuple[Finding, ...] | None = None
    if status == ScanStatus.COMPLETE:
        raw_findings = (payload.get("imageScanFindings") or {}).get("findings") or []
        findings = tuple(
            Finding(
                id=item.get("name"),
                severity=parse_backend_severity(item.get("severity")),
                description=item.get("description"),
                uri=item.get("uri"),
            )
            for item in raw_findings
        )

    return ScanStatusReport(
        status=status,
        description=scan_status.get("description"),
        findings=findings,
    )


class EcrScanBackend:
    """Query ECR image scan findings with ``aws ecr describe-image-scan-findings``.

    The aws CLI follows pagination tokens itself, so one call returns every
    finding of a completed scan.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        region: str | None = None,
        aws_bin: str = "aws",
    ):
        self.timeout = timeout
        self.region = region
        self.aws_bin = aws_bin

    def _argv(self, identity: ImageIdentity, repository: str) -> list[str]:
        argv = [
            self.aws_bin,
            "ecr",
            "describe-image-scan-findings",
            "--repository-name",
            repository,
            "--image-id",
            f"imageDigest={identity.digest},imageTag={identity.tag}",
            "--output",
            "json",
        ]
        if self.region:
            argv.extend(["--region", self.region])
        return argv

    def query_scan_status(
        self,
        identity: ImageIdentity,
        repository: str,
        *,
        timeout: float | None = None,
    ) -> ScanStatusReport:
        """Query the scan status once.

        ``timeout`` caps this call below the configured per-call timeout.
        """
        call_timeout = self.timeout if timeout is None else min(self.timeout, timeout)
        result = run_command(self._argv(identity, repository), timeout=call_timeout, check=False)

        if result.returncode != 0:
            # The scan is registered asynchronously after the push.
            if SCAN_NOT_FOUND_MARKER in result.stderr:
                return ScanStatusReport(
                    status=ScanStatus.PENDING,
                    description=result.stderr.strip(),
                    registered=False,
                )
            raise ExecError(result)

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise TransportError("describe-image-scan-findings did not return JSON") from exc
        if not isinstance(payload, dict):
            raise TransportError("describe-image-scan-findings returned a non-object JSON payload")

        return parse_scan_findings(payload)
