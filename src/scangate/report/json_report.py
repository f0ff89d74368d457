"""Machine readable gate report (JSON)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from scangate.artifacts.canonical_json import write_json
from scangate.errors import InternalInvariantViolation
from scangate.findings.policy import classify_by_severity, is_ignored
from scangate.findings.types import IgnorePolicy
from scangate.pipeline.promotion.types import GateVerdict
from scangate.schemas.validator import validate_data
from scangate.ui import console

GATE_REPORT_SCHEMA = "gate_report"
GATE_REPORT_SCHEMA_VERSION = "1.0"


def build_gate_report(verdict: GateVerdict, policy: IgnorePolicy) -> dict[str, Any]:
    """Build the JSON report payload for a verdict."""
    findings = []
    for finding in verdict.findings:
        ignored, reason = is_ignored(finding, policy)
        findings.append({
            "id": finding.id,
            "severity": finding.severity.value,
            "description": finding.description,
            "uri": finding.uri,
            "ignored": ignored,
            "ignore_reason": reason or None,
        })

    severities = {
        level.value: {
            "total": len(bucket),
            "ignored": sum(1 for finding in bucket if is_ignored(finding, policy)[0]),
        }
        for level, bucket in classify_by_severity(verdict.findings).items()
    }

    return {
        "schema_version": GATE_REPORT_SCHEMA_VERSION,
        "status": "passed" if verdict.passed else "failed",
        "unsupported_reason": verdict.unsupported_reason,
        "policy": {
            "ignored_severities": [level.value for level in policy.ignored_severities],
            "ignored_finding_ids": list(policy.ignored_finding_ids),
        },
        "severities": severities,
        "findings": findings,
        "counts": {
            "total": len(verdict.findings),
            "ignored": len(verdict.ignored),
            "unignored": len(verdict.findings) - len(verdict.ignored),
        },
    }


class JsonReport:
    """Report sink writing a schema-validated JSON gate report."""

    def __init__(self, path: Path):
        self.path = path

    def emit(self, verdict: GateVerdict, policy: IgnorePolicy) -> None:
        payload = build_gate_report(verdict, policy)
        try:
            validate_data(payload, GATE_REPORT_SCHEMA, strict=True)
        except ValueError as exc:
            raise InternalInvariantViolation(str(exc)) from exc
        console.print(f"Writing JSON report to: {self.path}")
        write_json(self.path, payload)
