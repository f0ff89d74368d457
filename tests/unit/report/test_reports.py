"""Unit tests for the report sinks."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from rich.console import Console

from scangate.errors import InternalInvariantViolation
from scangate.findings.severity import SeverityLevel
from scangate.findings.types import Finding, IgnorePolicy
from scangate.pipeline.promotion.gate import evaluate
from scangate.report.json_report import JsonReport, build_gate_report
from scangate.report.junit import SUITE_NAME, JunitReport
from scangate.report.table import TableReport
from scangate.schemas.validator import validate_data

FINDINGS = [
    Finding(id="CVE-1", severity=SeverityLevel.CRITICAL, description="bad", uri="https://example.test/CVE-1"),
    Finding(id="CVE-2", severity=SeverityLevel.LOW),
    Finding(id="CVE-3", severity=SeverityLevel.LOW),
]
POLICY = IgnorePolicy(ignored_severities=(SeverityLevel.LOW,), ignored_finding_ids=("CVE-9",))


def test_junit_has_one_case_per_severity(tmp_path: Path) -> None:
    path = tmp_path / "reports" / "junit.xml"
    JunitReport(path).emit(evaluate(FINDINGS, POLICY), POLICY)

    root = ET.parse(path).getroot()
    suite = root.find("testsuite")
    assert suite is not None
    assert suite.get("name") == SUITE_NAME
    assert suite.get("tests") == "6"
    assert suite.get("failures") == "2"

    cases = {case.get("name"): case for case in suite.findall("testcase")}
    assert list(cases) == ["CRITICAL", "HIGH", "MEDIUM", "LOW", "INFORMATIONAL", "UNDEFINED"]
    assert cases["HIGH"].find("failure") is None
    assert cases["CRITICAL"].find("failure").text == "CVE-1"
    low_failure = cases["LOW"].find("failure").text
    assert "CVE-2 (ignored: ignored severity level)" in low_failure
    assert "CVE-3" in low_failure


def test_junit_all_pass_without_findings(tmp_path: Path) -> None:
    path = tmp_path / "junit.xml"
    JunitReport(path).emit(evaluate([], IgnorePolicy()), IgnorePolicy())

    suite = ET.parse(path).getroot().find("testsuite")
    assert suite.get("failures") == "0"
    assert all(case.find("failure") is None for case in suite.findall("testcase"))


def test_json_report_matches_schema(tmp_path: Path) -> None:
    path = tmp_path / "gate.json"
    JsonReport(path).emit(evaluate(FINDINGS, POLICY), POLICY)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert validate_data(payload, "gate_report") == (True, [])
    assert payload["status"] == "failed"
    assert payload["counts"] == {"total": 3, "ignored": 2, "unignored": 1}
    assert payload["severities"]["LOW"] == {"total": 2, "ignored": 2}
    assert payload["severities"]["HIGH"] == {"total": 0, "ignored": 0}
    assert payload["policy"]["ignored_finding_ids"] == ["CVE-9"]


def test_json_report_rejects_invalid_payload_without_writing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("scangate.report.json_report.build_gate_report", lambda verdict, policy: {"status": "bogus"})
    path = tmp_path / "gate.json"

    with pytest.raises(InternalInvariantViolation, match="gate_report"):
        JsonReport(path).emit(evaluate(FINDINGS, POLICY), POLICY)

    assert not path.exists()


def test_json_report_ignore_reasons() -> None:
    payload = build_gate_report(evaluate(FINDINGS, POLICY), POLICY)
    reasons = {item["id"]: item["ignore_reason"] for item in payload["findings"]}
    assert reasons == {"CVE-1": None, "CVE-2": "ignored severity level", "CVE-3": "ignored severity level"}


def test_table_report_renders_rows_and_result() -> None:
    out = Console(record=True, width=200)
    TableReport(out).emit(evaluate(FINDINGS, POLICY), POLICY)

    text = out.export_text()
    assert "Found the following CVEs" in text
    assert "CVE-1" in text
    assert "Yes (ignored severity level)" in text
    assert "Ignored CVE severity levels: LOW" in text
    assert "Ignored CVE's:               CVE-9" in text
    assert "Final scan result: Failed" in text


def test_table_report_passed() -> None:
    out = Console(record=True, width=200)
    TableReport(out).emit(evaluate([], IgnorePolicy()), IgnorePolicy())
    assert "Final scan result: Passed" in out.export_text()
