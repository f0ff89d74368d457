"""JUnit XML report: one test case per severity level.

A test case fails when its severity bucket holds any finding, ignored or
not, so ignored CVEs stay visible in CI dashboards. Whether the gate passed
is decided elsewhere.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from scangate.findings.policy import classify_by_severity, is_ignored
from scangate.findings.severity import list_severities
from scangate.findings.types import IgnorePolicy
from scangate.pipeline.promotion.types import GateVerdict
from scangate.ui import console

SUITE_NAME = "Container Image CVE scan"
CASE_SECONDS = 1


def build_junit_tree(verdict: GateVerdict, policy: IgnorePolicy) -> ET.ElementTree:
    buckets = classify_by_severity(verdict.findings)
    levels = list_severities()
    failures = sum(1 for level in levels if buckets[level])

    testsuites = ET.Element("testsuites")
    suite = ET.SubElement(
        testsuites,
        "testsuite",
        {
            "name": SUITE_NAME,
            "tests": str(len(levels)),
            "failures": str(failures),
            "errors": "0",
            "time": f"{len(levels) * CASE_SECONDS:.3f}",
        },
    )
    properties = ET.SubElement(suite, "properties")
    ET.SubElement(properties, "property", {"name": "coverage.statements.pct", "value": "100"})

    for level in levels:
        case = ET.SubElement(
            suite,
            "testcase",
            {"classname": SUITE_NAME, "name": level.value, "time": f"{CASE_SECONDS:.3f}"},
        )
        bucket = buckets[level]
        if not bucket:
            continue
        lines = []
        for finding in bucket:
            ignored, reason = is_ignored(finding, policy)
            line = finding.id or "(unnamed finding)"
            if ignored:
                line += f" (ignored: {reason})"
            lines.append(line)
        failure = ET.SubElement(case, "failure", {"message": "Failed", "type": ""})
        failure.text = "\n".join(lines)

    ET.indent(testsuites)
    return ET.ElementTree(testsuites)


class JunitReport:
    """Report sink writing the JUnit XML file."""

    def __init__(self, path: Path):
        self.path = path

    def emit(self, verdict: GateVerdict, policy: IgnorePolicy) -> None:
        console.print(f"Writing junit report to: {self.path}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        build_junit_tree(verdict, policy).write(self.path, encoding="utf-8", xml_declaration=True)
