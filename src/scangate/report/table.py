"""Human readable findings table printed to the console."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from scangate.findings.policy import is_ignored
from scangate.findings.types import IgnorePolicy
from scangate.pipeline.promotion.types import GateVerdict
from scangate.ui import console as default_console


def build_findings_table(verdict: GateVerdict, policy: IgnorePolicy) -> Table:
    table = Table(show_lines=False)
    for column in ("CVE", "Severity", "Ignored?", "Description", "URI"):
        table.add_column(column, justify="left", overflow="fold")

    for finding in verdict.findings:
        ignored, reason = is_ignored(finding, policy)
        table.add_row(
            finding.id or "",
            finding.severity.value,
            f"Yes ({reason})" if ignored else "No",
            finding.description or "",
            finding.uri or "",
        )
    return table


class TableReport:
    """Report sink that renders the verdict as a table plus a summary."""

    def __init__(self, console: Console | None = None):
        self.console = console or default_console

    def emit(self, verdict: GateVerdict, policy: IgnorePolicy) -> None:
        self.console.print()
        self.console.print("Found the following CVEs")
        self.console.print(build_findings_table(verdict, policy))
        if verdict.unsupported_reason:
            self.console.print(f"[yellow]Scanner could not scan this image:[/yellow] {verdict.unsupported_reason}")

        levels = ", ".join(level.value for level in policy.ignored_severities)
        self.console.print()
        self.console.print(f"Ignored CVE severity levels: {levels}", highlight=False)
        self.console.print(f"Ignored CVE's:               {', '.join(policy.ignored_finding_ids)}", highlight=False)
        self.console.print()
        if verdict.passed:
            self.console.print("Final scan result: [green]Passed[/green]")
        else:
            self.console.print("Final scan result: [red]Failed[/red]")
