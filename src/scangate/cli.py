"""scangate CLI - scan-gated image promotion."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from scangate import __version__
from scangate.config import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_SCAN_WAIT_TIMEOUT_MINUTES,
    GateConfig,
    build_config,
)
from scangate.errors import GateBlocked, ScanGateError
from scangate.findings.severity import list_severities, severity_levels_as_string
from scangate.pipeline.promotion.orchestrator import ReportSink, promote_with_config
from scangate.pipeline.promotion.types import PromotionStage
from scangate.registry.docker import DockerRegistryClient
from scangate.registry.exec import DEFAULT_COMMAND_TIMEOUT
from scangate.registry.reference import parse_reference
from scangate.report.json_report import JsonReport
from scangate.report.junit import JunitReport
from scangate.report.table import TableReport
from scangate.scan.ecr import EcrScanBackend
from scangate.ui import console

EXIT_ERROR = 1
EXIT_BLOCKED = 2

cli = typer.Typer(
    name="scangate",
    help="Push container images to ECR only after a clean vulnerability scan.",
    no_args_is_help=True,
)


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show scangate version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """
    scangate - stage, scan, decide, promote.

    Find usage examples with: scangate gate --help
    """


def _build_sinks(config: GateConfig, out: Console) -> list[ReportSink]:
    sinks: list[ReportSink] = [TableReport(out)]
    if config.junit_report_path is not None:
        sinks.append(JunitReport(config.junit_report_path))
    if config.json_report_path is not None:
        sinks.append(JsonReport(config.json_report_path))
    return sinks


@cli.command()
def gate(
    images: str = typer.Option(
        ...,
        "--images",
        "-i",
        envvar="SCANGATE_IMAGES",
        help="Space-separated list of full image references to push.",
    ),
    stage_repo: str = typer.Option(
        "",
        "--stage-repo",
        "-s",
        envvar="SCANGATE_STAGE_REPO",
        help=(
            "ECR repository where the image is pushed for scanning before it is pushed to the "
            "destination. Defaults to the repository of the first image."
        ),
    ),
    ignore_levels: str = typer.Option(
        "",
        "--ignore-levels",
        "-l",
        envvar="SCANGATE_IGNORE_LEVELS",
        help=f"Space-separated list of severity levels to ignore. Valid levels: {severity_levels_as_string()}",
    ),
    ignore_cve: str = typer.Option(
        "",
        "--ignore-cve",
        "-c",
        envvar="SCANGATE_IGNORE_CVE",
        help="Space-separated list of individual CVEs to ignore.",
    ),
    policy_file: Path | None = typer.Option(
        None,
        "--policy-file",
        envvar="SCANGATE_POLICY_FILE",
        help="YAML file with ignore_levels and ignore_cve lists (default: ./scangate.yaml if present).",
    ),
    junit_report_path: Path | None = typer.Option(
        None,
        "--junit-report-path",
        "-j",
        envvar="SCANGATE_JUNIT_REPORT_PATH",
        help="Write the scan result as a JUnit XML report to this path.",
    ),
    json_report_path: Path | None = typer.Option(
        None,
        "--json-report-path",
        envvar="SCANGATE_JSON_REPORT_PATH",
        help="Write the scan result as a JSON report to this path.",
    ),
    scan_wait_timeout: int = typer.Option(
        DEFAULT_SCAN_WAIT_TIMEOUT_MINUTES,
        "--scan-wait-timeout",
        envvar="SCANGATE_SCAN_WAIT_TIMEOUT",
        help="Max minutes to wait for the scan to complete. The image is not pushed if exceeded.",
    ),
    poll_interval: float = typer.Option(
        DEFAULT_POLL_INTERVAL_SECONDS,
        "--poll-interval",
        envvar="SCANGATE_POLL_INTERVAL",
        help="Seconds between scan status queries.",
    ),
    command_timeout: float = typer.Option(
        DEFAULT_COMMAND_TIMEOUT,
        "--command-timeout",
        envvar="SCANGATE_COMMAND_TIMEOUT",
        help="Seconds allowed for each docker/aws call.",
    ),
    skip_push: bool = typer.Option(
        False,
        "--skip-push",
        "-p",
        envvar="SCANGATE_SKIP_PUSH",
        help="Only push to the scanning repo; never push to the destination.",
    ),
    additional_tags: str = typer.Option(
        "",
        "--additional-tags",
        "-t",
        envvar="SCANGATE_ADDITIONAL_TAGS",
        help="Space-separated list of extra tags to push for every image after the gate passes.",
    ),
) -> None:
    """Stage, scan, and promote images.

    Exit codes:
      0 - Gate passed (images promoted, or push skipped)
      1 - Error (bad input, registry/backend failure, scan timeout)
      2 - Gate blocked by unignored CVEs
    """
    console.print(f"scangate, version {__version__}")

    try:
        config = build_config(
            images=images,
            stage_repo=stage_repo or None,
            ignore_levels=ignore_levels,
            ignore_cve=ignore_cve,
            policy_file=policy_file,
            junit_report_path=junit_report_path,
            json_report_path=json_report_path,
            scan_wait_timeout=scan_wait_timeout,
            poll_interval=poll_interval,
            command_timeout=command_timeout,
            skip_push=skip_push,
            additional_tags=additional_tags,
        )
        registry = DockerRegistryClient(timeout=config.command_timeout)
        backend = EcrScanBackend(
            timeout=config.command_timeout,
            region=parse_reference(config.stage_repo).ecr_region(),
        )
        result = promote_with_config(
            config,
            registry=registry,
            backend=backend,
            sinks=_build_sinks(config, console),
        )
    except GateBlocked as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(EXIT_BLOCKED) from exc
    except (ScanGateError, OSError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(EXIT_ERROR) from exc

    if result.stage == PromotionStage.PROMOTED:
        console.print(f"[green]✓ Promoted {len(result.pushed_refs)} image reference(s)[/green]")
    else:
        console.print("[green]✓ Scan gate passed[/green] (destination push skipped)")


@cli.command()
def severities() -> None:
    """List valid severity levels, most severe first."""
    for level in list_severities():
        typer.echo(level.value)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
