"""Pytest configuration and fixtures for scangate tests."""
from pathlib import Path

import pytest


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)

    if not cov_enabled:
        return

    coverage_files = list(Path.cwd().glob(".coverage*"))

    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'scangate' (the package) not 'src/scangate' (filesystem path).",
            returncode=1
        )


@pytest.fixture(autouse=True)
def _no_spinner(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCANGATE_SPINNER", "0")
