"""Command runners for the docker and aws CLIs."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass

from scangate.errors import TransportError

DEFAULT_COMMAND_TIMEOUT = 120.0


@dataclass(frozen=True)
class ExecResult:
    """Result envelope for subprocess execution."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


class ExecError(TransportError):
    """Raised when a command returns non-zero in check mode, or cannot run."""

    def __init__(self, result: ExecResult, *, redact: tuple[str, ...] = ()):
        rendered = " ".join(result.argv)
        detail = (result.stderr or result.stdout).strip()
        for secret in redact:
            detail = detail.replace(secret, "***")
        super().__init__(f"command failed ({result.returncode}): {rendered}\n{detail}")
        self.result = result


def run_command(
    argv: list[str],
    *,
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
    check: bool = True,
    input_text: str | None = None,
) -> ExecResult:
    """Run command with a bounded timeout and return a structured result.

    A missing executable or an expired timeout is reported as ``ExecError``
    with return code -1.
    """
    try:
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
            input=input_text,
        )
    except subprocess.TimeoutExpired as exc:
        result = ExecResult(
            argv=tuple(argv),
            returncode=-1,
            stdout="",
            stderr=f"timed out after {timeout:g} seconds",
        )
        raise ExecError(result) from exc
    except FileNotFoundError as exc:
        result = ExecResult(argv=tuple(argv), returncode=-1, stdout="", stderr=str(exc))
        raise ExecError(result) from exc

    result = ExecResult(
        argv=tuple(argv),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    if check and result.returncode != 0:
        raise ExecError(result, redact=(input_text,) if input_text else ())
    return result
