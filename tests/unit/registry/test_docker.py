"""Unit tests for the docker registry client."""

from __future__ import annotations

import subprocess

import pytest

from scangate.errors import TransportError
from scangate.registry.docker import DockerRegistryClient, parse_push_output, summarize_layers
from scangate.registry.exec import ExecError, ExecResult, run_command
from scangate.registry.types import ImageIdentity

ECR = "123456789012.dkr.ecr.us-east-1.amazonaws.com"
DIGEST = "sha256:" + "e" * 64

PUSH_OUTPUT = f"""The push refers to repository [{ECR}/app]
5f70bf18a086: Preparing
3c2b1a0f9e8d: Preparing
5f70bf18a086: Layer already exists
3c2b1a0f9e8d: Pushed
v1: digest: {DIGEST} size: 1570
"""


class _RunStub:
    def __init__(self, outputs: dict[tuple[str, ...], ExecResult]):
        self.outputs = outputs
        self.calls: list[tuple[list[str], str | None]] = []

    def __call__(self, argv: list[str], *, timeout: float, check: bool = True, input_text=None) -> ExecResult:
        _ = (timeout, check)
        self.calls.append((argv, input_text))
        key = tuple(argv)
        if key not in self.outputs:
            raise AssertionError(f"missing stub for argv: {argv}")
        return self.outputs[key]


def _ok(stdout: str = "") -> ExecResult:
    return ExecResult(argv=("stub",), returncode=0, stdout=stdout, stderr="")


def test_parse_push_output() -> None:
    assert parse_push_output(PUSH_OUTPUT) == ImageIdentity(digest=DIGEST, tag="v1")


def test_parse_push_output_without_digest_fails() -> None:
    with pytest.raises(TransportError, match="without reporting an image digest"):
        parse_push_output("5f70bf18a086: Pushed\n")


def test_summarize_layers_uses_final_status() -> None:
    assert summarize_layers(PUSH_OUTPUT) == {"Layer already exists": 1, "Pushed": 1}


def test_push_logs_in_once_per_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _RunStub({
        ("aws", "ecr", "get-login-password", "--region", "us-east-1"): _ok("s3cret\n"),
        ("docker", "login", "--username", "AWS", "--password-stdin", ECR): _ok("Login Succeeded"),
        ("docker", "push", f"{ECR}/app:v1"): _ok(PUSH_OUTPUT),
    })
    monkeypatch.setattr("scangate.registry.docker.run_command", stub)
    client = DockerRegistryClient(timeout=5)

    assert client.push(f"{ECR}/app:v1") == ImageIdentity(digest=DIGEST, tag="v1")
    client.push(f"{ECR}/app:v1")

    argvs = [argv for argv, _ in stub.calls]
    assert argvs.count(["aws", "ecr", "get-login-password", "--region", "us-east-1"]) == 1
    assert argvs.count(["docker", "push", f"{ECR}/app:v1"]) == 2
    login_input = [text for argv, text in stub.calls if argv[:2] == ["docker", "login"]]
    assert login_input == ["s3cret"]


def test_push_skips_login_for_non_ecr(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _RunStub({("docker", "push", "ghcr.io/team/app:v1"): _ok(PUSH_OUTPUT)})
    monkeypatch.setattr("scangate.registry.docker.run_command", stub)

    DockerRegistryClient().push("ghcr.io/team/app:v1")

    assert [argv for argv, _ in stub.calls] == [["docker", "push", "ghcr.io/team/app:v1"]]


def test_tag_runs_docker_tag(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _RunStub({("docker", "tag", "src:1", f"{ECR}/app:scan"): _ok()})
    monkeypatch.setattr("scangate.registry.docker.run_command", stub)

    DockerRegistryClient().tag("src:1", f"{ECR}/app:scan")

    assert len(stub.calls) == 1


def test_run_command_wraps_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise(*args, **kwargs):
        raise subprocess.TimeoutExpired(cmd=args[0], timeout=kwargs["timeout"])

    monkeypatch.setattr("scangate.registry.exec.subprocess.run", _raise)

    with pytest.raises(ExecError, match="timed out after 3 seconds") as excinfo:
        run_command(["docker", "push", "x"], timeout=3)
    assert isinstance(excinfo.value, TransportError)
    assert excinfo.value.result.returncode == -1


def test_run_command_missing_binary_is_transport_error() -> None:
    with pytest.raises(TransportError):
        run_command(["scangate-definitely-missing-binary"], timeout=3)


def test_run_command_nonzero_exit(monkeypatch: pytest.MonkeyPatch) -> None:
    completed = subprocess.CompletedProcess(args=["docker"], returncode=1, stdout="", stderr="denied: no access")
    monkeypatch.setattr("scangate.registry.exec.subprocess.run", lambda *a, **k: completed)

    with pytest.raises(ExecError, match="denied: no access"):
        run_command(["docker", "push", "x"])
    assert run_command(["docker", "push", "x"], check=False).returncode == 1
