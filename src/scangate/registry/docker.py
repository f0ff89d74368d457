"""Registry client backed by the docker and aws CLIs."""

from __future__ import annotations

import re
from collections import Counter

from scangate.errors import TransportError
from scangate.registry.exec import DEFAULT_COMMAND_TIMEOUT, ExecResult, run_command
from scangate.registry.reference import parse_reference
from scangate.registry.types import ImageIdentity
from scangate.ui import Spinner, console

PUSH_DIGEST_RE = re.compile(
    r"^(?P<tag>[A-Za-z0-9_][A-Za-z0-9_.-]*): digest: (?P<digest>[A-Za-z0-9]+:[0-9a-fA-F]+) size: \d+"
)
LAYER_STATUS_RE = re.compile(r"^(?P<layer>[0-9a-f]{12,}): (?P<status>.+)$")
ECR_LOGIN_USER = "AWS"


def parse_push_output(stdout: str) -> ImageIdentity:
    """Extract the pushed tag and digest from ``docker push`` output.

    Raises:
        TransportError: If no digest line is present.
    """
    identity: ImageIdentity | None = None
    for line in stdout.splitlines():
        match = PUSH_DIGEST_RE.match(line.strip())
        if match:
            identity = ImageIdentity(digest=match.group("digest"), tag=match.group("tag"))
    if identity is None:
        raise TransportError("docker push finished without reporting an image digest")
    return identity


def summarize_layers(stdout: str) -> Counter[str]:
    """Count layers by their final status line (Pushed, Layer already exists, ...)."""
    final: dict[str, str] = {}
    for line in stdout.splitlines():
        match = LAYER_STATUS_RE.match(line.strip())
        if match:
            final[match.group("layer")] = match.group("status")
    return Counter(final.values())


class DockerRegistryClient:
    """Tag and push images through the local docker daemon.

    ECR registries are logged into lazily, once per registry domain, using a
    password from ``aws ecr get-login-password``.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        docker_bin: str = "docker",
        aws_bin: str = "aws",
    ):
        self.timeout = timeout
        self.docker_bin = docker_bin
        self.aws_bin = aws_bin
        self._logged_in: set[str] = set()

    def _docker(self, args: list[str], *, input_text: str | None = None) -> ExecResult:
        return run_command(
            [self.docker_bin, *args],
            timeout=self.timeout,
            input_text=input_text,
        )

    def login(self, image_ref: str) -> None:
        """Authenticate docker against the ECR registry of ``image_ref``."""
        reference = parse_reference(image_ref)
        if not reference.is_ecr() or reference.domain in self._logged_in:
            return

        argv = [self.aws_bin, "ecr", "get-login-password"]
        region = reference.ecr_region()
        if region:
            argv.extend(["--region", region])
        password = run_command(argv, timeout=self.timeout).stdout.strip()
        if not password:
            raise TransportError(f"aws ecr get-login-password returned no password for {reference.domain}")

        self._docker(
            ["login", "--username", ECR_LOGIN_USER, "--password-stdin", reference.domain],
            input_text=password,
        )
        self._logged_in.add(reference.domain)

    def tag(self, source_ref: str, target_ref: str) -> None:
        self._docker(["tag", source_ref, target_ref])

    def push(self, image_ref: str) -> ImageIdentity:
        """Push ``image_ref`` and return the identity the registry reported."""
        self.login(image_ref)
        result = Spinner(f"Pushing {image_ref}").run(lambda: self._docker(["push", image_ref]))

        layers = summarize_layers(result.stdout)
        for status, count in sorted(layers.items()):
            console.print(f"docker-push: {count} layer(s) {status}")

        identity = parse_push_output(result.stdout)
        console.print(f"docker-push: {identity.tag} digest {identity.digest}")
        return identity
