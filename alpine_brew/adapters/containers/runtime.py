"""
Container runtime adapter — image build, run and removal.

Podman and docker accept the same CLI for everything the pipeline
needs, so one adapter serves both; ``binary`` picks which executable is
invoked. Uses the CLI only, never a daemon API.
"""

from __future__ import annotations

import logging

from alpine_brew.adapters.base import CommandAdapter, ExecutionContext

logger = logging.getLogger(__name__)

SUPPORTED_RUNTIMES = ("podman", "docker")


class ContainerRuntimeAdapter(CommandAdapter):
    """Image build / run / rmi through podman or docker.

    Action params:
        operation (str): One of 'build', 'run', 'rmi', 'version'.
        tag (str): Image tag (build).
        context (str): Build context directory (build).
        image (str): Image reference (run, rmi).
        args (list[str]): Arguments passed to the image entrypoint (run).
        volumes (dict[str, str]): host path → container path (run).
        env (dict[str, str]): Variables set inside the container (run).
        user (str): ``--user`` value (run).
        remove (bool): Add ``--rm`` (run, default True).
    """

    _OPERATIONS = {"build", "run", "rmi", "version"}

    def __init__(self, binary: str = "docker"):
        if binary not in SUPPORTED_RUNTIMES:
            raise ValueError(f"Unsupported container runtime: {binary}")
        self.binary = binary

    @property
    def name(self) -> str:
        return "container"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation not in self._OPERATIONS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(self._OPERATIONS))}"
        if operation == "build" and not (context.params.get("tag") and context.params.get("context")):
            return False, "build requires 'tag' and 'context'"
        if operation in ("run", "rmi") and not context.params.get("image"):
            return False, f"{operation} requires 'image'"
        return True, ""

    def build_command(self, context: ExecutionContext) -> list[str]:
        params = context.params
        operation = params["operation"]

        if operation == "build":
            return [self.binary, "build", "-t", params["tag"], str(params["context"])]

        if operation == "run":
            cmd = [self.binary, "run"]
            for key, value in params.get("env", {}).items():
                cmd += ["-e", f"{key}={value}"]
            if params.get("user"):
                cmd += ["--user", str(params["user"])]
            if params.get("remove", True):
                cmd.append("--rm")
            for host, container in params.get("volumes", {}).items():
                cmd += ["-v", f"{host}:{container}"]
            cmd.append(params["image"])
            cmd += [str(a) for a in params.get("args", [])]
            return cmd

        if operation == "rmi":
            return [self.binary, "rmi", params["image"]]

        return [self.binary, "--version"]
