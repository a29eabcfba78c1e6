"""
Adapter base — the contract between pipeline services and external tools.

Services never call podman, docker, sha512sum, bats or git directly.
They build an Action and hand it to the AdapterRegistry, which routes
it to the adapter registered under ``action.adapter``. This keeps every
external tool replaceable by a MockAdapter in tests.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, Field

from alpine_brew.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to run one Action."""

    action: Action
    cwd: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)

    @property
    def params(self) -> dict:
        return self.action.params


class Adapter(ABC):
    """Abstract base class for tool adapters.

    Adapters return receipts and NEVER raise. To add one:
        1. Subclass Adapter
        2. Implement name, is_available, validate, execute
        3. Register it in the AdapterRegistry
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Capability name the registry routes on (e.g. 'container')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying executable can be found. Never raises."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the action. Failures are captured in the Receipt."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class CommandAdapter(Adapter):
    """Adapter backed by a single executable.

    Subclasses set ``binary`` and translate params into an argv in
    ``build_command``. Output is not captured unless the action asks for
    it, so long container builds stream straight to the terminal.
    """

    binary: str = ""

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    @abstractmethod
    def build_command(self, context: ExecutionContext) -> list[str]:
        """Translate the action into an argv list (binary included)."""

    def execute(self, context: ExecutionContext) -> Receipt:
        try:
            command = self.build_command(context)
        except (KeyError, ValueError) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Invalid action params: {e}",
            )
        return run_command(self.name, context, command)


def run_command(adapter: str, context: ExecutionContext, command: list[str]) -> Receipt:
    """Run ``command`` for ``context`` and wrap the outcome in a Receipt.

    Action params honoured:
        capture (bool): capture stdout/stderr instead of inheriting them.
        timeout (int | None): seconds; None (default) waits forever.
    """
    capture = bool(context.params.get("capture", False))
    timeout = context.params.get("timeout")
    env = None
    if context.env:
        env = {**os.environ, **context.env}

    start = time.monotonic()
    try:
        result = subprocess.run(
            command,
            cwd=str(context.cwd) if context.cwd else None,
            env=env,
            capture_output=capture,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return Receipt.failure(
            adapter=adapter,
            action_id=context.action.id,
            error=f"Executable not found: {command[0]}",
            command=command,
        )
    except subprocess.TimeoutExpired:
        return Receipt.failure(
            adapter=adapter,
            action_id=context.action.id,
            error=f"Command timed out after {timeout}s",
            command=command,
        )
    except OSError as e:
        return Receipt.failure(
            adapter=adapter,
            action_id=context.action.id,
            error=f"Command execution error: {e}",
            command=command,
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (result.stdout or "").strip()
    stderr = (result.stderr or "").strip()

    if result.returncode == 0:
        return Receipt.success(
            adapter=adapter,
            action_id=context.action.id,
            output=stdout,
            command=command,
            return_code=0,
            duration_ms=elapsed_ms,
            metadata={"stderr": stderr} if stderr else {},
        )
    return Receipt.failure(
        adapter=adapter,
        action_id=context.action.id,
        error=stderr or f"Command exited with code {result.returncode}",
        output=stdout,
        command=command,
        return_code=result.returncode,
        duration_ms=elapsed_ms,
    )
