"""
Bats adapter — runs a Bash Automated Testing System suite.
"""

from __future__ import annotations

from alpine_brew.adapters.base import CommandAdapter, ExecutionContext


class BatsAdapter(CommandAdapter):
    """Run a bats suite file.

    Action params:
        suite (str): Path to the ``.bats`` file.
        tap (bool): Emit TAP output instead of the pretty formatter.
    """

    binary = "bats"

    @property
    def name(self) -> str:
        return "bats"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.params.get("suite"):
            return False, "Missing required param: 'suite'"
        return True, ""

    def build_command(self, context: ExecutionContext) -> list[str]:
        cmd = [self.binary]
        if context.params.get("tap"):
            cmd.append("--tap")
        cmd.append(str(context.params["suite"]))
        return cmd
