"""
Checksum adapter — ``sha512sum --check`` over a manifest.
"""

from __future__ import annotations

import re

from alpine_brew.adapters.base import CommandAdapter, ExecutionContext
from alpine_brew.core.models.action import Receipt

# "<path>: OK" / "<path>: FAILED" / "<path>: FAILED open or read"
_RESULT_LINE = re.compile(r"^(?P<path>.+): (?P<result>OK|FAILED(?: open or read)?)$")


class ChecksumAdapter(CommandAdapter):
    """Verify files against a SHA-512 manifest.

    Action params:
        manifest (str): Manifest path, relative to the working directory.
        strict (bool): Treat malformed manifest lines as failures (default True).

    Successful and failed receipts carry ``metadata["files"]``: a mapping
    of each checked path to ``"OK"`` or the failure reason.
    """

    binary = "sha512sum"

    @property
    def name(self) -> str:
        return "checksum"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.params.get("manifest"):
            return False, "Missing required param: 'manifest'"
        if context.cwd is None:
            return False, "Checksum verification needs a working directory"
        return True, ""

    def build_command(self, context: ExecutionContext) -> list[str]:
        cmd = [self.binary, "--check"]
        if context.params.get("strict", True):
            cmd.append("--strict")
        cmd.append(str(context.params["manifest"]))
        return cmd

    def execute(self, context: ExecutionContext) -> Receipt:
        # Output must be captured to report per-file results
        if "capture" not in context.params:
            action = context.action.model_copy(update={"params": {**context.params, "capture": True}})
            context = context.model_copy(update={"action": action})
        receipt = super().execute(context)
        receipt.metadata["files"] = parse_check_output(receipt.output)
        return receipt


def parse_check_output(output: str) -> dict[str, str]:
    """Map each path reported by ``sha512sum --check`` to its result."""
    files: dict[str, str] = {}
    for line in output.splitlines():
        match = _RESULT_LINE.match(line.strip())
        if match:
            files[match.group("path")] = match.group("result")
    return files
