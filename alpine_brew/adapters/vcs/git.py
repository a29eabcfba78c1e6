"""
Git adapter — stage and commit organized version directories.
"""

from __future__ import annotations

from alpine_brew.adapters.base import CommandAdapter, ExecutionContext


class GitAdapter(CommandAdapter):
    """Git operations used after organize.

    Action params:
        operation (str): One of 'add', 'commit', 'status'.
        paths (list[str]): Paths to stage (add).
        message (str): Commit message (commit).
    """

    binary = "git"
    _OPERATIONS = {"add", "commit", "status"}

    @property
    def name(self) -> str:
        return "git"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation not in self._OPERATIONS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(self._OPERATIONS))}"
        if operation == "add" and not context.params.get("paths"):
            return False, "Missing required param: 'paths' for add operation"
        if operation == "commit" and not context.params.get("message"):
            return False, "Missing required param: 'message' for commit operation"
        return True, ""

    def build_command(self, context: ExecutionContext) -> list[str]:
        operation = context.params["operation"]
        if operation == "add":
            return [self.binary, "add", "--", *[str(p) for p in context.params["paths"]]]
        if operation == "commit":
            return [self.binary, "commit", "-m", context.params["message"]]
        return [self.binary, "status", "--porcelain"]
