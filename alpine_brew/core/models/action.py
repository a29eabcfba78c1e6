"""
Action and Receipt models — the contract between services and adapters.

A service describes one external tool invocation as an Action
("build the fetch image", "check the manifest"). The adapter for that
capability runs it and answers with a Receipt. Adapters never raise:
a non-zero exit, a missing binary or an OS error all produce a Receipt
with ``succeeded=False``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Action(BaseModel):
    """A tool invocation, described but not yet run.

    ``adapter`` names the capability ("container", "checksum", "bats",
    "git"); ``params`` carry the operation and its arguments.
    """

    id: str                         # e.g. "build-fetch-image"
    adapter: str
    description: str = ""
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.description or self.id


class Receipt(BaseModel):
    """What happened when an Action ran."""

    adapter: str
    action_id: str
    succeeded: bool

    command: list[str] = Field(default_factory=list)
    return_code: int | None = None
    output: str = ""
    error: str | None = None
    duration_ms: int = 0

    # Adapter-specific detail, e.g. per-file results from sha512sum
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.succeeded

    @property
    def failed(self) -> bool:
        return not self.succeeded

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **fields: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, succeeded=True, output=output, **fields)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **fields: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, succeeded=False, error=error, **fields)
