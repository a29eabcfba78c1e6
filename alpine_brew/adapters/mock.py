"""
Mock adapter — stands in for any tool adapter in tests.

Every action succeeds unless a script was registered for its ID. A
script is any ``ExecutionContext -> Receipt`` callable, so it can also
produce side effects, such as writing the files a real fetch container
would have written. The last script set for an ID wins.
"""

from __future__ import annotations

from collections.abc import Callable

from alpine_brew.adapters.base import Adapter, ExecutionContext
from alpine_brew.core.models.action import Receipt

Handler = Callable[[ExecutionContext], Receipt]


class MockAdapter(Adapter):
    """Scriptable test double that records every context it is given."""

    def __init__(self, adapter_name: str = "mock", available: bool = True, default_output: str = ""):
        self._name = adapter_name
        self._installed = available
        self._default_output = default_output
        self._scripts: dict[str, Handler] = {}
        self.call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    @property
    def called_ids(self) -> list[str]:
        return [ctx.action.id for ctx in self.call_log]

    def is_available(self) -> bool:
        return self._installed

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def set_handler(self, action_id: str, handler: Handler) -> None:
        self._scripts[action_id] = handler

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self.set_handler(action_id, lambda _ctx: receipt)

    def set_failure(self, action_id: str, error: str = "Mock failure", return_code: int = 1) -> None:
        self.set_response(
            action_id,
            Receipt.failure(adapter=self._name, action_id=action_id, error=error, return_code=return_code),
        )

    def execute(self, context: ExecutionContext) -> Receipt:
        self.call_log.append(context)
        script = self._scripts.get(context.action.id)
        if script is not None:
            return script(context)
        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            return_code=0,
        )

    def reset(self) -> None:
        self.call_log.clear()
        self._scripts.clear()
