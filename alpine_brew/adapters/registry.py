"""
Adapter registry — the single dispatch point for tool invocations.

Services hand Actions to the registry; it looks up the adapter for the
action's capability, validates the params, runs it and times it.
``execute_action`` never raises: an unknown capability, bad params or
an adapter bug all come back as failed Receipts, so services only have
one failure path to handle.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from pathlib import Path

from alpine_brew.adapters.base import Adapter, ExecutionContext
from alpine_brew.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Capability name → adapter."""

    def __init__(self, adapters: Iterable[Adapter] = ()):
        self._by_name: dict[str, Adapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: Adapter) -> None:
        """Add ``adapter``; a later registration replaces an earlier one."""
        if adapter.name in self._by_name:
            logger.warning("Replacing adapter for capability: %s", adapter.name)
        self._by_name[adapter.name] = adapter

    def get(self, name: str) -> Adapter | None:
        return self._by_name.get(name)

    @property
    def names(self) -> list[str]:
        return sorted(self._by_name)

    def execute_action(
        self,
        action: Action,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> Receipt:
        """Run ``action`` through its adapter.

        Args:
            action: What to run.
            cwd: Working directory for the tool.
            env: Extra environment variables layered over the process env.
        """
        started = time.monotonic()
        receipt = self._dispatch(action, ExecutionContext(action=action, cwd=cwd, env=dict(env or {})))
        if not receipt.duration_ms:
            receipt.duration_ms = int((time.monotonic() - started) * 1000)
        if receipt.failed:
            logger.debug("%s failed: %s", action.label, receipt.error)
        return receipt

    def _dispatch(self, action: Action, context: ExecutionContext) -> Receipt:
        adapter = self._by_name.get(action.adapter)
        if adapter is None:
            return _rejected(action, f"No adapter registered for '{action.adapter}'")

        try:
            valid, problem = adapter.validate(context)
        except Exception as e:
            return _rejected(action, f"Validation error: {e}")
        if not valid:
            return _rejected(action, f"Validation failed: {problem}")

        logger.debug("Running %s via %s", action.label, adapter.name)
        try:
            return adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised while running %s: %s", adapter.name, action.id, e)
            return _rejected(action, f"Unexpected error: {e}")


def _rejected(action: Action, error: str) -> Receipt:
    return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error)
