"""Adapters — bindings for the external tools the pipeline drives.

Public re-exports for convenient access.
"""

from alpine_brew.adapters.base import Adapter, CommandAdapter, ExecutionContext
from alpine_brew.adapters.mock import MockAdapter
from alpine_brew.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CommandAdapter",
    "ExecutionContext",
    "MockAdapter",
]
