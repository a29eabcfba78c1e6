"""
Preflight checks — container runtime detection and dependency validation.

Both checks only look at PATH; they never run the tools. ``which`` is
injectable so tests can describe any host.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Sequence

from alpine_brew.core.errors import MissingDependencyError, NoContainerRuntimeError

logger = logging.getLogger(__name__)

Which = Callable[[str], str | None]


def detect_container_runtime(
    preference: Sequence[str] = ("podman", "docker"),
    override: str | None = None,
    which: Which = shutil.which,
) -> str:
    """Return the first container runtime found on PATH.

    Args:
        preference: Runtimes to try, in order.
        override: Force this runtime; it must exist.
        which: PATH lookup function.

    Raises:
        NoContainerRuntimeError: If no candidate is available.
    """
    candidates = [override] if override else list(preference)
    for name in candidates:
        if which(name):
            logger.info("Using container runtime: %s", name)
            return name

    if override:
        raise NoContainerRuntimeError(f"Requested container runtime is not available: {override}")
    raise NoContainerRuntimeError(f"Neither {' nor '.join(candidates)} is available")


def find_missing(tools: Sequence[str], which: Which = shutil.which) -> list[str]:
    """Tools from ``tools`` that are not on PATH, in input order."""
    return [tool for tool in tools if not which(tool)]


def validate_dependencies(
    required: Sequence[str] = ("git", "sha512sum"),
    test_tool: str = "bats",
    check_test_tool: bool = False,
    which: Which = shutil.which,
) -> None:
    """Check every required executable and report all missing ones at once.

    Raises:
        MissingDependencyError: Listing every missing tool.
    """
    tools = list(required)
    if check_test_tool:
        tools.append(test_tool)

    missing = find_missing(tools, which)
    if missing:
        raise MissingDependencyError(missing)
    logger.debug("Dependencies present: %s", ", ".join(tools))


def has_test_tool(test_tool: str = "bats", which: Which = shutil.which) -> bool:
    """Whether the optional test tool is installed."""
    return which(test_tool) is not None
