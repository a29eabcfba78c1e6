"""
Test runner — smoke-tests the host architecture's image with bats.

Builds ``alpine:<version>-test`` from ``<dir>/<host arch>``, runs the
suite with BRANCH exported, then removes the image whatever happened.
The image name depends only on branch and host architecture, so two
concurrent runs for the same branch would collide.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from alpine_brew.adapters.registry import AdapterRegistry
from alpine_brew.core.errors import TestDirectoryNotFoundError, TestSuiteError
from alpine_brew.core.models.action import Action
from alpine_brew.core.observability.logging_config import log_success

logger = logging.getLogger(__name__)


def smoke_image_name(branch: str) -> str:
    """``v3.19`` → ``alpine:3.19-test``; ``edge`` → ``alpine:edge-test``."""
    return f"alpine:{branch.removeprefix('v')}-test"


def run_tests(
    registry: AdapterRegistry,
    branch: str,
    directory: Path,
    suite: Path,
    *,
    arch: str | None = None,
    workdir: Path | None = None,
) -> None:
    """Build the test image for the host architecture and run ``suite``.

    Args:
        registry: Must provide the 'container' and 'bats' adapters.
        branch: Release branch, exported to the suite as BRANCH.
        directory: Scratch directory holding one subdirectory per arch.
        suite: The ``.bats`` file.
        arch: Architecture override (default: ``platform.machine()``).
        workdir: Working directory for the suite (default: suite's repo root).

    Raises:
        TestDirectoryNotFoundError: No ``<directory>/<arch>``.
        TestSuiteError: Image build or suite failed.
    """
    arch = arch or platform.machine()
    image = smoke_image_name(branch)
    arch_dir = directory / arch

    logger.info("Running tests for branch '%s' on architecture '%s'", branch, arch)

    if not arch_dir.is_dir():
        raise TestDirectoryNotFoundError(f"Test directory not found: {arch_dir}")

    receipt = registry.execute_action(
        Action(
            id="build-test-image",
            adapter="container",
            description=f"Build {image}",
            params={"operation": "build", "tag": image, "context": f"{arch_dir}/"},
        ),
    )
    if not receipt.ok:
        # A failed build can still leave a tagged image behind
        _remove_image(registry, image)
        raise TestSuiteError(f"Failed to build test image: {receipt.error}")

    try:
        receipt = registry.execute_action(
            Action(
                id="run-test-suite",
                adapter="bats",
                description=f"Run {suite.name}",
                params={"suite": str(suite)},
            ),
            cwd=workdir or _suite_root(suite),
            env={"BRANCH": branch},
        )
    finally:
        _remove_image(registry, image)

    if not receipt.ok:
        raise TestSuiteError(f"Tests failed for branch '{branch}': {receipt.error}")

    log_success(logger, "Tests passed for branch '%s'", branch)


def _remove_image(registry: AdapterRegistry, image: str) -> None:
    """Best-effort image removal; failure is only a warning."""
    receipt = registry.execute_action(
        Action(
            id="remove-test-image",
            adapter="container",
            description=f"Remove {image}",
            params={"operation": "rmi", "image": image, "capture": True},
        ),
    )
    if not receipt.ok:
        logger.warning("Failed to remove test image %s: %s", image, receipt.error)


def _suite_root(suite: Path) -> Path:
    # tests/common.bats is addressed from the repository root
    return suite.parent.parent if suite.parent.name == "tests" else suite.parent
