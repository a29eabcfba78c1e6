"""
Fetcher — downloads a release into a scratch directory via a helper image.

The fetch image is built from the repository root (its Dockerfile knows
how to download minirootfs tarballs, render Dockerfiles and write the
VERSION marker and checksum manifest). It is then run with the scratch
directory mounted at /out:

    <runtime> run [-e MIRROR=...] --user <uid> --rm -v <dir>:/out <image> <branch> /out
"""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path

from alpine_brew.adapters.registry import AdapterRegistry
from alpine_brew.core.errors import FetchError
from alpine_brew.core.models.action import Action

logger = logging.getLogger(__name__)

CONTAINER_OUT = "/out"


def podman_macos_hints(directory: Path) -> list[str]:
    """Troubleshooting lines for podman machine mount problems."""
    return [
        "Podman on macOS may require specific mount points.",
        "Try: 'podman machine ssh' and check if volume mounts are configured.",
        f"Directory used: {directory}",
    ]


def _is_podman_on_macos(runtime: str | None, system: str | None) -> bool:
    return (system or platform.system()) == "Darwin" and runtime == "podman"


def fetch_release(
    registry: AdapterRegistry,
    branch: str,
    out_dir: Path,
    *,
    image: str = "docker-brew-alpine-fetch",
    build_context: Path | None = None,
    mirror: str | None = None,
    runtime: str | None = None,
    system: str | None = None,
    uid: int | None = None,
) -> None:
    """Populate ``out_dir`` with the release files for ``branch``.

    Args:
        registry: Must provide the 'container' adapter.
        branch: Release branch ("edge", "v3.19", ...).
        out_dir: Existing, writable directory to mount as /out.
        image: Tag for the fetch image.
        build_context: Directory holding the fetch Dockerfile.
        mirror: Mirror URL override, forwarded whenever set (even empty).
        runtime: Runtime name, used for troubleshooting hints only.
        system: ``platform.system()`` override for tests.
        uid: User the container runs as (default: current uid).

    Raises:
        FetchError: If the directory is unusable, the image build fails,
            or the fetch run exits non-zero.
    """
    if not out_dir.is_dir():
        raise FetchError(f"Output directory does not exist: {out_dir}")
    if not os.access(out_dir, os.W_OK):
        raise FetchError(f"Directory is not writable: {out_dir}")

    podman_mac = _is_podman_on_macos(runtime, system)
    context = (build_context or Path.cwd()).resolve()

    logger.info("Building fetch container...")
    receipt = registry.execute_action(
        Action(
            id="build-fetch-image",
            adapter="container",
            description="Build the release fetch image",
            params={"operation": "build", "tag": image, "context": str(context)},
        ),
        cwd=context,
    )
    if not receipt.ok:
        raise FetchError(f"Failed to build fetch container: {receipt.error}")

    logger.info("Fetching Alpine release files...")
    if podman_mac:
        logger.info("Detected Podman on macOS - ensuring directory is accessible to Podman VM")

    params: dict = {
        "operation": "run",
        "image": image,
        "args": [branch, CONTAINER_OUT],
        "volumes": {str(out_dir): CONTAINER_OUT},
        "user": str(os.getuid() if uid is None else uid),
        "remove": True,
    }
    if mirror is not None:
        params["env"] = {"MIRROR": mirror}

    receipt = registry.execute_action(
        Action(
            id="fetch-release",
            adapter="container",
            description=f"Fetch release files for {branch}",
            params=params,
        ),
        cwd=context,
    )
    if not receipt.ok:
        hints = podman_macos_hints(out_dir) if podman_mac else []
        raise FetchError(f"Failed to fetch release files: {receipt.error}", hints=hints)

    logger.debug("Fetch output written to %s", out_dir)
