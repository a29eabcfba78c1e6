"""
Test helpers — fake PATH lookups and synthetic release trees.
"""

from __future__ import annotations

import hashlib
import platform
from collections.abc import Callable, Iterable
from pathlib import Path

from alpine_brew.adapters.base import ExecutionContext
from alpine_brew.core.models.action import Receipt

HOST_ARCH = platform.machine()


def fake_which(*available: str) -> Callable[[str], str | None]:
    """A ``shutil.which`` that only knows ``available``."""
    names = set(available)
    return lambda name: f"/usr/bin/{name}" if name in names else None


def write_release(
    directory: Path,
    version: str = "3.19.9",
    arches: Iterable[str] = (HOST_ARCH,),
    extra_dirs: Iterable[str] = (),
) -> Path:
    """Write what the fetch container produces: VERSION, arch trees, manifest."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "VERSION").write_text(f"{version}\n")

    lines = []
    for arch in arches:
        arch_dir = directory / arch
        arch_dir.mkdir(exist_ok=True)
        dockerfile = arch_dir / "Dockerfile"
        dockerfile.write_text(f"FROM scratch\nADD alpine-minirootfs-{version}-{arch}.tar.gz /\nCMD [\"/bin/sh\"]\n")
        tarball = arch_dir / f"alpine-minirootfs-{version}-{arch}.tar.gz"
        tarball.write_bytes(f"rootfs for {arch}".encode())
        for f in (dockerfile, tarball):
            digest = hashlib.sha512(f.read_bytes()).hexdigest()
            lines.append(f"{digest}  {f.relative_to(directory).as_posix()}")

    for name in extra_dirs:
        (directory / name).mkdir(exist_ok=True)
        (directory / name / "README").write_text("not an architecture\n")

    (directory / "checksums.sha512").write_text("\n".join(lines) + "\n")
    return directory


def fetch_handler(**release_kwargs) -> Callable[[ExecutionContext], Receipt]:
    """MockAdapter handler that writes a release into the mounted /out dir."""

    def _handler(ctx: ExecutionContext) -> Receipt:
        host_dir = next(iter(ctx.params["volumes"]))
        write_release(Path(host_dir), **release_kwargs)
        return Receipt.success(adapter="container", action_id=ctx.action.id, return_code=0)

    return _handler


