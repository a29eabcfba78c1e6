"""
Scratch directories — per-run working space with guaranteed cleanup.

A ScratchDirectory is owned by exactly one pipeline invocation. Used as
a context manager it is removed when the block exits with an error,
an interrupt or SIGTERM (see ``terminate_as_exit``). On a clean exit it
is removed too, unless ``keep()`` was called; ``prepare`` keeps its
directory so it can be organized later.
"""

from __future__ import annotations

import logging
import platform
import shutil
import signal
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType

from alpine_brew.core.errors import BrewError

logger = logging.getLogger(__name__)

SCRATCH_NAME = "docker-brew-alpine"


def scratch_parent(runtime: str | None, system: str | None = None, home: Path | None = None) -> Path:
    """Where scratch directories are created.

    Podman on macOS runs in a VM that typically only mounts the home
    directory, so scratch space lives under ``~/.cache`` there.
    """
    system = system or platform.system()
    if system == "Darwin" and runtime == "podman":
        cache = (home or Path.home()) / ".cache"
        cache.mkdir(parents=True, exist_ok=True)
        return cache
    return Path(tempfile.gettempdir())


class ScratchDirectory:
    """A uniquely named directory removed on every failing exit path."""

    def __init__(self, path: Path):
        self.path = path
        self._keep = False

    @classmethod
    def create(cls, parent: Path | None = None) -> ScratchDirectory:
        """Create a fresh ``docker-brew-alpine-XXXXXX`` directory."""
        try:
            path = Path(tempfile.mkdtemp(prefix=f"{SCRATCH_NAME}-", dir=parent)).resolve()
        except OSError as e:
            raise BrewError(f"Failed to create temporary directory: {e}") from e
        logger.info("Using temporary directory: %s", path)
        return cls(path)

    @classmethod
    def adopt(cls, path: Path) -> ScratchDirectory:
        """Take ownership of a directory produced by an earlier ``prepare``."""
        return cls(path.resolve())

    @property
    def kept(self) -> bool:
        return self._keep

    def keep(self) -> None:
        """Leave the directory in place on a clean exit."""
        self._keep = True

    def release(self) -> None:
        """Remove the directory. Best-effort: failures are only logged."""
        if not self.path.exists():
            return
        try:
            shutil.rmtree(self.path)
            logger.debug("Removed scratch directory %s", self.path)
        except OSError as e:
            logger.warning("Failed to remove scratch directory %s: %s", self.path, e)

    def __enter__(self) -> ScratchDirectory:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None or not self._keep:
            self.release()

    def __fspath__(self) -> str:
        return str(self.path)


@contextmanager
def terminate_as_exit() -> Iterator[None]:
    """Turn SIGTERM into SystemExit(143) for the duration of the block.

    Python already raises KeyboardInterrupt for SIGINT; this gives
    SIGTERM the same unwinding so ``finally``/``__exit__`` cleanup runs.
    Outside the main thread signal handlers cannot be installed and the
    block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        logger.error("Received signal %d, cleaning up", signum)
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)
