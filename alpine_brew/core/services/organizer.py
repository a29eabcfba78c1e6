"""
Organizer — promotes a verified scratch directory into the repository.

Layout produced under the output root::

    <name>/
    ├── VERSION
    ├── x86_64/
    │   └── Dockerfile
    ├── aarch64/
    │   └── Dockerfile
    └── ...

``<name>`` is the rolling channel literal (``edge``) for the rolling
branch, otherwise the major.minor part of VERSION. Copying is not
resumable: a failure part-way leaves a partial target that has to be
inspected or removed before retrying.
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from alpine_brew.core.errors import OrganizeError, TargetExistsError, UserCancelledError
from alpine_brew.core.observability.logging_config import log_success

logger = logging.getLogger(__name__)

_MAJOR_MINOR = re.compile(r"^(\d+\.\d+)")

PREPARE_HINT = "Make sure the 'prepare' command completed successfully before running 'organize'"

ConfirmOverwrite = Callable[[Path], bool]


@dataclass
class OrganizeResult:
    """What organize produced."""

    target_dir: Path
    version: str
    architectures: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.target_dir.name

    def to_dict(self) -> dict:
        return {
            "target_dir": str(self.target_dir),
            "version": self.version,
            "architectures": self.architectures,
            "skipped": self.skipped,
        }


def target_name(branch: str, version: str, rolling_channel: str = "edge") -> str:
    """Directory name for a release.

    >>> target_name("edge", "3.20.0_alpha20240606")
    'edge'
    >>> target_name("v3.19", "3.19.9")
    '3.19'
    """
    if branch == rolling_channel:
        return rolling_channel
    match = _MAJOR_MINOR.match(version)
    return match.group(1) if match else version


def directory_listing(directory: Path) -> list[str]:
    """``ls -la``-style lines for error diagnostics."""
    lines = []
    for entry in sorted(directory.iterdir()):
        kind = "d" if entry.is_dir() else "-"
        size = entry.stat().st_size if entry.is_file() else 0
        lines.append(f"{kind} {size:>10}  {entry.name}")
    return lines


def read_version(directory: Path, version_file: str = "VERSION") -> str:
    """Check organize preconditions and return the release version.

    Raises:
        OrganizeError: With a message naming the unmet precondition.
    """
    if not directory.is_dir():
        raise OrganizeError(f"Directory does not exist: {directory}")

    if not any(directory.iterdir()):
        raise OrganizeError(f"Directory is empty: {directory}", hints=[PREPARE_HINT])

    marker = directory / version_file
    if not marker.is_file():
        raise OrganizeError(
            f"{version_file} file not found in: {directory}",
            hints=["Directory contents:", *directory_listing(directory), PREPARE_HINT],
        )

    version = marker.read_text(encoding="utf-8").strip()
    if not version:
        raise OrganizeError(f"{version_file} file is empty in: {directory}", hints=[PREPARE_HINT])
    return version


def check_source(directory: Path, target_dir: Path, output_root: Path) -> None:
    """Refuse a source that overlaps the target or is the output root.

    Organize replaces the target and then removes the source, so either
    step would destroy the other when they share a tree.

    Raises:
        OrganizeError: If the paths overlap.
    """
    source = directory.resolve()
    target = target_dir.resolve()
    if source == output_root.resolve():
        raise OrganizeError(
            f"Refusing to organize the output directory itself: {source}",
            hints=[PREPARE_HINT],
        )
    if source == target or source.is_relative_to(target) or target.is_relative_to(source):
        raise OrganizeError(
            f"Source directory overlaps the version directory: {source} / {target}",
            hints=["Pass the temporary directory printed by 'prepare', not a version directory."],
        )


def organize_release(
    branch: str,
    directory: Path,
    output_root: Path,
    *,
    rolling_channel: str = "edge",
    version_file: str = "VERSION",
    confirm_overwrite: ConfirmOverwrite | None = None,
) -> OrganizeResult:
    """Copy VERSION and every valid architecture directory into the target.

    Args:
        branch: Release branch the directory was prepared for.
        directory: Scratch directory from ``prepare``.
        output_root: Repository root receiving ``<name>/``.
        rolling_channel: Branch name organized under its own literal name.
        version_file: Name of the version marker file.
        confirm_overwrite: Asked before replacing an existing target.
            None means a non-interactive session, where an existing
            target is an error.

    Raises:
        OrganizeError: Precondition or copy failure.
        TargetExistsError: Target exists and nobody can be asked.
        UserCancelledError: The overwrite was declined.
    """
    version = read_version(directory, version_file)
    target_dir = output_root / target_name(branch, version, rolling_channel)

    if branch == rolling_channel:
        logger.info("Organizing Dockerfiles for %s branch (version: %s)", rolling_channel, version)
    else:
        logger.info("Organizing Dockerfiles for version %s", version)

    check_source(directory, target_dir, output_root)

    if target_dir.exists():
        logger.info("Version directory already exists: %s", target_dir)
        if confirm_overwrite is None:
            raise TargetExistsError(
                f"Version directory already exists: {target_dir}. "
                "Remove it first or run interactively."
            )
        if not confirm_overwrite(target_dir):
            raise UserCancelledError("Operation cancelled by user")
        try:
            if target_dir.is_dir() and not target_dir.is_symlink():
                shutil.rmtree(target_dir)
            else:
                target_dir.unlink()
        except OSError as e:
            raise OrganizeError(f"Failed to remove existing {target_dir}: {e}") from e

    try:
        target_dir.mkdir(parents=True)
    except OSError as e:
        raise OrganizeError(f"Failed to create version directory {target_dir}: {e}") from e
    log_success(logger, "Created version directory: %s", target_dir)

    try:
        shutil.copy2(directory / version_file, target_dir / version_file)
    except OSError as e:
        raise OrganizeError(f"Failed to copy {version_file} file: {e}") from e

    result = OrganizeResult(target_dir=target_dir, version=version)

    for arch_src in sorted(p for p in directory.iterdir() if p.is_dir()):
        arch = arch_src.name
        if not (arch_src / "Dockerfile").is_file():
            logger.info("Skipping %s (no Dockerfile found)", arch)
            result.skipped.append(arch)
            continue

        logger.info("Copying Dockerfile for architecture: %s", arch)
        try:
            shutil.copytree(arch_src, target_dir / arch)
        except OSError as e:
            raise OrganizeError(f"Failed to copy files for {arch}: {e}") from e

        result.architectures.append(arch)
        log_success(logger, "Created: %s", target_dir / arch / "Dockerfile")

    return result


def render_tree(root: Path, depth: int = 2) -> list[str]:
    """Lines of a ``tree -L <depth>`` style view of ``root``."""
    lines = [str(root)]

    def _walk(directory: Path, prefix: str, level: int) -> None:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
        for i, entry in enumerate(entries):
            last = i == len(entries) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{entry.name}")
            if entry.is_dir() and level < depth:
                _walk(entry, prefix + ("    " if last else "│   "), level + 1)

    _walk(root, "", 1)
    return lines


def git_commands(result: OrganizeResult) -> list[str]:
    """The commands that commit an organized directory."""
    return [
        f"git add {result.name}",
        f"git commit -m 'feat: add Alpine {result.name} Dockerfiles'",
    ]
