"""
Checksum verification — the integrity gate between fetch and test.

Two passes, both fatal on any problem:

1. The manifest is parsed here to make sure it is well formed, lists
   at least one file, stays inside the scratch directory, and that
   every listed file exists.
2. ``sha512sum --check --strict`` (through the checksum adapter)
   recomputes and compares every digest.

Integrity is binary: there is no partial acceptance.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from alpine_brew.adapters.registry import AdapterRegistry
from alpine_brew.core.errors import ChecksumError
from alpine_brew.core.models.action import Action
from alpine_brew.core.observability.logging_config import log_success

logger = logging.getLogger(__name__)

# "<128 hex>  <path>" or "<128 hex> *<path>" (binary mode marker)
_MANIFEST_LINE = re.compile(r"^(?P<digest>[0-9a-fA-F]{128}) [ *](?P<path>.+)$")


@dataclass(frozen=True)
class ManifestEntry:
    digest: str
    path: str


def parse_manifest(manifest: Path) -> list[ManifestEntry]:
    """Read a sha512sum manifest.

    Blank lines are ignored. Anything else that is not a digest line is
    an error, as is an absolute path or one that climbs out with ``..``.

    Raises:
        ChecksumError: If the manifest is missing, malformed or empty.
    """
    if not manifest.is_file():
        raise ChecksumError(f"Checksum manifest not found: {manifest}")

    entries: list[ManifestEntry] = []
    for lineno, line in enumerate(manifest.read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        match = _MANIFEST_LINE.match(line)
        if not match:
            raise ChecksumError(f"Malformed line {lineno} in {manifest.name}: {line!r}")
        path = match.group("path")
        pure = PurePosixPath(path)
        if pure.is_absolute() or ".." in pure.parts:
            raise ChecksumError(f"Manifest path escapes the release directory: {path}")
        entries.append(ManifestEntry(digest=match.group("digest").lower(), path=path))

    if not entries:
        raise ChecksumError(f"Checksum manifest lists no files: {manifest}")
    return entries


def missing_files(directory: Path, entries: list[ManifestEntry]) -> list[str]:
    """Manifest paths with no regular file under ``directory``."""
    return [e.path for e in entries if not (directory / e.path).is_file()]


def verify_release(
    registry: AdapterRegistry,
    directory: Path,
    manifest_name: str = "checksums.sha512",
) -> list[ManifestEntry]:
    """Verify every file listed in ``directory/manifest_name``.

    Returns:
        The verified manifest entries.

    Raises:
        ChecksumError: On any malformed, missing or mismatched entry.
    """
    logger.info("Verifying checksums...")
    entries = parse_manifest(directory / manifest_name)

    missing = missing_files(directory, entries)
    if missing:
        raise ChecksumError(
            f"Checksum verification failed: {len(missing)} listed file(s) missing",
            failed=missing,
            hints=[f"missing: {p}" for p in missing],
        )

    receipt = registry.execute_action(
        Action(
            id="verify-checksums",
            adapter="checksum",
            description=f"Verify {manifest_name}",
            params={"manifest": manifest_name, "strict": True, "capture": True},
        ),
        cwd=directory,
    )
    if not receipt.ok:
        files = receipt.metadata.get("files", {})
        failed = sorted(path for path, result in files.items() if result != "OK")
        hints = [f"{files[p]}: {p}" for p in failed] or [receipt.error or ""]
        raise ChecksumError("Checksum verification failed", failed=failed, hints=hints)

    log_success(logger, "Checksums verified (%d files)", len(entries))
    return entries
