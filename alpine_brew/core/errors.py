"""
Error taxonomy — every fatal condition the pipeline can report.

Adapters never raise: they return failed Receipts. Services translate
those receipts (and their own precondition checks) into the exceptions
below. The CLI is the only place that turns them into exit codes.

Exit codes:
    0  success
    1  generic failure / invalid arguments
    2  no container runtime available
    3  required dependency missing
"""

from __future__ import annotations

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_NO_CONTAINER_RUNTIME = 2
EXIT_MISSING_DEPENDENCY = 3


class BrewError(Exception):
    """Base class for fatal pipeline errors.

    ``hints`` are extra lines shown under the main message, e.g.
    platform-specific troubleshooting or a directory listing.
    """

    exit_code: int = EXIT_INVALID_ARGS

    def __init__(self, message: str, hints: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.hints: list[str] = list(hints or [])


# ── Environment errors ──────────────────────────────────────────


class NoContainerRuntimeError(BrewError):
    """Neither podman nor docker (or the forced runtime) is on PATH."""

    exit_code = EXIT_NO_CONTAINER_RUNTIME


class MissingDependencyError(BrewError):
    """One or more required executables are missing."""

    exit_code = EXIT_MISSING_DEPENDENCY

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required dependencies: {' '.join(self.missing)}")


class ConfigError(BrewError):
    """Configuration file is unreadable or invalid."""


# ── Fetch / integrity errors ────────────────────────────────────


class FetchError(BrewError):
    """The fetch image could not be built or the fetch run failed."""


class ChecksumError(BrewError):
    """The checksum manifest is invalid or a listed file did not verify."""

    def __init__(self, message: str, failed: list[str] | None = None, hints: list[str] | None = None):
        super().__init__(message, hints)
        self.failed: list[str] = list(failed or [])


# ── Test errors ─────────────────────────────────────────────────


class TestDirectoryNotFoundError(BrewError):
    """The host architecture has no directory in the scratch tree."""

    __test__ = False  # not a pytest class


class TestSuiteError(BrewError):
    """The test image failed to build or the suite reported failures."""

    __test__ = False


# ── Organize errors ─────────────────────────────────────────────


class OrganizeError(BrewError):
    """A precondition or copy step of organize failed."""


class TargetExistsError(OrganizeError):
    """The version directory exists and we cannot ask before replacing it."""


class UserCancelledError(BrewError):
    """The user declined an overwrite confirmation."""
