"""
Configuration loader — reads alpine-brew.yml into BrewSettings.

The file is optional: every field has a default matching the stock
docker-brew-alpine repository layout. Environment variables override
the file:

    MIRROR               upstream mirror URL forwarded to the fetch container (set, even empty)
    ALPINE_BREW_RUNTIME  force 'podman' or 'docker'
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from alpine_brew.core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE = "alpine-brew.yml"


class BrewSettings(BaseModel):
    """Settings for one pipeline invocation."""

    default_branch: str = "edge"
    rolling_channel: str = "edge"

    # Container runtimes in preference order; ``runtime`` forces one.
    runtimes: list[str] = Field(default_factory=lambda: ["podman", "docker"])
    runtime: str | None = None

    required_tools: list[str] = Field(default_factory=lambda: ["git", "sha512sum"])
    test_tool: str = "bats"
    test_suite: Path = Path("tests/common.bats")

    fetch_image: str = "docker-brew-alpine-fetch"
    manifest_name: str = "checksums.sha512"
    version_file: str = "VERSION"

    # Repository root: build context of the fetch image and parent of
    # the organized version directories.
    output_root: Path = Field(default_factory=Path.cwd)
    build_context: Path | None = None

    mirror: str | None = None

    @field_validator("runtime")
    @classmethod
    def _known_runtime(cls, value: str | None) -> str | None:
        if value is not None and value not in ("podman", "docker"):
            raise ValueError(f"runtime must be 'podman' or 'docker', got {value!r}")
        return value

    @property
    def fetch_context(self) -> Path:
        return self.build_context or self.output_root


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for alpine-brew.yml starting from ``start_dir``, walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_settings(
    path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> BrewSettings:
    """Load settings from ``path`` (or a discovered alpine-brew.yml) plus env.

    Args:
        path: Explicit config path. If None, searches upward from cwd;
            no file found means defaults.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    env = os.environ if environ is None else environ

    if path is None:
        path = find_config_file()

    data: dict = {}
    base_dir = Path.cwd()
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        logger.debug("Loading settings from %s", path)
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if raw is not None and not isinstance(raw, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(raw).__name__}")
        data = dict(raw or {})
        base_dir = path.parent.resolve()
        data.setdefault("output_root", base_dir)

    if "MIRROR" in env:
        data["mirror"] = env["MIRROR"]
    if env.get("ALPINE_BREW_RUNTIME"):
        data["runtime"] = env["ALPINE_BREW_RUNTIME"]

    try:
        settings = BrewSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    # Relative paths in the file are relative to the file's directory
    settings.output_root = _resolve(settings.output_root, base_dir)
    if settings.build_context is not None:
        settings.build_context = _resolve(settings.build_context, base_dir)
    if not settings.test_suite.is_absolute():
        settings.test_suite = settings.output_root / settings.test_suite

    return settings


def _resolve(path: Path, base_dir: Path) -> Path:
    return path if path.is_absolute() else (base_dir / path).resolve()
