"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from alpine_brew.adapters.mock import MockAdapter
from alpine_brew.adapters.registry import AdapterRegistry
from alpine_brew.core.config.loader import BrewSettings
from tests.helpers import fetch_handler, write_release


@pytest.fixture
def settings(tmp_path: Path) -> BrewSettings:
    """Settings rooted in a throwaway repository."""
    repo = tmp_path / "repo"
    (repo / "tests").mkdir(parents=True)
    (repo / "tests" / "common.bats").write_text("#!/usr/bin/env bats\n")
    return BrewSettings(output_root=repo, test_suite=repo / "tests" / "common.bats")


@pytest.fixture
def adapters() -> dict[str, MockAdapter]:
    """One MockAdapter per capability; the container mock fetches a release."""
    mocks = {name: MockAdapter(adapter_name=name) for name in ("container", "checksum", "bats", "git")}
    mocks["container"].set_handler("fetch-release", fetch_handler())
    return mocks


@pytest.fixture
def registry(adapters: dict[str, MockAdapter]) -> AdapterRegistry:
    return AdapterRegistry(list(adapters.values()))


@pytest.fixture
def scratch(tmp_path: Path) -> Path:
    """A prepared scratch directory."""
    return write_release(tmp_path / "docker-brew-alpine-test")
