"""
Release pipeline — sequences the services as an explicit state machine.

    start → runtime-detected → dependencies-validated → fetched
          → checksums-verified → [tested] → organized → done

Each stage runs only after the previous one returned. A failing stage
records a StageFailure on the PipelineContext, moves it to ``aborted``
and re-raises; there is no retry. Scratch directories are owned through
ScratchDirectory scopes, so they are removed on every failing exit path
including Ctrl-C and SIGTERM.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from alpine_brew.adapters.containers.runtime import ContainerRuntimeAdapter
from alpine_brew.adapters.registry import AdapterRegistry
from alpine_brew.adapters.shell.checksum import ChecksumAdapter
from alpine_brew.adapters.testing.bats import BatsAdapter
from alpine_brew.adapters.vcs.git import GitAdapter
from alpine_brew.core.config.loader import BrewSettings
from alpine_brew.core.errors import BrewError, OrganizeError
from alpine_brew.core.models.action import Action
from alpine_brew.core.models.pipeline import PipelineContext, Stage
from alpine_brew.core.observability.logging_config import log_success
from alpine_brew.core.services import preflight
from alpine_brew.core.services.checksums import verify_release
from alpine_brew.core.services.fetcher import fetch_release
from alpine_brew.core.services.organizer import (
    ConfirmOverwrite,
    OrganizeResult,
    check_source,
    git_commands,
    organize_release,
    read_version,
    target_name,
)
from alpine_brew.core.services.scratch import ScratchDirectory, scratch_parent, terminate_as_exit
from alpine_brew.core.services.tester import run_tests

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_registry(runtime: str) -> AdapterRegistry:
    """Registry wired to the real tools."""
    return AdapterRegistry(
        [
            ContainerRuntimeAdapter(runtime),
            ChecksumAdapter(),
            BatsAdapter(),
            GitAdapter(),
        ]
    )


RegistryFactory = Callable[[str], AdapterRegistry]


class ReleasePipeline:
    """Runs prepare / test / organize for one invocation.

    Args:
        settings: Loaded BrewSettings.
        registry_factory: Builds the adapter registry once the runtime
            is known. Tests pass a factory returning mocks.
        which: PATH lookup used by the preflight checks.
    """

    def __init__(
        self,
        settings: BrewSettings,
        registry_factory: RegistryFactory = default_registry,
        which: preflight.Which = shutil.which,
    ):
        self.settings = settings
        self._registry_factory = registry_factory
        self._which = which
        self._registry: AdapterRegistry | None = None

    # ── Stage plumbing ──────────────────────────────────────────

    def _stage(self, ctx: PipelineContext, stage: Stage, fn: Callable[[], T]) -> T:
        """Run ``fn`` as ``stage``: advance on success, abort on error."""
        try:
            result = fn()
        except BrewError as e:
            ctx.abort(stage, e, e.exit_code)
            raise
        except (KeyboardInterrupt, SystemExit) as e:
            ctx.abort(stage, e)
            raise
        ctx.advance(stage)
        logger.debug("Pipeline stage: %s", stage.value)
        return result

    def _preflight(self, ctx: PipelineContext, need_runtime: bool, check_test_tool: bool = False) -> None:
        if need_runtime:
            ctx.runtime = self._stage(
                ctx,
                Stage.RUNTIME_DETECTED,
                lambda: preflight.detect_container_runtime(
                    self.settings.runtimes,
                    override=self.settings.runtime,
                    which=self._which,
                ),
            )
        self._stage(
            ctx,
            Stage.DEPENDENCIES_VALIDATED,
            lambda: preflight.validate_dependencies(
                self.settings.required_tools,
                test_tool=self.settings.test_tool,
                check_test_tool=check_test_tool,
                which=self._which,
            ),
        )

    def registry(self, runtime: str | None) -> AdapterRegistry:
        if self._registry is None:
            self._registry = self._registry_factory(runtime or "docker")
        return self._registry

    # ── Prepare ─────────────────────────────────────────────────

    @contextmanager
    def _prepared(self, branch: str) -> Iterator[tuple[PipelineContext, ScratchDirectory]]:
        """Preflight, fetch, verify and test inside a scratch scope."""
        ctx = PipelineContext(branch=branch)
        logger.info("Preparing branch: %s", branch)
        self._preflight(ctx, need_runtime=True)

        with terminate_as_exit(), ScratchDirectory.create(scratch_parent(ctx.runtime)) as scratch:
            ctx.scratch_dir = scratch.path
            registry = self.registry(ctx.runtime)

            self._stage(
                ctx,
                Stage.FETCHED,
                lambda: fetch_release(
                    registry,
                    branch,
                    scratch.path,
                    image=self.settings.fetch_image,
                    build_context=self.settings.fetch_context,
                    mirror=self.settings.mirror,
                    runtime=ctx.runtime,
                ),
            )
            self._stage(
                ctx,
                Stage.CHECKSUMS_VERIFIED,
                lambda: verify_release(registry, scratch.path, self.settings.manifest_name),
            )
            log_success(logger, "Temporary directory created: %s", scratch.path)

            if preflight.has_test_tool(self.settings.test_tool, self._which):
                self._stage(
                    ctx,
                    Stage.TESTED,
                    lambda: run_tests(registry, branch, scratch.path, self.settings.test_suite),
                )
                ctx.tests_run = True
            else:
                logger.info("Skipping tests (%s not installed)", self.settings.test_tool)

            yield ctx, scratch

    def prepare(self, branch: str | None = None) -> PipelineContext:
        """Fetch, verify and (when bats is present) test a release.

        On success the scratch directory is kept and its path is in the
        returned context; on any failure it has been removed.
        """
        with self._prepared(branch or self.settings.default_branch) as (ctx, scratch):
            scratch.keep()
            ctx.advance(Stage.DONE)
        return ctx

    # ── Test ────────────────────────────────────────────────────

    def test(self, branch: str, directory: Path) -> None:
        """Run the smoke tests against an existing scratch directory."""
        ctx = PipelineContext(branch=branch, scratch_dir=directory)
        self._preflight(ctx, need_runtime=True, check_test_tool=True)
        run_tests(self.registry(ctx.runtime), branch, directory, self.settings.test_suite)

    # ── Organize ────────────────────────────────────────────────

    def _organize(
        self,
        ctx: PipelineContext,
        scratch: ScratchDirectory,
        confirm_overwrite: ConfirmOverwrite | None,
        commit: bool,
    ) -> OrganizeResult:
        result = self._stage(
            ctx,
            Stage.ORGANIZED,
            lambda: organize_release(
                ctx.branch,
                scratch.path,
                self.settings.output_root,
                rolling_channel=self.settings.rolling_channel,
                version_file=self.settings.version_file,
                confirm_overwrite=confirm_overwrite,
            ),
        )
        ctx.version = result.version
        ctx.target_dir = result.target_dir
        if commit:
            self._commit(ctx, result)
        ctx.advance(Stage.DONE)
        return result

    def organize(
        self,
        branch: str,
        directory: Path,
        confirm_overwrite: ConfirmOverwrite | None = None,
        commit: bool = False,
    ) -> OrganizeResult:
        """Promote a directory produced by an earlier ``prepare``.

        The directory is adopted as this run's scratch space once it is
        known to hold a VERSION marker and to lie outside the version
        directory it would produce; it is then removed afterwards whether
        organize succeeds or fails.
        """
        ctx = PipelineContext(branch=branch, scratch_dir=directory)
        self._preflight(ctx, need_runtime=False)

        try:
            version = read_version(directory, self.settings.version_file)
            name = target_name(branch, version, self.settings.rolling_channel)
            check_source(directory, self.settings.output_root / name, self.settings.output_root)
        except OrganizeError as e:
            ctx.abort(Stage.ORGANIZED, e, e.exit_code)
            raise

        with terminate_as_exit(), ScratchDirectory.adopt(directory) as scratch:
            return self._organize(ctx, scratch, confirm_overwrite, commit)

    # ── All ─────────────────────────────────────────────────────

    def run_all(
        self,
        branch: str | None = None,
        confirm_overwrite: ConfirmOverwrite | None = None,
        commit: bool = False,
    ) -> tuple[PipelineContext, OrganizeResult]:
        """``prepare`` then ``organize`` inside one scratch scope."""
        with self._prepared(branch or self.settings.default_branch) as (ctx, scratch):
            result = self._organize(ctx, scratch, confirm_overwrite, commit)
        return ctx, result

    # ── Git ─────────────────────────────────────────────────────

    def _commit(self, ctx: PipelineContext, result: OrganizeResult) -> None:
        registry = self.registry(ctx.runtime)
        root = self.settings.output_root
        add, _ = git_commands(result)
        logger.info("Running: %s", add)
        receipt = registry.execute_action(
            Action(id="git-add", adapter="git", params={"operation": "add", "paths": [result.name]}),
            cwd=root,
        )
        if receipt.ok:
            receipt = registry.execute_action(
                Action(
                    id="git-commit",
                    adapter="git",
                    params={
                        "operation": "commit",
                        "message": f"feat: add Alpine {result.name} Dockerfiles",
                    },
                ),
                cwd=root,
            )
        if not receipt.ok:
            error = OrganizeError(f"Failed to commit {result.name}: {receipt.error}")
            ctx.abort(Stage.DONE, error, error.exit_code)
            raise error
        log_success(logger, "Committed %s", result.name)
