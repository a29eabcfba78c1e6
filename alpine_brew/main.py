"""
alpine-brew — CLI entrypoint.

Usage:
    alpine-brew prepare [BRANCH]
    alpine-brew test BRANCH DIR
    alpine-brew organize BRANCH DIR
    alpine-brew all [BRANCH]
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path

import click

from alpine_brew import __version__
from alpine_brew.core.errors import EXIT_INVALID_ARGS, BrewError
from alpine_brew.core.observability.logging_config import resolve_level, setup_logging

logger = logging.getLogger(__name__)

PROG_NAME = "alpine-brew"

EPILOG = f"""\b
Environment variables:
    MIRROR               Override the Alpine mirror URL (optional).
    ALPINE_BREW_RUNTIME  Force the container runtime (podman or docker).

\b
Directory structure after organize:
    <version>/
    ├── VERSION
    ├── x86_64/
    │   └── Dockerfile
    ├── aarch64/
    │   └── Dockerfile
    └── armv7/
        └── Dockerfile

\b
Examples:
    {PROG_NAME} prepare edge
    {PROG_NAME} test v3.18 /tmp/docker-brew-alpine-xyz123
    {PROG_NAME} organize v3.18 /tmp/docker-brew-alpine-xyz123
    {PROG_NAME} all v3.18

\b
Exit codes:
    0 - Success
    1 - Invalid arguments or failure
    2 - No container runtime found
    3 - Required dependency missing

\b
Requirements:
    - Container runtime (podman or docker)
    - git, sha512sum
    - bats (only required for the test command)

\b
On macOS with Podman, temporary files are stored in ~/.cache so the
Podman VM can access them. Ensure the machine is running:
'podman machine start'.
"""


class BrewGroup(click.Group):
    """Click group whose usage errors exit 1 instead of click's 2.

    Exit code 2 is reserved for "no container runtime".
    """

    def main(self, args=None, prog_name=None, complete_var=None, standalone_mode=True, **extra):
        try:
            rv = super().main(args, prog_name, complete_var, standalone_mode=False, **extra)
        except click.ClickException as e:
            e.show()
            if isinstance(e, click.UsageError):
                sys.exit(EXIT_INVALID_ARGS)
            sys.exit(e.exit_code)
        except click.Abort:
            click.echo("Aborted!", err=True)
            sys.exit(EXIT_INVALID_ARGS)
        if not standalone_mode:
            return rv
        sys.exit(rv if isinstance(rv, int) else 0)


@click.group(
    cls=BrewGroup,
    invoke_without_command=True,
    epilog=EPILOG,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__, prog_name=PROG_NAME)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only show warnings and errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to alpine-brew.yml (default: auto-detect).",
)
@click.option(
    "--runtime",
    type=click.Choice(["podman", "docker"]),
    default=None,
    help="Force a container runtime instead of auto-detecting.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    runtime: str | None,
) -> None:
    """Prepare official Alpine Linux Docker images.

    Fetches a release's minirootfs into a temporary directory, verifies
    its checksums, runs the smoke tests and organizes the Dockerfiles
    into a version/architecture directory structure.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["runtime"] = runtime

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("ALPINE_BREW_LOG_LEVEL")),
        log_file=os.environ.get("ALPINE_BREW_LOG_FILE"),
        log_file_level=os.environ.get("ALPINE_BREW_LOG_FILE_LEVEL"),
    )


# ── Helpers ─────────────────────────────────────────────────────


def _fail(err: BrewError) -> None:
    """Report a fatal error and exit with its code."""
    click.secho(f"❌ {err.message}", fg="red", err=True)
    for hint in err.hints:
        click.echo(f"   {hint}", err=True)
    sys.exit(err.exit_code)


def _pipeline(ctx: click.Context):
    """Build a ReleasePipeline from the CLI context."""
    from alpine_brew.core.config.loader import load_settings
    from alpine_brew.core.engine.pipeline import ReleasePipeline, default_registry

    settings = load_settings(ctx.obj.get("config_path"))
    if ctx.obj.get("runtime"):
        settings.runtime = ctx.obj["runtime"]
    return ReleasePipeline(settings, registry_factory=default_registry, which=shutil.which)


def _confirm_overwrite():
    """Overwrite prompt for interactive sessions; None otherwise."""
    if not sys.stdin.isatty():
        return None
    return lambda target: click.confirm("Do you want to overwrite it?", default=False)


def _require_dir(ctx: click.Context, command: str, directory: str | None) -> Path:
    if not directory:
        click.secho(f"❌ Directory argument required for {command} command", fg="red", err=True)
        click.echo()
        click.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())
        sys.exit(EXIT_INVALID_ARGS)
    return Path(directory)


def _print_organized(result) -> None:
    from alpine_brew.core.services.organizer import git_commands, render_tree

    click.echo()
    click.secho("✅ Dockerfiles organized successfully!", fg="green", bold=True)
    click.echo()
    click.echo("Directory structure:")
    for line in render_tree(result.target_dir):
        click.echo(f"  {line}")
    click.echo()
    click.echo("You can now commit these changes to git:")
    for command in git_commands(result):
        click.echo(f"  {command}")
    click.echo()


# ── Commands ────────────────────────────────────────────────────


@cli.command()
@click.argument("branch", required=False)
@click.pass_context
def prepare(ctx: click.Context, branch: str | None) -> None:
    """Fetch a release into a temp directory, verify and test it.

    BRANCH defaults to 'edge'.
    """
    try:
        pipeline = _pipeline(ctx)
        result = pipeline.prepare(branch)
    except BrewError as e:
        _fail(e)
        return

    click.echo()
    click.echo("To organize Dockerfiles into version directories run:")
    click.echo()
    click.echo(f"  {PROG_NAME} organize {result.branch} {result.scratch_dir}")
    click.echo()


@cli.command("test")
@click.argument("branch")
@click.argument("directory", required=False)
@click.pass_context
def test_cmd(ctx: click.Context, branch: str, directory: str | None) -> None:
    """Run the smoke tests for BRANCH against DIRECTORY."""
    path = _require_dir(ctx, "test", directory)
    try:
        pipeline = _pipeline(ctx)
        pipeline.test(branch, path)
    except BrewError as e:
        _fail(e)


@cli.command()
@click.argument("branch")
@click.argument("directory", required=False)
@click.option("--commit", is_flag=True, help="Run 'git add' and 'git commit' for the result.")
@click.pass_context
def organize(ctx: click.Context, branch: str, directory: str | None, commit: bool) -> None:
    """Organize Dockerfiles from DIRECTORY into <version>/<arch>/Dockerfile."""
    path = _require_dir(ctx, "organize", directory)
    try:
        pipeline = _pipeline(ctx)
        result = pipeline.organize(
            branch,
            path,
            confirm_overwrite=_confirm_overwrite(),
            commit=commit,
        )
    except BrewError as e:
        _fail(e)
        return

    _print_organized(result)


@cli.command("all")
@click.argument("branch", required=False)
@click.option("--commit", is_flag=True, help="Run 'git add' and 'git commit' for the result.")
@click.pass_context
def all_cmd(ctx: click.Context, branch: str | None, commit: bool) -> None:
    """Run prepare and organize in sequence."""
    try:
        pipeline = _pipeline(ctx)
        _, result = pipeline.run_all(
            branch,
            confirm_overwrite=_confirm_overwrite(),
            commit=commit,
        )
    except BrewError as e:
        _fail(e)
        return

    _print_organized(result)


@cli.command("help")
@click.pass_context
def help_cmd(ctx: click.Context) -> None:
    """Show this message and exit."""
    click.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())


def main() -> None:
    cli(prog_name=PROG_NAME)


if __name__ == "__main__":
    main()
