"""Buildgate CLI: run a build command only when watched files changed."""

from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from buildgate import __version__

from .config import (
    BuildgateConfig,
    ConfigError,
    config_path,
    load_config,
    write_config_template,
)
from .constants import HASH_FILE, LOCK_FILE
from .core import hash_store, lock_manager
from .core.fingerprint import FingerprintError
from .core.orchestrator import RunOrchestrator
from .core.supervisor import WorkspaceError, WorkspaceSupervisor
from .logging import configure_logging
from .models import RunContext
from .runner import RunOptions, run_directory, run_until_signalled


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"buildgate {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="buildgate",
    help="Skip redundant builds: run a command only when watched files changed",
    no_args_is_help=True,
)


@dataclass
class CliState:
    """Per-invocation state passed to commands through typer's context."""

    console: Console
    run_ctx: RunContext
    verbosity: int = 0
    quiet: bool = False
    no_color: bool = False


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    base_dir: Path = typer.Option(
        Path("."),
        "--base-dir",
        "-C",
        file_okay=False,
        help="Directory holding .buildgate.json (defaults to cwd)",
    ),
) -> None:
    """Buildgate - incremental build gate."""
    console = configure_logging(verbosity=verbose, quiet=quiet, no_color=no_color)
    ctx.obj = CliState(
        console=console,
        run_ctx=RunContext.for_directory(base_dir, label="buildgate"),
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )


# ============================================================================
# buildgate init
# ============================================================================


@app.command()
def init(ctx: typer.Context) -> None:
    """Create .buildgate.json and the hash record in the base directory."""
    state = _state(ctx)
    run_ctx = state.run_ctx

    path = config_path(run_ctx.base_dir)
    if path.exists():
        state.console.print(f"[yellow]Config already exists:[/yellow] {path}")
        return

    run_ctx.base_dir.mkdir(parents=True, exist_ok=True)
    write_config_template(run_ctx.base_dir)
    hash_store.reset_hash(run_ctx)
    state.console.print(f"[green]Created config template:[/green] {path}")
    state.console.print("Add ignore rules to .gitignore:")
    state.console.print(
        f"\n    printf '%s\\n' {HASH_FILE} {LOCK_FILE} >> .gitignore\n", markup=False
    )


# ============================================================================
# buildgate exec
# ============================================================================


def load_config_or_exit(
    console: Console, run_ctx: RunContext, code: int = 1
) -> BuildgateConfig:
    """Load the base directory config, exiting with code on failure."""
    try:
        return load_config(run_ctx.base_dir)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code) from None


def run_single(
    console: Console, run_ctx: RunContext, config: BuildgateConfig, options: RunOptions
) -> int:
    """Run or watch one base directory and return the exit status."""
    try:
        return run_until_signalled(run_directory(run_ctx, config, options))
    except FingerprintError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


@app.command("exec")
def exec_cmd(
    ctx: typer.Context,
    command: str | None = typer.Argument(None, help="Override the configured command"),
    force: bool = typer.Option(False, "--force", "-f", help="Run even if nothing changed"),
    dry: bool = typer.Option(False, "--dry", "-d", help="Skip hash update"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Keep running and rebuild on change"),
) -> None:
    """Run the build command if watched files changed."""
    state = _state(ctx)
    run_ctx = state.run_ctx
    options = RunOptions(command=command, force=force, dry=dry, watch=watch)

    config = load_config_or_exit(state.console, run_ctx)

    if config.workspaces:
        if command:
            state.console.print(
                "[yellow]Command override is ignored in workspace mode; "
                "each workspace runs its own configured command[/yellow]"
            )
        supervisor = WorkspaceSupervisor(
            run_ctx,
            config.workspaces,
            watch=watch,
            force=force,
            dry=dry,
            verbosity=state.verbosity,
            quiet=state.quiet,
            no_color=state.no_color,
        )
        try:
            code = run_until_signalled(supervisor.supervise())
        except WorkspaceError as e:
            state.console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1) from None
    else:
        code = run_single(state.console, run_ctx, config, options)

    if code != 0:
        raise typer.Exit(code)


# ============================================================================
# buildgate changed
# ============================================================================


@app.command()
def changed(
    ctx: typer.Context,
    update: bool = typer.Option(
        False, "--update", "-u", help="Record the current fingerprint as built"
    ),
) -> None:
    """Exit 0 if watched files changed, 1 if unchanged.

    Usable in shell conditionals: buildgate changed -u && npm run build
    """
    state = _state(ctx)
    run_ctx = state.run_ctx

    config = load_config_or_exit(state.console, run_ctx, code=2)

    orchestrator = RunOrchestrator(run_ctx, config)
    try:
        code = run_until_signalled(_detect(orchestrator, update))
    except FingerprintError as e:
        state.console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2) from None

    raise typer.Exit(code)


async def _detect(orchestrator: RunOrchestrator, update: bool) -> int:
    changed = await orchestrator.detect_changes(update=update)
    return 0 if changed else 1


# ============================================================================
# buildgate unlock
# ============================================================================


@app.command()
def unlock(ctx: typer.Context) -> None:
    """Remove a lock marker left behind by an interrupted run."""
    state = _state(ctx)
    run_ctx = state.run_ctx
    if not lock_manager.is_locked(run_ctx):
        state.console.print("No lock present")
        return
    lock_manager.release(run_ctx)
    state.console.print(f"[green]Removed lock:[/green] {run_ctx.lock_path}")
