"""Workspace worker process.

Started by the workspace supervisor as ``python -m buildgate.worker``.
Runs (or watches) exactly one base directory and never fans out further.
"""

from pathlib import Path

import typer

from .cli import load_config_or_exit, run_single
from .logging import configure_logging
from .models import RunContext
from .runner import RunOptions

worker_app = typer.Typer(name="buildgate-worker", add_completion=False)


@worker_app.command()
def work(
    base_dir: Path = typer.Option(..., "--base-dir", file_okay=False, help="Workspace directory"),
    label: str | None = typer.Option(None, "--label", help="Log label for this workspace"),
    watch: bool = typer.Option(False, "--watch", help="Keep running and rebuild on change"),
    force: bool = typer.Option(False, "--force", help="Run even if nothing changed"),
    dry: bool = typer.Option(False, "--dry", help="Skip hash update"),
    verbose: int = typer.Option(0, "--verbose", count=True, help="Increase verbosity"),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress non-error output"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Run the build gate for a single workspace."""
    console = configure_logging(verbosity=verbose, quiet=quiet, no_color=no_color)
    run_ctx = RunContext.for_directory(base_dir, label=label)
    config = load_config_or_exit(console, run_ctx)
    code = run_single(console, run_ctx, config, RunOptions(force=force, dry=dry, watch=watch))
    if code != 0:
        raise typer.Exit(code)


if __name__ == "__main__":
    worker_app()
