"""Main Typer application — imports and registers all CLI commands.

Entry point: ``ampvault`` (configured via pyproject.toml console_scripts).

Commands: project (create/list/show), artifact (add/append/history/export/
cat/verify), gc, run.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.logging import RichHandler

from ampvault.cli.commands._common import (
    CliState,
    console,
    err_console,
    reporting_errors,
    state,
)
from ampvault.cli.commands.artifact import artifact_app
from ampvault.cli.commands.project import project_app
from ampvault.cli.commands.run import run_cmd
from ampvault.config import VaultConfig

app = typer.Typer(
    name="ampvault",
    help="ampvault: immutable, content-hashed, versioned artifact storage.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def _configure_logging(level: str) -> None:
    """Apply *level* to the package logger; the Rich handler is attached once."""
    pkg_logger = logging.getLogger("ampvault")
    pkg_logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in pkg_logger.handlers):
        handler = RichHandler(console=err_console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        pkg_logger.addHandler(handler)


@app.callback()
def main_callback(
    ctx: typer.Context,
    data: Path = typer.Option(
        None, "--data", help="Data directory (default: AMPVAULT_DATA_DIR or ./.amp)."
    ),
) -> None:
    """Resolve configuration and logging once per invocation."""
    config = VaultConfig()
    _configure_logging(config.log_level)
    ctx.obj = CliState(config=config, data_dir=data or config.data_dir)


# Register subcommands
app.add_typer(project_app, name="project", help="Create, list and show projects.")
app.add_typer(artifact_app, name="artifact", help="Add, inspect and export artifacts.")
app.command(name="run", help="Run an assistant turn against a project.")(run_cmd)


@app.command(name="gc", help="Remove blobs that no committed version references.")
def gc_cmd(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="List without deleting."),
) -> None:
    """Reconcile the blob store against the metadata store."""
    with reporting_errors():
        removed = state(ctx).open_engine().collect_garbage(dry_run=dry_run)

    if not removed:
        console.print("[dim]No orphaned blobs.[/dim]")
        return
    verb = "Would remove" if dry_run else "Removed"
    for rel_path in removed:
        typer.echo(f"{verb}\t{rel_path}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
