"""``ampvault artifact`` — add, append, inspect and export versions."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from ampvault.cli.commands._common import console, reporting_errors, state
from ampvault.core.content import render_text
from ampvault.models.records import AddResult
from ampvault.models.selectors import parse_version_selector

artifact_app = typer.Typer(help="Artifact commands.", no_args_is_help=True)


def _echo_added(result: AddResult) -> None:
    typer.echo(f"{result.artifact_id}\t{result.item_id}\tv{result.version}")


@artifact_app.command("add")
def add_cmd(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project id (proj_...)."),
    path: Path = typer.Argument(..., help="File to store."),
    name: str = typer.Option(None, "--name", help="Display name (defaults to filename)."),
    comment: str = typer.Option(None, "--comment", help="Version comment."),
) -> None:
    """Add a file as a new versioned artifact."""
    with reporting_errors():
        st = state(ctx)
        result = st.open_engine().add_artifact_from_file(
            project_id,
            path.resolve(),
            name=name,
            comment=comment,
            created_by=st.config.default_creator,
        )
    _echo_added(result)


@artifact_app.command("append")
def append_cmd(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(..., help="Artifact id (art_...)."),
    path: Path = typer.Argument(..., help="File holding the new content."),
    comment: str = typer.Option(None, "--comment", help="Version comment."),
) -> None:
    """Store a file as the next version of an existing artifact."""
    with reporting_errors():
        st = state(ctx)
        result = st.open_engine().append_version_from_file(
            artifact_id,
            path.resolve(),
            comment=comment,
            created_by=st.config.default_creator,
        )
    _echo_added(result)


@artifact_app.command("history")
def history_cmd(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(..., help="Artifact id (art_...)."),
) -> None:
    """Show artifact versions, oldest first."""
    with reporting_errors():
        rows = state(ctx).open_engine().get_artifact_history(artifact_id)
    if not rows:
        typer.echo("(none)")
        return
    for row in rows:
        note = f"  # {row.comment}" if row.comment else ""
        typer.echo(f"v{row.version}\t{row.size_bytes}B\t{row.sha256[:8]}...\t{row.rel_path}{note}")


@artifact_app.command("export")
def export_cmd(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(..., help="Artifact id (art_...)."),
    version: str = typer.Option("latest", "--version", help="Version number, vN or 'latest'."),
    out: Path = typer.Option(None, "--out", help="Output file path."),
) -> None:
    """Export an artifact version to a file and print its path."""
    with reporting_errors():
        selector = parse_version_selector(version)
        exported = state(ctx).open_engine().export_artifact_version(
            artifact_id, selector, out.resolve() if out else None
        )
    typer.echo(str(exported))


@artifact_app.command("cat")
def cat_cmd(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(..., help="Artifact id (art_...)."),
    version: str = typer.Option("latest", "--version", help="Version number, vN or 'latest'."),
) -> None:
    """Print the content of an artifact version."""
    with reporting_errors():
        engine = state(ctx).open_engine()
        selector = parse_version_selector(version)
        data = engine.read_version(artifact_id, selector)
        artifact = engine.metadata.get_artifact(artifact_id)
    text = render_text(data, artifact.mime_type if artifact else None)
    typer.echo(text, nl=not text.endswith("\n"))


@artifact_app.command("verify")
def verify_cmd(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(..., help="Artifact id (art_...)."),
) -> None:
    """Re-hash every stored version; exit 1 if any fails."""
    with reporting_errors():
        checks = state(ctx).open_engine().verify_artifact(artifact_id)

    table = Table(title=f"Integrity: {artifact_id}")
    table.add_column("Version", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Detail")
    for check in checks:
        status = "[green]OK[/green]" if check.ok else "[red]FAIL[/red]"
        table.add_row(f"v{check.version}", status, check.detail)
    console.print(table)

    if not all(check.ok for check in checks):
        raise typer.Exit(code=1)
