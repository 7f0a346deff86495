"""``ampvault project`` — create, list and show projects."""

from __future__ import annotations

import typer
from rich.panel import Panel
from rich.table import Table

from ampvault.cli.commands._common import console, reporting_errors, state

project_app = typer.Typer(help="Project commands.", no_args_is_help=True)


@project_app.command("create")
def create_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name of the project."),
) -> None:
    """Create a project and print its id."""
    with reporting_errors():
        project = state(ctx).open_engine().create_project(name)
    typer.echo(project.id)


@project_app.command("list")
def list_cmd(ctx: typer.Context) -> None:
    """List projects, newest first."""
    with reporting_errors():
        projects = state(ctx).open_engine().list_projects()
    if not projects:
        typer.echo("(none)")
        return
    for project in projects:
        typer.echo(f"{project.id}\t{project.name}")


@project_app.command("show")
def show_cmd(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project id (proj_...)."),
) -> None:
    """Show a project and its artifacts."""
    with reporting_errors():
        engine = state(ctx).open_engine()
        project = engine.get_project(project_id)
        artifacts = engine.list_artifacts(project_id)

    console.print(
        Panel(
            "\n".join([
                f"[bold]Id:[/bold]       {project.id}",
                f"[bold]Name:[/bold]     {project.name}",
                f"[bold]Created:[/bold]  {project.created_at.isoformat()}",
                f"[bold]Artifacts:[/bold] {len(artifacts)}",
            ]),
            title="[bold]Project[/bold]",
            border_style="green",
        ),
        highlight=False,
    )
    if not artifacts:
        return

    table = Table(title="Artifacts")
    table.add_column("Artifact", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Slug")
    table.add_column("Type")
    table.add_column("Latest", justify="right", style="green")
    for summary in artifacts:
        table.add_row(
            summary.artifact_id,
            summary.name,
            summary.slug,
            summary.mime_type or "",
            f"v{summary.latest_version}",
        )
    console.print(table)
