"""``ampvault run`` — run one assistant turn against a project.

Every run gets an id and an event log at ``<data>/runs/<run_id>.jsonl``.
With ``--save`` the reply is stored as a new artifact tagged with the run id.
"""

from __future__ import annotations

import typer

from ampvault.agents.basic import BasicEngine, EchoModel, persist_reply
from ampvault.agents.spi import create_agent_context
from ampvault.cli.commands._common import reporting_errors, state
from ampvault.runs.logger import FileRunLogger


def run_cmd(
    ctx: typer.Context,
    assistant_id: str = typer.Argument(..., help="Assistant to run."),
    project_id: str = typer.Argument(..., help="Project id (proj_...)."),
    input_text: str = typer.Option("", "--input", help="Input prompt."),
    save: str = typer.Option(
        None, "--save", help="Store the reply as a new artifact with this name."
    ),
) -> None:
    """Run an assistant turn and print its reply."""
    with reporting_errors():
        st = state(ctx)
        storage = st.open_engine()
        storage.get_project(project_id)
        run_id = storage.ids.new_id("run")

        with FileRunLogger(st.data_dir, run_id, project_id) as run_log:
            run_log.event("run.started", {"assistantId": assistant_id})
            turn = create_agent_context(
                project_id=project_id,
                input_text=input_text,
                model=EchoModel(),
                storage=storage,
                logger=run_log,
            )
            try:
                result = BasicEngine().run_turn(turn)
                run_log.event("model.response", {"text": result.reply})
                if save:
                    result = persist_reply(storage, turn, result, run_id=run_id, name=save)
                run_log.event("run.finished", {"status": "ok"})
            except Exception as exc:
                run_log.event("run.error", {"message": str(exc)})
                raise

    typer.echo(result.reply)
    for pointer in result.artifacts:
        typer.echo(f"saved\t{pointer.item_id}\tv{pointer.version}")
