"""Default agent backends: an echo model and a single-call engine."""

from __future__ import annotations

from ampvault.agents.spi import AgentContext, AgentResult, ArtifactPointer, Message
from ampvault.core.versioning import VersioningEngine


class EchoModel:
    """Model provider that replies with its prompt.  For development and tests."""

    def id(self) -> str:
        return "model.echo"

    def chat(self, prompt: str) -> str:
        return f"ECHO: {prompt}"


class BasicEngine:
    """Calls the context's model once and returns its reply."""

    id = "engine.basic"

    def capabilities(self) -> list[str]:
        return ["chat", "auto-approve"]

    def run_turn(self, ctx: AgentContext) -> AgentResult:
        ctx.logger.event("model.called", {"input": ctx.input_text})
        reply = ctx.model.chat(ctx.input_text)
        return AgentResult(messages=[Message(role="assistant", content=reply)])


def persist_reply(
    engine: VersioningEngine,
    ctx: AgentContext,
    result: AgentResult,
    *,
    run_id: str,
    name: str,
) -> AgentResult:
    """Store the turn's reply as a new artifact tagged with *run_id*.

    Returns a copy of *result* whose ``artifacts`` include the new version.
    """
    added = engine.add_artifact_from_bytes(
        ctx.project_id,
        result.reply.encode("utf-8"),
        name=name,
        created_by=f"agent:{ctx.model.id()}",
        source_run_id=run_id,
    )
    ctx.logger.event(
        "artifact.saved",
        {"artifactId": added.artifact_id, "itemId": added.item_id, "version": added.version},
    )
    pointer = ArtifactPointer(item_id=added.item_id, version=added.version)
    return result.model_copy(update={"artifacts": [*result.artifacts, pointer]})
