"""Agent engine service-provider interface.

Defines the ``ModelProvider`` and ``AgentEngine`` Protocols an assistant
backend must satisfy, plus the per-turn context and result models.  The
storage engine does not depend on any of this; a run may choose to persist
its reply as an artifact version (see ``ampvault.agents.basic.persist_reply``).
"""

from __future__ import annotations

from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ampvault.runs.logger import RunLogger

DEFAULT_USER_ID = "user_local"


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ModelProvider(Protocol):
    """Protocol for text-completion backends."""

    def id(self) -> str:
        ...

    def chat(self, prompt: str) -> str:
        """Return the model's reply to *prompt*."""
        ...


@runtime_checkable
class AgentEngine(Protocol):
    """Protocol for assistant engines that run one turn at a time."""

    id: str

    def capabilities(self) -> list[str]:
        ...

    def run_turn(self, ctx: AgentContext) -> AgentResult:
        ...


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ToolDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["assistant", "tool"]
    content: str


class ArtifactPointer(BaseModel):
    """A version produced during a turn."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    version: int


class AgentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    messages: list[Message] = Field(default_factory=list)
    artifacts: list[ArtifactPointer] = Field(default_factory=list)

    @property
    def reply(self) -> str:
        """Content of the first message, or ``""``."""
        return self.messages[0].content if self.messages else ""


class AgentContext(BaseModel):
    """Everything an engine needs for one turn; collaborators are injected."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    project_id: str
    user_id: str = DEFAULT_USER_ID
    input_text: str = ""
    tools: list[ToolDescriptor] = Field(default_factory=list)
    model: Any
    storage: Any = None
    logger: Any


def create_agent_context(
    *,
    project_id: str,
    input_text: str,
    model: ModelProvider,
    logger: RunLogger,
    storage: Any = None,
    user_id: str = DEFAULT_USER_ID,
) -> AgentContext:
    """Build a turn context; the caller supplies every environment dependency."""
    return AgentContext(
        project_id=project_id,
        user_id=user_id,
        input_text=input_text,
        model=model,
        storage=storage,
        logger=logger,
    )
