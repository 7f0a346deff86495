"""Assistant engine collaborators.

Protocol-based so any backend with the right methods plugs in; the
defaults (``EchoModel``, ``BasicEngine``) make no network calls.
"""

from ampvault.agents.basic import BasicEngine, EchoModel, persist_reply
from ampvault.agents.spi import (
    AgentContext,
    AgentEngine,
    AgentResult,
    ArtifactPointer,
    Message,
    ModelProvider,
    ToolDescriptor,
    create_agent_context,
)

__all__ = [
    "AgentContext",
    "AgentEngine",
    "AgentResult",
    "ArtifactPointer",
    "BasicEngine",
    "EchoModel",
    "Message",
    "ModelProvider",
    "ToolDescriptor",
    "create_agent_context",
    "persist_reply",
]
