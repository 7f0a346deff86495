"""Run event logging — the append-only per-run JSON Lines log."""

from ampvault.runs.logger import (
    FileRunLogger,
    NoopRunLogger,
    RunEvent,
    RunLogger,
    read_events,
)

__all__ = ["FileRunLogger", "NoopRunLogger", "RunEvent", "RunLogger", "read_events"]
