"""Run event log — append-only JSON Lines under the data root.

Layout: {data_dir}/runs/{run_id}.jsonl

One canonical JSON record per line (sorted keys, compact):
``{"kind", "payload"?, "projectId"?, "runId", "ts"}``.
Events are fire-and-forget for callers; nothing in the storage engine
reads them back.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ampvault.core.hasher import canonical_json_bytes

logger = logging.getLogger(__name__)

RUNS_DIR = "runs"


@runtime_checkable
class RunLogger(Protocol):
    """Anything with ``event(kind, payload=None)`` can record run events."""

    def event(self, kind: str, payload: Any = None) -> None:
        ...


class RunEvent(BaseModel):
    """A single line of a run log."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    run_id: str
    project_id: str | None = None
    kind: str
    payload: Any = None


class NoopRunLogger:
    """Discards every event."""

    def event(self, kind: str, payload: Any = None) -> None:
        return None


class FileRunLogger:
    """Appends run events to ``runs/<run_id>.jsonl``.

    Parameters
    ----------
    data_dir:
        Data root; the ``runs`` directory is created beneath it.
    run_id:
        Run identifier, also the log file's stem.
    project_id:
        Included in every record when given.
    """

    def __init__(self, data_dir: Path, run_id: str, project_id: str | None = None) -> None:
        self.run_id = run_id
        self.project_id = project_id
        runs_dir = Path(data_dir) / RUNS_DIR
        runs_dir.mkdir(parents=True, exist_ok=True)
        self.file = runs_dir / f"{run_id}.jsonl"
        self._stream: IO[str] | None = self.file.open("a", encoding="utf-8")

    def event(self, kind: str, payload: Any = None) -> None:
        if self._stream is None:
            logger.warning("FileRunLogger(%s): event %r after close dropped", self.run_id, kind)
            return
        record = RunEvent(
            run_id=self.run_id, project_id=self.project_id, kind=kind, payload=payload
        )
        line = canonical_json_bytes(
            record.model_dump(mode="json", by_alias=True, exclude_none=True)
        ).decode("utf-8")
        self._stream.write(line + "\n")
        self._stream.flush()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> FileRunLogger:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def read_events(path: Path) -> list[RunEvent]:
    """Parse every record of a run log."""
    events: list[RunEvent] = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        if line.strip():
            events.append(RunEvent.model_validate(json.loads(line)))
    return events
