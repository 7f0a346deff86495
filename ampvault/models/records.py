"""Row models for the metadata store (project -> item -> artifact -> version).

All models are frozen: a committed version is never mutated, and a row read
back from the store is a snapshot, not a live handle.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ItemKind(str, Enum):
    """Kind of node inside a project."""

    FOLDER = "folder"
    FILE = "file"


class Project(BaseModel):
    """A named collection of items."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    created_at: datetime = Field(default_factory=utc_now)


class Item(BaseModel):
    """A file or folder node.

    ``(project_id, parent_id, slug)`` is unique; ``parent_id=None`` means
    top-level and is treated as a sibling group of its own.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    parent_id: str | None = None
    kind: ItemKind = ItemKind.FILE
    name: str
    slug: str
    sort_index: int = 0
    is_deleted: bool = False
    created_by: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Artifact(BaseModel):
    """The versionable identity bound 1:1 to a file-kind item."""

    model_config = ConfigDict(frozen=True)

    id: str
    item_id: str
    mime_type: str | None = None


class ArtifactVersion(BaseModel):
    """An immutable snapshot of bytes.

    ``rel_path`` points into the blob store; ``sha256`` and ``size_bytes``
    describe exactly the bytes found there.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    item_id: str
    version: int = Field(ge=1)
    size_bytes: int = Field(ge=0)
    sha256: str
    rel_path: str
    comment: str | None = None
    source_run_id: str | None = None
    exported_as: str | None = None  # e.g. "md", "txt", "csv"
    merge_base_version_id: str | None = None  # reserved for three-way merges
    created_by: str
    created_at: datetime = Field(default_factory=utc_now)


class ArtifactSummary(BaseModel):
    """One artifact in a project listing, with its latest version number."""

    model_config = ConfigDict(frozen=True)

    artifact_id: str
    item_id: str
    name: str
    slug: str
    mime_type: str | None = None
    latest_version: int = 0


class AddResult(BaseModel):
    """Identifiers returned after a version has been committed."""

    model_config = ConfigDict(frozen=True)

    artifact_id: str
    item_id: str
    version: int


class VersionCheck(BaseModel):
    """Outcome of re-hashing one stored version."""

    model_config = ConfigDict(frozen=True)

    version: int
    ok: bool
    detail: str = ""
