"""Transactional metadata store backed by SQLite.

The metadata store is the source of truth for identifiers, ordering and
relationships.  Blob bytes live in the blob store; rows here point at them.

Design:
- Uniqueness is enforced by the schema, not only by application code:
  sibling slugs via an expression index (top-level items have
  ``parent_id IS NULL``, which a plain UNIQUE would treat as distinct),
  version numbers via ``UNIQUE(item_id, version)``.
- Writers run inside ``BEGIN IMMEDIATE``, which takes the database write
  lock up front, so ``max(version) + 1`` cannot race another writer.
- WAL journal mode so readers proceed while a writer holds the lock.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path

from ampvault.core.errors import ConstraintViolationError, NotFoundError
from ampvault.core.ids import IdGenerator
from ampvault.core.slugs import slugify
from ampvault.models.records import (
    Artifact,
    ArtifactSummary,
    ArtifactVersion,
    Item,
    ItemKind,
    Project,
)
from ampvault.models.selectors import Latest, VersionSelector

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_PROJECT = """
CREATE TABLE IF NOT EXISTS project (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
"""

_CREATE_ITEM = """
CREATE TABLE IF NOT EXISTS project_item (
    id          TEXT PRIMARY KEY,
    project_id  TEXT NOT NULL REFERENCES project(id) ON DELETE CASCADE,
    parent_id   TEXT REFERENCES project_item(id) ON DELETE CASCADE,
    kind        TEXT NOT NULL CHECK (kind IN ('folder', 'file')),
    name        TEXT NOT NULL,
    slug        TEXT NOT NULL,
    sort_index  INTEGER NOT NULL DEFAULT 0,
    is_deleted  INTEGER NOT NULL DEFAULT 0,
    created_by  TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

_CREATE_IDX_ITEM_SLUG = """
CREATE UNIQUE INDEX IF NOT EXISTS u_item_parent_slug
    ON project_item(project_id, COALESCE(parent_id, ''), slug);
"""

_CREATE_ARTIFACT = """
CREATE TABLE IF NOT EXISTS artifact (
    id          TEXT PRIMARY KEY,
    item_id     TEXT NOT NULL UNIQUE REFERENCES project_item(id) ON DELETE CASCADE,
    mime_type   TEXT
);
"""

_CREATE_VERSION = """
CREATE TABLE IF NOT EXISTS artifact_version (
    id                     TEXT PRIMARY KEY,
    item_id                TEXT NOT NULL REFERENCES project_item(id) ON DELETE CASCADE,
    version                INTEGER NOT NULL CHECK (version >= 1),
    size_bytes             INTEGER NOT NULL CHECK (size_bytes >= 0),
    sha256                 TEXT NOT NULL,
    rel_path               TEXT NOT NULL UNIQUE,
    comment                TEXT,
    source_run_id          TEXT,
    exported_as            TEXT,
    merge_base_version_id  TEXT REFERENCES artifact_version(id),
    created_by             TEXT NOT NULL,
    created_at             TEXT NOT NULL,
    UNIQUE (item_id, version)
);
"""

_CREATE_IDX_PROJECT_CREATED = """
CREATE INDEX IF NOT EXISTS idx_project_created ON project(created_at);
"""

_SCHEMA = (
    _CREATE_PROJECT,
    _CREATE_ITEM,
    _CREATE_IDX_ITEM_SLUG,
    _CREATE_ARTIFACT,
    _CREATE_VERSION,
    _CREATE_IDX_PROJECT_CREATED,
)

_VERSION_FIELDS = (
    "id",
    "item_id",
    "version",
    "size_bytes",
    "sha256",
    "rel_path",
    "comment",
    "source_run_id",
    "exported_as",
    "merge_base_version_id",
    "created_by",
    "created_at",
)


def _version_columns(alias: str = "") -> str:
    prefix = f"{alias}." if alias else ""
    return ", ".join(prefix + name for name in _VERSION_FIELDS)


_VERSION_COLUMNS = _version_columns()


def _timestamp(dt: datetime | None = None) -> str:
    return (dt or datetime.now(timezone.utc)).isoformat(timespec="microseconds")


# ---------------------------------------------------------------------------
# Write transaction
# ---------------------------------------------------------------------------


class WriteTransaction:
    """Operations that must share one atomic metadata transaction.

    Obtained from ``MetadataStore.transaction()``; never constructed directly.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        ids: IdGenerator,
        slug_retry_limit: int,
    ) -> None:
        self._conn = conn
        self._ids = ids
        self._slug_retry_limit = slug_retry_limit

    def insert_project(self, project: Project) -> None:
        try:
            self._conn.execute(
                "INSERT INTO project (id, name, created_at) VALUES (?, ?, ?)",
                (project.id, project.name, _timestamp(project.created_at)),
            )
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolationError(f"Project id {project.id} already exists") from exc

    def require_project(self, project_id: str) -> None:
        row = self._conn.execute(
            "SELECT 1 FROM project WHERE id = ?", (project_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Project not found: {project_id}")

    def artifact(self, artifact_id: str) -> Artifact:
        row = self._conn.execute(
            "SELECT id, item_id, mime_type FROM artifact WHERE id = ?", (artifact_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")
        return Artifact(**dict(row))

    def _slug_taken(self, project_id: str, parent_id: str | None, slug: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM project_item "
            "WHERE project_id = ? AND COALESCE(parent_id, '') = COALESCE(?, '') AND slug = ? "
            "LIMIT 1",
            (project_id, parent_id, slug),
        ).fetchone()
        return row is not None

    def _insert_item(self, item: Item) -> bool:
        """Insert under a savepoint; ``False`` if a unique constraint fired."""
        self._conn.execute("SAVEPOINT insert_item")
        try:
            self._conn.execute(
                """
                INSERT INTO project_item
                    (id, project_id, parent_id, kind, name, slug, sort_index,
                     is_deleted, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    item.project_id,
                    item.parent_id,
                    item.kind.value,
                    item.name,
                    item.slug,
                    item.sort_index,
                    int(item.is_deleted),
                    item.created_by,
                    _timestamp(item.created_at),
                    _timestamp(item.updated_at),
                ),
            )
        except sqlite3.IntegrityError as exc:
            self._conn.execute("ROLLBACK TO SAVEPOINT insert_item")
            self._conn.execute("RELEASE SAVEPOINT insert_item")
            logger.debug("Item insert hit a unique constraint (%s); retrying", exc)
            return False
        self._conn.execute("RELEASE SAVEPOINT insert_item")
        return True

    def create_item_and_artifact(
        self,
        project_id: str,
        name: str,
        created_by: str,
        *,
        mime_type: str | None = None,
        parent_id: str | None = None,
    ) -> tuple[str, str]:
        """Insert a file item with a sibling-unique slug plus its artifact.

        Returns ``(item_id, artifact_id)``.
        """
        self.require_project(project_id)

        base = slugify(name)
        candidate = base or self._ids.new_id("file")
        item: Item | None = None
        for _ in range(self._slug_retry_limit):
            if not self._slug_taken(project_id, parent_id, candidate):
                proposed = Item(
                    id=self._ids.new_id("itm"),
                    project_id=project_id,
                    parent_id=parent_id,
                    kind=ItemKind.FILE,
                    name=name,
                    slug=candidate,
                    created_by=created_by,
                )
                if self._insert_item(proposed):
                    item = proposed
                    break
            else:
                logger.debug("Slug %r taken in project %s", candidate, project_id)
            candidate = f"{base or 'file'}-{self._ids.suffix()}"

        if item is None:
            raise ConstraintViolationError(
                f"Could not find a free slug for {name!r} in project {project_id} "
                f"after {self._slug_retry_limit} attempts"
            )

        artifact = Artifact(
            id=self._ids.new_id("art"), item_id=item.id, mime_type=mime_type
        )
        try:
            self._conn.execute(
                "INSERT INTO artifact (id, item_id, mime_type) VALUES (?, ?, ?)",
                (artifact.id, artifact.item_id, artifact.mime_type),
            )
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolationError(f"Artifact id {artifact.id} already exists") from exc
        return item.id, artifact.id

    def next_version_number(self, item_id: str) -> int:
        row = self._conn.execute(
            "SELECT COALESCE(MAX(version), 0) FROM artifact_version WHERE item_id = ?",
            (item_id,),
        ).fetchone()
        return int(row[0]) + 1

    def version_by_id(self, item_id: str, version_id: str) -> ArtifactVersion:
        row = self._conn.execute(
            f"SELECT {_VERSION_COLUMNS} FROM artifact_version WHERE id = ? AND item_id = ?",
            (version_id, item_id),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Version {version_id} does not belong to item {item_id}")
        return ArtifactVersion(**dict(row))

    def insert_version(
        self,
        *,
        item_id: str,
        version: int,
        size_bytes: int,
        sha256: str,
        rel_path: str,
        created_by: str,
        comment: str | None = None,
        source_run_id: str | None = None,
        exported_as: str | None = None,
        merge_base_version_id: str | None = None,
    ) -> ArtifactVersion:
        """Insert a version row.  Append-only: there is no update path."""
        row = ArtifactVersion(
            id=self._ids.new_id("arv"),
            item_id=item_id,
            version=version,
            size_bytes=size_bytes,
            sha256=sha256,
            rel_path=rel_path,
            comment=comment,
            source_run_id=source_run_id,
            exported_as=exported_as,
            merge_base_version_id=merge_base_version_id,
            created_by=created_by,
        )
        try:
            self._conn.execute(
                f"INSERT INTO artifact_version ({_VERSION_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    row.id,
                    row.item_id,
                    row.version,
                    row.size_bytes,
                    row.sha256,
                    row.rel_path,
                    row.comment,
                    row.source_run_id,
                    row.exported_as,
                    row.merge_base_version_id,
                    row.created_by,
                    _timestamp(row.created_at),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolationError(
                f"Version {version} of item {item_id} violates a uniqueness constraint: {exc}"
            ) from exc
        return row


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class MetadataStore:
    """SQLite-backed project/item/artifact/version metadata.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    ids:
        Identifier generator for new rows.
    slug_retry_limit:
        Attempts in the slug collision loop before giving up.
    busy_timeout:
        Seconds to wait for another writer's lock.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        ids: IdGenerator,
        slug_retry_limit: int = 16,
        busy_timeout: float = 5.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._ids = ids
        self._slug_retry_limit = slug_retry_limit
        self._busy_timeout = busy_timeout
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly below.
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._busy_timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_schema(self) -> None:
        with closing(self._connect()) as conn:
            for ddl in _SCHEMA:
                conn.execute(ddl)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[WriteTransaction]:
        """Open a write transaction; commit on success, roll back on error."""
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield WriteTransaction(conn, self._ids, self._slug_retry_limit)
            except BaseException:
                conn.execute("ROLLBACK")
                logger.debug("Metadata transaction rolled back")
                raise
            conn.execute("COMMIT")
            logger.debug("Metadata transaction committed")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, name: str) -> Project:
        """Insert a project.  Project names are not unique."""
        project = Project(id=self._ids.new_id("proj"), name=name)
        with self.transaction() as tx:
            tx.insert_project(project)
        logger.info("Created project %s (%r)", project.id, project.name)
        return project

    def list_projects(self) -> list[Project]:
        """Return all projects, most recently created first."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT id, name, created_at FROM project "
                "ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [Project(**dict(row)) for row in rows]

    def get_project(self, project_id: str) -> Project | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT id, name, created_at FROM project WHERE id = ?", (project_id,)
            ).fetchone()
        return Project(**dict(row)) if row else None

    # ------------------------------------------------------------------
    # Items and artifacts
    # ------------------------------------------------------------------

    def create_item_and_artifact(
        self,
        project_id: str,
        name: str,
        created_by: str,
        *,
        mime_type: str | None = None,
    ) -> tuple[str, str]:
        """Create a top-level file item and its artifact in one transaction."""
        with self.transaction() as tx:
            return tx.create_item_and_artifact(
                project_id, name, created_by, mime_type=mime_type
            )

    def get_item(self, item_id: str) -> Item | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT id, project_id, parent_id, kind, name, slug, sort_index, "
                "is_deleted, created_by, created_at, updated_at "
                "FROM project_item WHERE id = ?",
                (item_id,),
            ).fetchone()
        return Item(**dict(row)) if row else None

    def get_artifact(self, artifact_id: str) -> Artifact | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT id, item_id, mime_type FROM artifact WHERE id = ?", (artifact_id,)
            ).fetchone()
        return Artifact(**dict(row)) if row else None

    def list_artifacts(self, project_id: str) -> list[ArtifactSummary]:
        """Return the live artifacts of a project in creation order."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT a.id AS artifact_id, a.item_id, a.mime_type, i.name, i.slug,
                       COALESCE(MAX(v.version), 0) AS latest_version
                  FROM artifact a
                  JOIN project_item i ON i.id = a.item_id
                  LEFT JOIN artifact_version v ON v.item_id = a.item_id
                 WHERE i.project_id = ? AND i.is_deleted = 0
                 GROUP BY a.id
                 ORDER BY i.sort_index ASC, i.created_at ASC, i.rowid ASC
                """,
                (project_id,),
            ).fetchall()
        return [ArtifactSummary(**dict(row)) for row in rows]

    # ------------------------------------------------------------------
    # Versions (read-only)
    # ------------------------------------------------------------------

    def next_version_number(self, item_id: str) -> int:
        """Version number the next append would receive (outside a transaction)."""
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT COALESCE(MAX(version), 0) FROM artifact_version WHERE item_id = ?",
                (item_id,),
            ).fetchone()
        return int(row[0]) + 1

    def get_artifact_history(self, artifact_id: str) -> list[ArtifactVersion]:
        """All versions of an artifact, ascending.  Empty if the id is unknown."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                f"""
                SELECT {_version_columns("v")}
                  FROM artifact_version v
                  JOIN artifact a ON a.item_id = v.item_id
                 WHERE a.id = ?
                 ORDER BY v.version ASC
                """,
                (artifact_id,),
            ).fetchall()
        return [ArtifactVersion(**dict(row)) for row in rows]

    def resolve_version(self, artifact_id: str, selector: VersionSelector) -> ArtifactVersion:
        """Return the version row chosen by *selector*.

        Raises ``NotFoundError`` if the artifact or the version does not exist.
        """
        artifact = self.get_artifact(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")

        with closing(self._connect()) as conn:
            if isinstance(selector, Latest):
                row = conn.execute(
                    f"SELECT {_VERSION_COLUMNS} FROM artifact_version "
                    "WHERE item_id = ? ORDER BY version DESC LIMIT 1",
                    (artifact.item_id,),
                ).fetchone()
            else:
                row = conn.execute(
                    f"SELECT {_VERSION_COLUMNS} FROM artifact_version "
                    "WHERE item_id = ? AND version = ?",
                    (artifact.item_id, selector.number),
                ).fetchone()

        if row is None:
            raise NotFoundError(f"Version not found for artifact {artifact_id} ({selector})")
        return ArtifactVersion(**dict(row))

    def referenced_blob_paths(self) -> set[str]:
        """Every ``rel_path`` recorded by a committed version."""
        with closing(self._connect()) as conn:
            rows = conn.execute("SELECT rel_path FROM artifact_version").fetchall()
        return {row[0] for row in rows}
