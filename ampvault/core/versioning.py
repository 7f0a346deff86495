"""Artifact versioning engine — the single entry point for storage callers.

The engine wires together the IdGenerator, MetadataStore and BlobStore and
turns "store these bytes" into one atomic operation.

Ordering contract (bytes durable before metadata visible):

1. open a ``BEGIN IMMEDIATE`` metadata transaction
2. insert item/artifact rows and pick ``max(version) + 1``
3. write the blob (temp file, fsync, rename)
4. insert the version row and commit

A crash or error after step 3 but before the commit leaves an orphan blob
and no rows.  That window is accepted; ``collect_garbage`` reclaims it.
A committed row never points at a missing file.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ampvault.config import VaultConfig, config as default_config
from ampvault.core.blob_store import BlobStore, export_bytes
from ampvault.core.content import detect_mime, extension_for
from ampvault.core.errors import (
    ArtifactIntegrityError,
    NotFoundError,
    StorageIOError,
)
from ampvault.core.hasher import sha256_hex
from ampvault.core.ids import IdGenerator
from ampvault.core.metadata_store import MetadataStore, WriteTransaction
from ampvault.models.records import (
    AddResult,
    ArtifactSummary,
    ArtifactVersion,
    Project,
    VersionCheck,
)
from ampvault.models.selectors import LATEST, VersionSelector

logger = logging.getLogger(__name__)


def _read_source(path: Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise StorageIOError(f"Cannot read source file {path}: {exc}") from exc


class VersioningEngine:
    """Create projects, add and append artifact versions, read them back.

    Parameters
    ----------
    data_dir:
        Data root.  Holds the metadata store file and ``artifacts/``.
    ids:
        Identifier generator.  A fresh system-random one if not provided.
    config:
        Runtime configuration.  The module-level ``ampvault.config.config``
        if not provided.
    """

    def __init__(
        self,
        data_dir: Path,
        *,
        ids: IdGenerator | None = None,
        config: VaultConfig | None = None,
    ) -> None:
        self.config = config or default_config
        self.data_dir = Path(data_dir)
        self.ids = ids or IdGenerator(self.config.id_seed)

        self.metadata = MetadataStore(
            self.data_dir / self.config.db_filename,
            ids=self.ids,
            slug_retry_limit=self.config.slug_retry_limit,
            busy_timeout=self.config.busy_timeout_seconds,
        )
        self.blobs = BlobStore(self.data_dir, ids=self.ids)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, name: str) -> Project:
        return self.metadata.create_project(name)

    def list_projects(self) -> list[Project]:
        return self.metadata.list_projects()

    def get_project(self, project_id: str) -> Project:
        """Return the project or raise ``NotFoundError``."""
        project = self.metadata.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        return project

    def list_artifacts(self, project_id: str) -> list[ArtifactSummary]:
        self.get_project(project_id)
        return self.metadata.list_artifacts(project_id)

    # ------------------------------------------------------------------
    # Add: new item + artifact + version 1
    # ------------------------------------------------------------------

    def add_artifact_from_file(
        self,
        project_id: str,
        path: Path,
        *,
        name: str | None = None,
        comment: str | None = None,
        created_by: str | None = None,
        source_run_id: str | None = None,
        exported_as: str | None = None,
    ) -> AddResult:
        """Store a file as a brand-new artifact.

        The display name defaults to the file's basename; the MIME type is
        detected from the path's extension.
        """
        path = Path(path)
        self.get_project(project_id)
        data = _read_source(path)
        return self._add_new(
            project_id,
            data,
            name=name or path.name,
            mime_type=detect_mime(path),
            comment=comment,
            created_by=created_by,
            source_run_id=source_run_id,
            exported_as=exported_as,
        )

    def add_artifact_from_bytes(
        self,
        project_id: str,
        data: bytes,
        *,
        name: str,
        comment: str | None = None,
        created_by: str | None = None,
        source_run_id: str | None = None,
        exported_as: str | None = None,
    ) -> AddResult:
        """Store raw bytes as a brand-new artifact named *name*."""
        self.get_project(project_id)
        return self._add_new(
            project_id,
            bytes(data),
            name=name,
            mime_type=detect_mime(name),
            comment=comment,
            created_by=created_by,
            source_run_id=source_run_id,
            exported_as=exported_as,
        )

    def _add_new(
        self,
        project_id: str,
        data: bytes,
        *,
        name: str,
        mime_type: str,
        comment: str | None,
        created_by: str | None,
        source_run_id: str | None,
        exported_as: str | None,
    ) -> AddResult:
        creator = created_by or self.config.default_creator
        sha256 = sha256_hex(data)

        with self._write_transaction() as (tx, written):
            tx.require_project(project_id)
            item_id, artifact_id = tx.create_item_and_artifact(
                project_id, name, creator, mime_type=mime_type
            )
            row = self._store_version(
                tx,
                written,
                item_id,
                data,
                sha256=sha256,
                created_by=creator,
                comment=comment,
                source_run_id=source_run_id,
                exported_as=exported_as,
            )

        logger.info(
            "Added artifact %s (%r) to project %s: v%d, %d bytes",
            artifact_id, name, project_id, row.version, row.size_bytes,
        )
        return AddResult(artifact_id=artifact_id, item_id=item_id, version=row.version)

    # ------------------------------------------------------------------
    # Append: next version of an existing artifact
    # ------------------------------------------------------------------

    def append_version(
        self,
        artifact_id: str,
        data: bytes,
        *,
        comment: str | None = None,
        created_by: str | None = None,
        source_run_id: str | None = None,
        exported_as: str | None = None,
        merge_base_version_id: str | None = None,
    ) -> AddResult:
        """Add the next version of an existing artifact.

        ``merge_base_version_id``, when given, must name a version of the
        same artifact.
        """
        creator = created_by or self.config.default_creator
        data = bytes(data)
        sha256 = sha256_hex(data)

        with self._write_transaction() as (tx, written):
            artifact = tx.artifact(artifact_id)
            if merge_base_version_id is not None:
                tx.version_by_id(artifact.item_id, merge_base_version_id)
            row = self._store_version(
                tx,
                written,
                artifact.item_id,
                data,
                sha256=sha256,
                created_by=creator,
                comment=comment,
                source_run_id=source_run_id,
                exported_as=exported_as,
                merge_base_version_id=merge_base_version_id,
            )

        logger.info(
            "Appended v%d to artifact %s (%d bytes)", row.version, artifact_id, row.size_bytes
        )
        return AddResult(artifact_id=artifact_id, item_id=artifact.item_id, version=row.version)

    def append_version_from_file(
        self,
        artifact_id: str,
        path: Path,
        **kwargs: str | None,
    ) -> AddResult:
        """``append_version`` with bytes read from *path*."""
        if self.metadata.get_artifact(artifact_id) is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")
        return self.append_version(artifact_id, _read_source(Path(path)), **kwargs)

    @contextmanager
    def _write_transaction(self) -> Iterator[tuple[WriteTransaction, list[str]]]:
        """Metadata transaction that also tracks blobs written inside it.

        If anything fails before the commit completes, including the commit
        itself, each tracked blob is left as an orphan and logged.
        """
        written: list[str] = []
        try:
            with self.metadata.transaction() as tx:
                yield tx, written
        except Exception:
            for rel_path in written:
                logger.warning(
                    "Metadata transaction rolled back after blob write; %s is now an orphan",
                    rel_path,
                )
            raise

    def _store_version(
        self,
        tx: WriteTransaction,
        written: list[str],
        item_id: str,
        data: bytes,
        *,
        sha256: str,
        created_by: str,
        comment: str | None = None,
        source_run_id: str | None = None,
        exported_as: str | None = None,
        merge_base_version_id: str | None = None,
    ) -> ArtifactVersion:
        """Write the blob, then insert its row, inside the caller's transaction."""
        version = tx.next_version_number(item_id)
        rel_path = self.blobs.relative_path(item_id, version)
        self.blobs.write(rel_path, data)
        written.append(rel_path)
        return tx.insert_version(
            item_id=item_id,
            version=version,
            size_bytes=len(data),
            sha256=sha256,
            rel_path=rel_path,
            created_by=created_by,
            comment=comment,
            source_run_id=source_run_id,
            exported_as=exported_as,
            merge_base_version_id=merge_base_version_id,
        )

    # ------------------------------------------------------------------
    # History and retrieval
    # ------------------------------------------------------------------

    def get_artifact_history(self, artifact_id: str) -> list[ArtifactVersion]:
        return self.metadata.get_artifact_history(artifact_id)

    def resolve_version(
        self, artifact_id: str, selector: VersionSelector = LATEST
    ) -> ArtifactVersion:
        return self.metadata.resolve_version(artifact_id, selector)

    def read_version(self, artifact_id: str, selector: VersionSelector = LATEST) -> bytes:
        """Return the bytes of a version, re-hashed if ``verify_on_export``."""
        row = self.resolve_version(artifact_id, selector)
        return self._read_row(row)

    def _read_row(self, row: ArtifactVersion) -> bytes:
        if self.config.verify_on_export:
            return self.blobs.read_verified(row.rel_path, row.sha256, row.size_bytes)
        try:
            return self.blobs.read(row.rel_path)
        except FileNotFoundError as exc:
            raise ArtifactIntegrityError(
                f"Blob {row.rel_path} is missing for a committed version"
            ) from exc

    def export_artifact_version(
        self,
        artifact_id: str,
        selector: VersionSelector = LATEST,
        out_path: Path | None = None,
    ) -> Path:
        """Copy a version byte-for-byte to *out_path*.

        The default destination is ``<cwd>/<artifact_id>-v<NNNN><ext>``.
        """
        artifact = self.metadata.get_artifact(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")
        row = self.resolve_version(artifact_id, selector)
        data = self._read_row(row)

        destination = (
            Path(out_path)
            if out_path is not None
            else Path.cwd() / f"{artifact_id}-v{row.version:04d}{extension_for(artifact.mime_type)}"
        )
        export_bytes(data, destination)
        logger.info("Exported %s v%d to %s", artifact_id, row.version, destination)
        return destination

    def verify_artifact(self, artifact_id: str) -> list[VersionCheck]:
        """Re-hash every version of an artifact against its recorded digest."""
        if self.metadata.get_artifact(artifact_id) is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")

        checks: list[VersionCheck] = []
        for row in self.metadata.get_artifact_history(artifact_id):
            try:
                self.blobs.read_verified(row.rel_path, row.sha256, row.size_bytes)
            except ArtifactIntegrityError as exc:
                checks.append(VersionCheck(version=row.version, ok=False, detail=str(exc)))
            else:
                checks.append(VersionCheck(version=row.version, ok=True))
        return checks

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def find_orphan_blobs(self) -> list[str]:
        """Blobs on disk that no committed version references."""
        referenced = self.metadata.referenced_blob_paths()
        return [path for path in self.blobs.iter_blobs() if path not in referenced]

    def collect_garbage(self, *, dry_run: bool = False) -> list[str]:
        """Remove orphan blobs and leftover temp files.

        Run this only while no writer is active: a blob written by an
        in-flight add is an orphan until its transaction commits.
        """
        candidates = self.find_orphan_blobs() + list(self.blobs.iter_temp_files())
        if not dry_run:
            for rel_path in candidates:
                self.blobs.remove(rel_path)
            if candidates:
                logger.info("Garbage collection removed %d file(s)", len(candidates))
        return candidates
