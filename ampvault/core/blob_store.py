"""Filesystem blob store — one immutable file per artifact version.

Storage layout: {root}/artifacts/{item_id}/v{version:04d}.bin

Writes go to a temp file in the target directory, are fsynced, then
renamed into place, so a reader never sees a partially written blob.
There is no delete method for committed blobs; ``remove`` exists only for
the garbage-collection pass over orphans.
"""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator
from pathlib import Path, PurePosixPath

from ampvault.core.errors import ArtifactIntegrityError, StorageIOError
from ampvault.core.hasher import sha256_hex
from ampvault.core.ids import IdGenerator

logger = logging.getLogger(__name__)

BLOB_DIR = "artifacts"
_TMP_SUFFIX = ".tmp"


def export_bytes(data: bytes, destination: Path) -> Path:
    """Write *data* to *destination*, creating parent directories."""
    destination = Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
    except OSError as exc:
        raise StorageIOError(f"Cannot write export to {destination}: {exc}") from exc
    return destination


class BlobStore:
    """Deterministic-path, write-once byte storage.

    Parameters
    ----------
    root:
        Data root directory; blobs live under ``root/artifacts``.
    ids:
        Random source used for temp file names.
    """

    def __init__(self, root: Path, *, ids: IdGenerator) -> None:
        self._root = Path(root)
        self._ids = ids
        (self._root / BLOB_DIR).mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @staticmethod
    def relative_path(item_id: str, version: int) -> str:
        """Compute the storage path for a version, relative to the data root.

        Layout: artifacts/{item_id}/v{version:04d}.bin
        """
        if version < 1:
            raise ValueError(f"Version numbers start at 1, got {version}")
        return str(PurePosixPath(BLOB_DIR, item_id, f"v{version:04d}.bin"))

    def absolute_path(self, rel_path: str) -> Path:
        return self._root.joinpath(*PurePosixPath(rel_path).parts)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write(self, rel_path: str, data: bytes) -> Path:
        """Durably write *data* at *rel_path* (temp file, fsync, rename)."""
        target = self.absolute_path(rel_path)
        tmp = target.with_name(f".{target.name}.{self._ids.suffix(4)}{_TMP_SUFFIX}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "xb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, target)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageIOError(f"Cannot write blob {rel_path}: {exc}") from exc

        logger.debug("BlobStore: wrote %d bytes to %s", len(data), rel_path)
        return target

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def read(self, rel_path: str) -> bytes:
        """Return the raw bytes stored at *rel_path*."""
        path = self.absolute_path(rel_path)
        if not path.exists():
            raise FileNotFoundError(f"Blob not found: {rel_path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageIOError(f"Cannot read blob {rel_path}: {exc}") from exc

    def read_verified(self, rel_path: str, sha256: str, size_bytes: int | None = None) -> bytes:
        """Read a blob and check it against its recorded digest and size."""
        try:
            data = self.read(rel_path)
        except FileNotFoundError as exc:
            raise ArtifactIntegrityError(
                f"Blob {rel_path} is missing for a committed version"
            ) from exc

        if size_bytes is not None and len(data) != size_bytes:
            raise ArtifactIntegrityError(
                f"Size mismatch for {rel_path}: expected {size_bytes} bytes, "
                f"found {len(data)}"
            )
        actual = sha256_hex(data)
        if actual != sha256:
            raise ArtifactIntegrityError(
                f"Digest mismatch for {rel_path}: expected {sha256!r}, got {actual!r}"
            )
        return data

    # ------------------------------------------------------------------
    # Check and verify
    # ------------------------------------------------------------------

    def exists(self, rel_path: str) -> bool:
        return self.absolute_path(rel_path).is_file()

    def verify(self, rel_path: str, sha256: str, size_bytes: int | None = None) -> bool:
        """Re-hash stored data and compare against the recorded digest."""
        try:
            self.read_verified(rel_path, sha256, size_bytes)
        except ArtifactIntegrityError:
            return False
        return True

    # ------------------------------------------------------------------
    # Reconciliation helpers
    # ------------------------------------------------------------------

    def iter_blobs(self) -> Iterator[str]:
        """Yield the relative path of every version blob on disk."""
        for path in sorted((self._root / BLOB_DIR).glob("*/v*.bin")):
            yield path.relative_to(self._root).as_posix()

    def iter_temp_files(self) -> Iterator[str]:
        """Yield leftovers of interrupted writes."""
        for path in sorted((self._root / BLOB_DIR).glob(f"*/.*{_TMP_SUFFIX}")):
            yield path.relative_to(self._root).as_posix()

    def remove(self, rel_path: str) -> None:
        """Delete an unreferenced blob and prune its directory if empty."""
        path = self.absolute_path(rel_path)
        try:
            path.unlink(missing_ok=True)
            if path.parent != self._root / BLOB_DIR and not any(path.parent.iterdir()):
                path.parent.rmdir()
        except OSError as exc:
            raise StorageIOError(f"Cannot remove blob {rel_path}: {exc}") from exc
