"""Tests for BlobStore — deterministic paths, atomic writes, integrity."""

from __future__ import annotations

from pathlib import Path

import pytest

from ampvault.core.blob_store import BlobStore, export_bytes
from ampvault.core.errors import ArtifactIntegrityError, StorageIOError
from ampvault.core.hasher import sha256_hex


class TestPaths:
    def test_relative_path_layout(self):
        assert BlobStore.relative_path("itm_ab12cd34", 1) == "artifacts/itm_ab12cd34/v0001.bin"
        assert BlobStore.relative_path("itm_ab12cd34", 42) == "artifacts/itm_ab12cd34/v0042.bin"

    def test_relative_path_wide_versions(self):
        assert BlobStore.relative_path("itm_x", 12345) == "artifacts/itm_x/v12345.bin"

    def test_relative_path_rejects_zero(self):
        with pytest.raises(ValueError):
            BlobStore.relative_path("itm_x", 0)

    def test_absolute_path_under_root(self, blob_store: BlobStore, data_dir: Path):
        path = blob_store.absolute_path("artifacts/itm_x/v0001.bin")
        assert path == data_dir / "artifacts" / "itm_x" / "v0001.bin"


class TestWriteAndRead:
    def test_write_and_read(self, blob_store: BlobStore):
        rel = BlobStore.relative_path("itm_a", 1)
        blob_store.write(rel, b"hello")
        assert blob_store.exists(rel)
        assert blob_store.read(rel) == b"hello"

    def test_write_leaves_no_temp_files(self, blob_store: BlobStore):
        rel = BlobStore.relative_path("itm_a", 1)
        blob_store.write(rel, b"hello")
        assert list(blob_store.iter_temp_files()) == []

    def test_empty_blob(self, blob_store: BlobStore):
        rel = BlobStore.relative_path("itm_a", 1)
        blob_store.write(rel, b"")
        assert blob_store.read(rel) == b""

    def test_read_missing(self, blob_store: BlobStore):
        with pytest.raises(FileNotFoundError):
            blob_store.read("artifacts/itm_none/v0001.bin")

    def test_write_failure_is_storage_io_error(self, blob_store: BlobStore, data_dir: Path):
        # A regular file where the item directory should be.
        (data_dir / "artifacts" / "itm_blocked").write_bytes(b"")
        with pytest.raises(StorageIOError):
            blob_store.write("artifacts/itm_blocked/v0001.bin", b"x")


class TestVerify:
    def test_read_verified(self, blob_store: BlobStore):
        rel = BlobStore.relative_path("itm_a", 1)
        blob_store.write(rel, b"payload")
        assert blob_store.read_verified(rel, sha256_hex(b"payload"), 7) == b"payload"
        assert blob_store.verify(rel, sha256_hex(b"payload")) is True

    def test_digest_mismatch(self, blob_store: BlobStore):
        rel = BlobStore.relative_path("itm_a", 1)
        blob_store.write(rel, b"payload")
        with pytest.raises(ArtifactIntegrityError, match="Digest mismatch"):
            blob_store.read_verified(rel, sha256_hex(b"other"))
        assert blob_store.verify(rel, sha256_hex(b"other")) is False

    def test_size_mismatch(self, blob_store: BlobStore):
        rel = BlobStore.relative_path("itm_a", 1)
        blob_store.write(rel, b"payload")
        with pytest.raises(ArtifactIntegrityError, match="Size mismatch"):
            blob_store.read_verified(rel, sha256_hex(b"payload"), 3)

    def test_missing_blob_is_integrity_error(self, blob_store: BlobStore):
        with pytest.raises(ArtifactIntegrityError, match="missing"):
            blob_store.read_verified("artifacts/itm_none/v0001.bin", "0" * 64)


class TestReconciliationHelpers:
    def test_iter_blobs(self, blob_store: BlobStore):
        blob_store.write(BlobStore.relative_path("itm_b", 1), b"1")
        blob_store.write(BlobStore.relative_path("itm_a", 2), b"2")
        blob_store.write(BlobStore.relative_path("itm_a", 1), b"1")
        assert list(blob_store.iter_blobs()) == [
            "artifacts/itm_a/v0001.bin",
            "artifacts/itm_a/v0002.bin",
            "artifacts/itm_b/v0001.bin",
        ]

    def test_iter_temp_files(self, blob_store: BlobStore, data_dir: Path):
        stale = data_dir / "artifacts" / "itm_a" / ".v0001.bin.deadbeef.tmp"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"partial")
        assert list(blob_store.iter_temp_files()) == ["artifacts/itm_a/.v0001.bin.deadbeef.tmp"]

    def test_remove_prunes_empty_directory(self, blob_store: BlobStore, data_dir: Path):
        rel = BlobStore.relative_path("itm_a", 1)
        blob_store.write(rel, b"x")
        blob_store.remove(rel)
        assert not blob_store.exists(rel)
        assert not (data_dir / "artifacts" / "itm_a").exists()
        assert (data_dir / "artifacts").is_dir()


class TestExportBytes:
    def test_creates_parent_directories(self, tmp_dir: Path):
        target = tmp_dir / "deep" / "nested" / "out.md"
        assert export_bytes(b"data", target) == target
        assert target.read_bytes() == b"data"

    def test_unwritable_destination(self, tmp_dir: Path):
        blocker = tmp_dir / "blocker"
        blocker.write_bytes(b"")
        with pytest.raises(StorageIOError):
            export_bytes(b"data", blocker / "out.md")
