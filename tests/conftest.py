"""Shared test fixtures for ampvault."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ampvault.config import VaultConfig
from ampvault.core.blob_store import BlobStore
from ampvault.core.ids import IdGenerator
from ampvault.core.metadata_store import MetadataStore
from ampvault.core.versioning import VersioningEngine
from ampvault.models.records import Project


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def data_dir(tmp_dir: Path) -> Path:
    """Data root for a store under test."""
    return tmp_dir / ".amp"


@pytest.fixture
def ids() -> IdGenerator:
    """Provide a seeded, deterministic IdGenerator."""
    return IdGenerator(seed=1234)


@pytest.fixture
def vault_config(data_dir: Path) -> VaultConfig:
    """Config pinned to the temp data root, independent of the environment."""
    return VaultConfig(data_dir=data_dir, verify_on_export=True, id_seed=None)


@pytest.fixture
def metadata_store(data_dir: Path, ids: IdGenerator) -> MetadataStore:
    """Provide a fresh MetadataStore backed by a temp SQLite database."""
    return MetadataStore(data_dir / "amp.db", ids=ids)


@pytest.fixture
def blob_store(data_dir: Path, ids: IdGenerator) -> BlobStore:
    """Provide a fresh BlobStore in a temp directory."""
    return BlobStore(data_dir, ids=ids)


@pytest.fixture
def engine(data_dir: Path, ids: IdGenerator, vault_config: VaultConfig) -> VersioningEngine:
    """Provide a VersioningEngine wired to temp storage."""
    return VersioningEngine(data_dir, ids=ids, config=vault_config)


@pytest.fixture
def project(engine: VersioningEngine) -> Project:
    """A freshly created project named "Demo"."""
    return engine.create_project("Demo")


@pytest.fixture
def make_source_file(tmp_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write a source file to add as an artifact."""

    def _factory(name: str = "notes.md", content: bytes | str = b"hello") -> Path:
        path = tmp_dir / "src" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8") if isinstance(content, str) else content)
        return path

    return _factory
