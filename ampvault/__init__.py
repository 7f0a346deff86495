"""ampvault: immutable, content-hashed, versioned artifact storage.

Projects hold items; each file item owns one artifact whose versions are
append-only snapshots of bytes:
  - metadata in SQLite (project, project_item, artifact, artifact_version)
  - bytes in ``artifacts/<item_id>/v<NNNN>.bin`` under the data root
  - SHA-256 digest and size recorded per version, re-checked on export
  - version numbers dense from 1, assigned inside the inserting transaction
"""

__version__ = "0.1.0"
__description__ = "Immutable, content-hashed, versioned artifact storage"

from ampvault.core.errors import (
    ArtifactIntegrityError,
    ConstraintViolationError,
    NotFoundError,
    StorageIOError,
    VaultError,
)
from ampvault.core.ids import IdGenerator
from ampvault.core.versioning import VersioningEngine
from ampvault.models.selectors import LATEST, Latest, VersionNumber

__all__ = [
    "VersioningEngine",
    "IdGenerator",
    "LATEST",
    "Latest",
    "VersionNumber",
    "VaultError",
    "NotFoundError",
    "ConstraintViolationError",
    "StorageIOError",
    "ArtifactIntegrityError",
    "__version__",
]
