"""Error taxonomy for the artifact store.

Every failure surfaced by the engine derives from ``VaultError`` so the CLI
can report it uniformly.  None of these are retried automatically.
"""

from __future__ import annotations


class VaultError(RuntimeError):
    """Base class for all artifact store errors."""


class NotFoundError(VaultError):
    """A referenced project, artifact, item or version does not exist."""


class ConstraintViolationError(VaultError):
    """A slug or version uniqueness constraint held after all retries."""


class StorageIOError(VaultError, OSError):
    """Reading source bytes, writing a blob or writing an export failed."""


class ArtifactIntegrityError(VaultError):
    """Stored bytes do not match the digest or size recorded for them."""
