"""Prefixed, collision-resistant identifiers from an injected random source.

The generator is an explicit object handed to the metadata store, the blob
store and the engine.  Unseeded generators draw from ``secrets.SystemRandom``;
seeded ones use ``random.Random`` so tests get reproducible ids.
"""

from __future__ import annotations

import random
import secrets

ID_SUFFIX_BYTES = 4


class IdGenerator:
    """Produces ids like ``proj_ab12cd34`` and short hex suffixes.

    Parameters
    ----------
    seed:
        When given, ids are deterministic for the lifetime of the generator.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._rng: random.Random = (
            secrets.SystemRandom() if seed is None else random.Random(seed)
        )

    @property
    def seeded(self) -> bool:
        return self._seed is not None

    def _hex(self, nbytes: int) -> str:
        return f"{self._rng.getrandbits(nbytes * 8):0{nbytes * 2}x}"

    def new_id(self, prefix: str) -> str:
        """Return ``"<prefix>_<8 hex chars>"``."""
        return f"{prefix}_{self._hex(ID_SUFFIX_BYTES)}"

    def suffix(self, nbytes: int = 2) -> str:
        """Return a short random hex token (``2 * nbytes`` characters)."""
        return self._hex(nbytes)

    def __repr__(self) -> str:
        source = f"seed={self._seed}" if self.seeded else "system"
        return f"IdGenerator({source})"
