"""Display name to path-safe slug normalization."""

from __future__ import annotations

import re

_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase *name* and collapse every run of non ``[a-z0-9]`` into ``-``.

    Leading and trailing hyphens are trimmed.  Returns ``""`` when nothing
    slug-worthy remains; callers substitute their own fallback.
    """
    return _NON_SLUG_RUN.sub("-", name.strip().lower()).strip("-")
