"""Content hashing for blob integrity, and the canonical JSON used for run events."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Sorted-key, compact, ASCII-only JSON encoded as UTF-8.

    Values JSON cannot represent natively (datetimes, paths) go through ``str``.
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes (64 lowercase chars)."""
    return hashlib.sha256(data).hexdigest()
