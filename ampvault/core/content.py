"""Best-effort content type detection by file extension.

No content sniffing: the extension of the source path (or display name)
decides the MIME type recorded on the artifact.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import PurePath

DEFAULT_MIME = "text/plain"

_MIME_BY_EXTENSION: dict[str, str] = {
    ".md": "text/markdown",
    ".csv": "text/csv",
}

_EXTENSION_BY_MIME: dict[str, str] = {
    "text/markdown": ".md",
    "text/csv": ".csv",
}


def detect_mime(filename: str | PurePath) -> str:
    """Map a filename to ``text/markdown``, ``text/csv`` or ``text/plain``."""
    return _MIME_BY_EXTENSION.get(PurePath(filename).suffix.lower(), DEFAULT_MIME)


def extension_for(mime: str | None) -> str:
    """Default file extension for exports of the given MIME type."""
    return _EXTENSION_BY_MIME.get(mime or "", ".txt")


def _render_plain(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _render_csv(data: bytes) -> str:
    # Drop a leading BOM; rows end in "\n".
    text = data.decode("utf-8-sig", errors="replace")
    return text.replace("\r\n", "\n")


_VIEWERS: dict[str, Callable[[bytes], str]] = {
    "text/plain": _render_plain,
    "text/markdown": _render_plain,
    "text/csv": _render_csv,
}


def render_text(data: bytes, mime: str | None) -> str:
    """Decode version bytes for terminal display using the viewer for *mime*.

    Unknown or missing types fall back to plain UTF-8; undecodable bytes are
    replaced rather than raising.
    """
    return _VIEWERS.get(mime or DEFAULT_MIME, _render_plain)(data)
