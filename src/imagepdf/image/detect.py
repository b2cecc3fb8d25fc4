"""MIME detection for selected files.

The selection trusts the MIME type the host declares; these helpers exist
for hosts that only have a path or raw bytes (see
:meth:`PendingFile.from_path`) and for diagnostics when a declared type and
the actual bytes disagree.
"""

from __future__ import annotations

import mimetypes

# Map of magic bytes to MIME types for sniffing.
_MAGIC_BYTES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"RIFF", "image/webp"),  # RIFF....WEBP (checked further)
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
]


def sniff_mime(data: bytes) -> str | None:
    """Detect a MIME type from the first bytes of *data*, or ``None``."""
    for magic, mime in _MAGIC_BYTES:
        if data[:len(magic)] == magic:
            if magic == b"RIFF" and data[8:12] != b"WEBP":
                continue
            return mime
    return None


def guess_mime(data: bytes, name: str) -> str:
    """Sniff *data*, fall back to *name*'s extension, then to octet-stream."""
    mime = sniff_mime(data)
    if not mime:
        mime, _ = mimetypes.guess_type(name)
    return mime or "application/octet-stream"
