"""Pipeline configuration for imagepdf.

:class:`ImagePdfConfig` captures every tuneable knob of the pipeline: the
size gates, the upload chunk size, the normalization bounds, and the HTTP
transport settings used by :class:`~imagepdf.transfer.sink.HttpChunkSink`.
One instance is passed into every stage so tests can shrink the limits.

The module-level constant :data:`DEFAULT_ALLOWED_MIMES` lists the raster
formats accepted into the selection.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# MIME allowlist constants
# ---------------------------------------------------------------------------

DEFAULT_ALLOWED_MIMES: list[str] = [
    "image/png",
    "image/jpeg",
    "image/webp",
]
"""MIME types accepted by :meth:`FileSelection.add_files`."""

EMBEDDABLE_MIMES: frozenset[str] = frozenset({"image/png", "image/jpeg"})
"""Encodings the document assembler places on a page without transcoding."""


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class ImagePdfConfig:
    """Complete configuration for the image-to-PDF upload pipeline.

    Every parameter has a default matching the production limits, so an
    empty ``ImagePdfConfig()`` is usable as-is.

    Parameters
    ----------
    max_file_size:
        Upper bound in bytes for each selected input file *and* for the
        final assembled document.
    chunk_size:
        Maximum number of base64 characters sent per chunk request.  The
        bound applies to the encoded text, not to raw document bytes.
    max_dimension:
        Longest side, in pixels, an image may keep after normalization.
        Smaller images are never upscaled.
    quality:
        Re-encode quality factor in ``(0, 1]``.  ``0.5`` maps to Pillow
        quality ``50``.
    allowed_mimes:
        MIME types accepted into the selection.
    document_content_type:
        Content type declared to the remote sink for the assembled document.
    normalize_max_concurrent:
        Maximum number of normalization tasks running at once.
    base_url:
        Root URL of the chunk storage service.
    store_path:
        Path (relative to ``base_url``) that accepts chunk POSTs.
    token:
        Optional bearer token forwarded as ``Authorization``.  Never logged.
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    retry_max_attempts:
        Total attempts per chunk request.  Defaults to ``1`` because a
        chunk append is not idempotent on the server side.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on computed backoff delay.
    retry_jitter:
        Add random jitter to backoff intervals.
    metrics:
        Optional :class:`~imagepdf.observability.MetricsHook` backend.
    debug_dump_payload:
        Write the (redacted) request/response of every chunk to *stderr*.
    """

    # ── Limits ──────────────────────────────────────────────────────────
    max_file_size: int = 5_000_000

    chunk_size: int = 2_500_000

    # ── Normalization ───────────────────────────────────────────────────
    max_dimension: int = 1000

    quality: float = 0.5

    allowed_mimes: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIMES),
    )

    normalize_max_concurrent: int = 4

    # ── Document ────────────────────────────────────────────────────────
    document_content_type: str = "application/pdf"

    # ── Remote sink ─────────────────────────────────────────────────────
    base_url: str = "http://localhost:8000"

    store_path: str = "/chunks"

    token: str = ""

    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Retry ───────────────────────────────────────────────────────────
    retry_max_attempts: int = 1

    retry_base_delay: float = 1.0

    retry_max_delay: float = 30.0

    retry_jitter: bool = True

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(
                f"base_url must use http or https, got {self.base_url!r}"
            )
        if self.token and parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS when a token is configured, or target localhost for testing."
            )

        if self.max_file_size <= 0:
            raise ValueError(f"max_file_size must be > 0, got {self.max_file_size}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {self.chunk_size}")
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be >= 1, got {self.max_dimension}")
        if not 0 < self.quality <= 1:
            raise ValueError(f"quality must be in (0, 1], got {self.quality}")
        if self.normalize_max_concurrent < 1:
            raise ValueError(
                f"normalize_max_concurrent must be >= 1, got {self.normalize_max_concurrent}"
            )
        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    @property
    def quality_percent(self) -> int:
        """Quality factor expressed on Pillow's 1-100 scale."""
        return max(1, min(100, round(self.quality * 100)))

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"ImagePdfConfig({', '.join(parts)})"
