"""imagepdf: bundle selected images into one PDF and upload it in chunks.

Public re-exports
-----------------

* **Client:** :class:`AsyncImagePdfClient`
* **Configuration:** :class:`ImagePdfConfig`
* **Pipeline stages:** :class:`FileSelection`, :func:`normalize`,
  :class:`DocumentAssembler`, :class:`ChunkedUpload`
* **Errors:** Every :class:`ImagePdfError` subclass and :class:`ErrorCode`
* **Models:** All value dataclasses and enums

Usage::

    from imagepdf import AsyncImagePdfClient, PendingFile

    async with AsyncImagePdfClient(base_url="https://files.example.com") as client:
        client.add_files([PendingFile.from_path("page-1.png")])
        result = await client.submit(target_id="record-42")
"""

from __future__ import annotations

# ── Client ─────────────────────────────────────────────────────────────
from imagepdf.async_client import AsyncImagePdfClient

# ── Configuration ───────────────────────────────────────────────────────
from imagepdf.config import DEFAULT_ALLOWED_MIMES, EMBEDDABLE_MIMES, ImagePdfConfig

# ── Pipeline stages ─────────────────────────────────────────────────────
from imagepdf.document import DocumentAssembler

# ── Errors ──────────────────────────────────────────────────────────────
from imagepdf.errors import (
    AssemblyError,
    EmptySelectionError,
    ErrorCode,
    ImagePdfError,
    OversizedInputError,
    PayloadTooLargeError,
    TransferError,
    TransferNetworkError,
    TransferRetryExhaustedError,
    UnsupportedFileTypeError,
)
from imagepdf.image import async_normalize, normalize

# ── Models ──────────────────────────────────────────────────────────────
from imagepdf.models import (
    FileCandidate,
    NormalizedImage,
    PendingFile,
    PreviewHandle,
    Severity,
    UploadResult,
    UploadSession,
    UploadState,
)
from imagepdf.notify import LoggingNotifier, Notifier
from imagepdf.selection import FileSelection, PreviewRegistry
from imagepdf.transfer import (
    ChunkedUpload,
    ChunkSink,
    HttpChunkSink,
    async_upload_chunked,
)

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Client
    "AsyncImagePdfClient",
    # Configuration
    "ImagePdfConfig",
    "DEFAULT_ALLOWED_MIMES",
    "EMBEDDABLE_MIMES",
    # Pipeline stages
    "FileSelection",
    "PreviewRegistry",
    "normalize",
    "async_normalize",
    "DocumentAssembler",
    "ChunkedUpload",
    "async_upload_chunked",
    # Boundaries
    "ChunkSink",
    "HttpChunkSink",
    "Notifier",
    "LoggingNotifier",
    # Errors
    "ImagePdfError",
    "ErrorCode",
    "UnsupportedFileTypeError",
    "OversizedInputError",
    "EmptySelectionError",
    "AssemblyError",
    "PayloadTooLargeError",
    "TransferError",
    "TransferNetworkError",
    "TransferRetryExhaustedError",
    # Models
    "FileCandidate",
    "PendingFile",
    "PreviewHandle",
    "NormalizedImage",
    "UploadSession",
    "UploadState",
    "UploadResult",
    "Severity",
]
