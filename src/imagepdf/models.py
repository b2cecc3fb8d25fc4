"""Public data models for imagepdf.

This module contains every value type, enum, and result dataclass that
flows between the pipeline stages.  All types are plain dataclasses with
no behaviour beyond small constructors and derived properties.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class UploadState(str, Enum):
    """Lifecycle states of one chunked upload."""

    IDLE = "idle"
    """Session created, no chunk sent yet."""

    SENDING = "sending"
    """Chunk round-trips are in progress."""

    SUCCEEDED = "succeeded"
    """Every chunk was acknowledged by the sink."""

    FAILED = "failed"
    """A round-trip failed; remaining chunks were not sent."""


class Severity(str, Enum):
    """Severity attached to a user-facing notification."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# ---------------------------------------------------------------------------
# Input files
# ---------------------------------------------------------------------------

@runtime_checkable
class FileCandidate(Protocol):
    """Anything the host hands to the selection: a named blob with a
    declared MIME type and byte size.
    """

    name: str
    mime_type: str
    size: int
    data: bytes


@dataclass(frozen=True)
class PendingFile:
    """A file accepted into the selection.

    Attributes
    ----------
    name:
        Display name of the file (e.g. ``"receipt.png"``).
    mime_type:
        MIME type declared by the host, not sniffed from the bytes.
    size:
        Declared byte size.  Compared against ``max_file_size`` before any
        decode work.
    data:
        Raw file content.
    """

    name: str
    mime_type: str
    size: int
    data: bytes

    @classmethod
    def from_candidate(cls, candidate: FileCandidate) -> PendingFile:
        """Copy the four public fields of *candidate* into a ``PendingFile``."""
        if isinstance(candidate, cls):
            return candidate
        return cls(
            name=candidate.name,
            mime_type=candidate.mime_type,
            size=candidate.size,
            data=candidate.data,
        )

    @classmethod
    def from_path(cls, path: str | Path, mime_type: str | None = None) -> PendingFile:
        """Read a file from disk.

        When *mime_type* is omitted it is sniffed from the leading bytes,
        falling back to the file extension.
        """
        from imagepdf.image.detect import guess_mime

        p = Path(path)
        data = p.read_bytes()
        return cls(
            name=p.name,
            mime_type=mime_type or guess_mime(data, p.name),
            size=len(data),
            data=data,
        )


@dataclass(frozen=True)
class PreviewHandle:
    """A revocable reference to a selected file's bytes, for display only.

    Issued by :class:`~imagepdf.selection.PreviewRegistry`; every handle
    must be released when its file leaves the selection.
    """

    name: str
    url: str


# ---------------------------------------------------------------------------
# Pipeline values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NormalizedImage:
    """An image after downscale, recompression and optional transcode.

    Attributes
    ----------
    name:
        Name of the source file, kept for diagnostics.
    data:
        Encoded image bytes.
    mime_type:
        ``image/png`` or ``image/jpeg``.
    width, height:
        Pixel dimensions of *data*.
    """

    name: str
    data: bytes
    mime_type: str
    width: int
    height: int


@dataclass
class UploadSession:
    """Mutable state of one chunked upload.

    Created once the document is finalized; mutated after every chunk
    round-trip; discarded at a terminal state.

    Attributes
    ----------
    target_id:
        Identifier of the remote record the document is attached to.
    display_name:
        File name under which the sink stores the document.
    content_type:
        MIME type declared to the sink.
    payload_size:
        Raw (pre-encoding) size of the document in bytes.
    encoded_length:
        Length of the base64 text being chunked.
    cursor:
        Offset into the encoded text of the next chunk.
    continuation_token:
        Opaque token returned by the sink; ``None`` before the first chunk.
    chunks_sent:
        Number of acknowledged round-trips.
    state:
        Current :class:`UploadState`.
    """

    target_id: str
    display_name: str
    content_type: str
    payload_size: int
    encoded_length: int
    cursor: int = 0
    continuation_token: str | None = None
    chunks_sent: int = 0
    state: UploadState = UploadState.IDLE

    @property
    def remaining(self) -> int:
        """Encoded characters not yet sent."""
        return self.encoded_length - self.cursor


# ---------------------------------------------------------------------------
# Public result types
# ---------------------------------------------------------------------------

@dataclass
class UploadResult:
    """Result of a successful chunked upload.

    Attributes
    ----------
    file_id:
        The final continuation token, i.e. the remote file's identifier.
        ``None`` when the payload was empty and no chunk was sent.
    chunks_sent:
        Number of chunk round-trips performed.
    payload_size:
        Raw size of the uploaded document in bytes.
    encoded_length:
        Length of the transmitted base64 text.
    display_name:
        Name under which the document was stored.
    page_count:
        Pages in the uploaded document (``0`` when unknown).
    """

    file_id: str | None
    chunks_sent: int
    payload_size: int
    encoded_length: int
    display_name: str
    page_count: int = 0
