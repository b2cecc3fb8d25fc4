"""imagepdf.transfer -- chunked upload of the assembled document.

This sub-package provides:

* :mod:`.chunked` -- the chunk loop (:class:`ChunkedUpload`).
* :mod:`.state` -- the upload lifecycle state machine.
* :mod:`.sink` -- the :class:`ChunkSink` protocol and its HTTP implementation.
* :mod:`.transport` -- async HTTP transport with optional retry.
* :mod:`.retries` -- the :class:`RetryPolicy` the transport follows.
"""

from __future__ import annotations

from .chunked import ChunkedUpload, async_upload_chunked, check_payload_size
from .retries import RetryPolicy
from .sink import ChunkSink, HttpChunkSink
from .state import UploadStateMachine
from .transport import AsyncTransport

__all__ = [
    "AsyncTransport",
    "ChunkSink",
    "ChunkedUpload",
    "HttpChunkSink",
    "RetryPolicy",
    "UploadStateMachine",
    "async_upload_chunked",
    "check_payload_size",
]
