"""Remote chunk sink: the storage endpoint the upload loop talks to.

The upload loop only depends on the :class:`ChunkSink` protocol, a single
``store_chunk`` coroutine that appends one chunk to an in-progress remote
file and returns the continuation token for the next chunk.

:class:`HttpChunkSink` is the HTTP implementation.  Each chunk is POSTed
as JSON::

    {"parentId": "...", "fileName": "...", "base64Data": "<percent-encoded>",
     "contentType": "application/pdf", "fileId": "<token or empty>"}

and the response's ``fileId`` (or ``id``) is the next token.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from imagepdf.errors import TransferError

from .transport import AsyncTransport


@runtime_checkable
class ChunkSink(Protocol):
    """Protocol every chunk sink must satisfy."""

    async def store_chunk(
        self,
        parent_id: str,
        file_name: str,
        base64_chunk: str,
        content_type: str,
        continuation_token: str | None,
    ) -> str:
        """Store one chunk and return the token to present with the next.

        *continuation_token* is ``None`` for the first chunk of a file.
        Any failure must be raised; the caller aborts the upload.
        """
        ...


class HttpChunkSink:
    """Chunk sink backed by the storage service's chunk endpoint.

    Parameters
    ----------
    transport:
        A configured :class:`AsyncTransport`.
    path:
        Endpoint path relative to the transport's base URL.
    """

    def __init__(self, transport: AsyncTransport, path: str = "/chunks") -> None:
        self._transport = transport
        self._path = path

    async def store_chunk(
        self,
        parent_id: str,
        file_name: str,
        base64_chunk: str,
        content_type: str,
        continuation_token: str | None,
    ) -> str:
        """POST one chunk.  See :meth:`ChunkSink.store_chunk`."""
        body = {
            "parentId": parent_id,
            "fileName": file_name,
            "base64Data": base64_chunk,
            "contentType": content_type,
            "fileId": continuation_token or "",
        }
        result = await self._transport.request("POST", self._path, json=body)

        token = result.get("fileId") or result.get("id")
        if not token:
            raise TransferError(
                message="Storage service response did not include a file id",
                context={"path": self._path, "keys": sorted(result)},
            )
        return str(token)
