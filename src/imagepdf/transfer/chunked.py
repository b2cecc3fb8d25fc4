"""Chunked upload of an assembled document.

The sink caps each request at ``chunk_size`` characters, so the document
is transferred as a sequence of appends:

1. Refuse payloads larger than ``max_file_size`` before any request.
2. Base64 encode the payload once; a cursor walks the encoded text.
3. Send ``encoded[cursor:cursor + chunk_size]`` (percent-encoded) with the
   current continuation token, store the token the sink returns, advance
   the cursor.  Repeat until the cursor reaches the end.
4. The first failed round-trip ends the upload.  Chunks already stored
   remotely are left as they are.

An empty payload needs no round-trip and succeeds immediately.
"""

from __future__ import annotations

from imagepdf.config import ImagePdfConfig
from imagepdf.errors import PayloadTooLargeError, TransferError
from imagepdf.models import UploadResult, UploadSession, UploadState
from imagepdf.observability import get_logger, resolve_metrics
from imagepdf.utils.chunk import count_chunks, slice_end
from imagepdf.utils.encoding import encode_uri_component, to_base64_text

from .sink import ChunkSink
from .state import UploadStateMachine

log = get_logger("imagepdf.transfer")


def check_payload_size(payload: bytes, config: ImagePdfConfig) -> None:
    """Raise :class:`PayloadTooLargeError` if *payload* exceeds the limit."""
    if len(payload) > config.max_file_size:
        raise PayloadTooLargeError(
            message=(
                f"File size cannot exceed {config.max_file_size} bytes. "
                f"Selected file size: {len(payload)}"
            ),
            context={"size_bytes": len(payload), "max_bytes": config.max_file_size},
        )


class ChunkedUpload:
    """One upload of one payload to one target.

    The instance exposes its :attr:`session` so callers can inspect the
    cursor, token and terminal state after :meth:`run` returns or raises.

    Parameters
    ----------
    sink:
        Any :class:`ChunkSink`.
    payload:
        The finalized document bytes.
    target_id:
        Remote record the document is attached to.
    display_name:
        File name under which the sink stores the document.
    content_type:
        MIME type declared to the sink.
    config:
        Supplies ``max_file_size``, ``chunk_size`` and ``metrics``.
    """

    def __init__(
        self,
        sink: ChunkSink,
        payload: bytes,
        *,
        target_id: str,
        display_name: str,
        content_type: str,
        config: ImagePdfConfig,
    ) -> None:
        check_payload_size(payload, config)

        self._sink = sink
        self._config = config
        self._metrics = resolve_metrics(config.metrics)
        self._encoded = to_base64_text(payload)
        self._machine = UploadStateMachine(target_id)
        self.session = UploadSession(
            target_id=target_id,
            display_name=display_name,
            content_type=content_type,
            payload_size=len(payload),
            encoded_length=len(self._encoded),
        )

    @property
    def state(self) -> UploadState:
        return self._machine.state

    def _set_state(self, new_state: UploadState) -> None:
        self._machine.transition(new_state)
        self.session.state = new_state

    async def run(self) -> UploadResult:
        """Send every chunk in order.

        Returns
        -------
        UploadResult
            The final token and transfer statistics.

        Raises
        ------
        TransferError
            On the first failed round-trip; the session ends in ``FAILED``.
        ValueError
            If the upload was already run.
        """
        if self._machine.is_terminal:
            raise ValueError(
                f"Upload to {self.session.target_id} already finished "
                f"({self.state.value}); create a new ChunkedUpload to retry"
            )
        self._set_state(UploadState.SENDING)
        session = self.session
        chunk_size = self._config.chunk_size
        tags = {"target_id": session.target_id}

        log.info(
            "Chunked upload started",
            extra={
                "extra_fields": {
                    "op": "upload",
                    "target_id": session.target_id,
                    "display_name": session.display_name,
                    "payload_bytes": session.payload_size,
                    "encoded_length": session.encoded_length,
                    "planned_chunks": count_chunks(session.encoded_length, chunk_size),
                }
            },
        )

        while session.cursor < session.encoded_length:
            self._machine.assert_can_send()
            end = slice_end(session.cursor, session.encoded_length, chunk_size)
            chunk = self._encoded[session.cursor:end]

            try:
                token = await self._sink.store_chunk(
                    session.target_id,
                    session.display_name,
                    encode_uri_component(chunk),
                    session.content_type,
                    session.continuation_token,
                )
            except Exception as exc:
                self._set_state(UploadState.FAILED)
                self._metrics.increment("imagepdf.upload_failure_total", tags=tags)
                error = self._as_transfer_error(exc)
                log.error(
                    "Chunked upload failed",
                    extra={
                        "extra_fields": {
                            "op": "upload",
                            "target_id": session.target_id,
                            "chunk_index": session.chunks_sent,
                            "cursor": session.cursor,
                            "error": error.message,
                        }
                    },
                )
                if error is exc:
                    raise
                raise error from exc

            session.continuation_token = token
            session.cursor = end
            session.chunks_sent += 1
            self._metrics.increment("imagepdf.chunks_sent_total", tags=tags)
            log.debug(
                "Chunk stored",
                extra={
                    "extra_fields": {
                        "op": "upload_chunk",
                        "target_id": session.target_id,
                        "chunk_index": session.chunks_sent - 1,
                        "cursor": session.cursor,
                        "remaining": session.remaining,
                    }
                },
            )

        self._set_state(UploadState.SUCCEEDED)
        self._metrics.increment("imagepdf.upload_success_total", tags=tags)
        log.info(
            "Chunked upload complete",
            extra={
                "extra_fields": {
                    "op": "upload",
                    "target_id": session.target_id,
                    "chunks_sent": session.chunks_sent,
                    "file_id": session.continuation_token,
                }
            },
        )
        return UploadResult(
            file_id=session.continuation_token,
            chunks_sent=session.chunks_sent,
            payload_size=session.payload_size,
            encoded_length=session.encoded_length,
            display_name=session.display_name,
        )

    def _as_transfer_error(self, exc: Exception) -> TransferError:
        """Wrap *exc* in a :class:`TransferError`, keeping its message."""
        position = {
            "target_id": self.session.target_id,
            "chunk_index": self.session.chunks_sent,
            "cursor": self.session.cursor,
        }
        if isinstance(exc, TransferError):
            exc.context.update(position)
            return exc
        message = getattr(exc, "message", None) or str(exc) or "Error uploading file"
        return TransferError(message=message, context=position, cause=exc)


async def async_upload_chunked(
    sink: ChunkSink,
    payload: bytes,
    *,
    target_id: str,
    display_name: str,
    content_type: str,
    config: ImagePdfConfig,
) -> UploadResult:
    """Upload *payload* through *sink* in ``chunk_size`` slices.

    Convenience wrapper around :class:`ChunkedUpload`; see it for the
    parameters.

    Raises
    ------
    PayloadTooLargeError
        If the payload exceeds ``config.max_file_size``; nothing is sent.
    TransferError
        If any chunk round-trip fails.
    """
    upload = ChunkedUpload(
        sink,
        payload,
        target_id=target_id,
        display_name=display_name,
        content_type=content_type,
        config=config,
    )
    return await upload.run()
