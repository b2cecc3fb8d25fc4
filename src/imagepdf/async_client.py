"""Asynchronous image-to-PDF upload client.

:class:`AsyncImagePdfClient` is the host-facing facade.  It owns the file
selection and drives the whole pipeline on submit: concurrent
normalization, sequential page assembly in selection order, the final
size gate, and the chunked upload.

Usage::

    import asyncio
    from imagepdf import AsyncImagePdfClient, PendingFile

    async def main():
        async with AsyncImagePdfClient(base_url="https://files.example.com") as client:
            client.add_files([PendingFile.from_path("scan-1.jpg")])
            client.set_display_name("Receipts")
            result = await client.submit(target_id="0015g00000XyZabAAF")
            print(result.file_id if result else "upload failed")

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from typing import Any

from imagepdf.config import ImagePdfConfig
from imagepdf.document import DocumentAssembler
from imagepdf.errors import EmptySelectionError, ImagePdfError, TransferError
from imagepdf.image import async_normalize
from imagepdf.models import (
    FileCandidate,
    NormalizedImage,
    PendingFile,
    Severity,
    UploadResult,
)
from imagepdf.notify import LoggingNotifier, Notifier
from imagepdf.observability import get_logger, resolve_metrics
from imagepdf.selection import FileSelection
from imagepdf.transfer import (
    AsyncTransport,
    ChunkSink,
    HttpChunkSink,
    async_upload_chunked,
)

log = get_logger("imagepdf.client")

_SUCCESS_MESSAGE = "File was successfully uploaded."
_GENERIC_PROCESSING_MESSAGE = "Error processing the files"
_GENERIC_UPLOAD_MESSAGE = "Error uploading file"


class AsyncImagePdfClient:
    """Asynchronous image-to-PDF upload client.

    Parameters
    ----------
    sink:
        Where chunks are stored.  When omitted, an :class:`HttpChunkSink`
        over a client-owned :class:`AsyncTransport` is created from the
        configuration and closed by :meth:`close`.
    notifier:
        Receives user-facing messages.  Defaults to :class:`LoggingNotifier`.
    **kwargs:
        Forwarded to :class:`ImagePdfConfig`.
    """

    def __init__(
        self,
        sink: ChunkSink | None = None,
        notifier: Notifier | None = None,
        **kwargs: Any,
    ) -> None:
        self._config = ImagePdfConfig(**kwargs)
        self._metrics = resolve_metrics(self._config.metrics)
        self._notifier = notifier or LoggingNotifier()
        self._transport: AsyncTransport | None = None
        if sink is None:
            self._transport = AsyncTransport(self._config)
            sink = HttpChunkSink(self._transport, path=self._config.store_path)
        self._sink = sink
        self._selection = FileSelection(self._config, self._notifier)
        self._is_loading = False

    @property
    def config(self) -> ImagePdfConfig:
        return self._config

    @property
    def selection(self) -> FileSelection:
        return self._selection

    @property
    def is_loading(self) -> bool:
        """``True`` while :meth:`submit` is running."""
        return self._is_loading

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def add_files(self, candidates: Iterable[FileCandidate]) -> list[PendingFile]:
        """Add files to the selection.  See :meth:`FileSelection.add_files`."""
        return self._selection.add_files(candidates)

    def remove_file(self, index: int) -> PendingFile:
        """Remove one file.  See :meth:`FileSelection.remove_file`."""
        return self._selection.remove_file(index)

    def set_display_name(self, name: str) -> None:
        self._selection.set_display_name(name)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def normalize_all(
        self,
        files: Sequence[FileCandidate],
    ) -> list[NormalizedImage]:
        """Normalize *files* concurrently and return results in input order.

        Every normalization is started before any is awaited, bounded by
        ``config.normalize_max_concurrent``.  The first failure fails the
        batch and cancels the normalizations still pending.

        Raises
        ------
        OversizedInputError
            If any file exceeds ``max_file_size``.
        AssemblyError
            If any file cannot be decoded or re-encoded.
        """
        semaphore = asyncio.Semaphore(self._config.normalize_max_concurrent)

        async def _normalize_one(file: FileCandidate) -> NormalizedImage:
            async with semaphore:
                return await async_normalize(file, self._config)

        tasks = [asyncio.ensure_future(_normalize_one(f)) for f in files]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def build_document(
        self,
        files: Sequence[FileCandidate],
        title: str | None = None,
    ) -> tuple[bytes, int]:
        """Normalize *files* and assemble them into one PDF.

        Pages are embedded one at a time, in the order of *files*, once the
        whole normalization batch has resolved.

        Returns
        -------
        tuple[bytes, int]
            The PDF bytes and its page count.
        """
        images = await self.normalize_all(files)

        assembler = DocumentAssembler(title=title)
        for image in images:
            assembler.embed(image)
        self._metrics.increment("imagepdf.pages_embedded_total", value=assembler.page_count)

        data = assembler.finalize()
        self._metrics.gauge("imagepdf.document_bytes", len(data))
        return data, assembler.page_count

    async def process_files(
        self,
        files: Sequence[FileCandidate],
        target_id: str,
        display_name: str = "",
    ) -> UploadResult:
        """Build the document from *files* and upload it to *target_id*.

        Raises
        ------
        OversizedInputError, AssemblyError
            If building the document fails.
        PayloadTooLargeError
            If the document exceeds ``max_file_size``; nothing is sent.
        TransferError
            If a chunk round-trip fails.
        """
        data, page_count = await self.build_document(files, title=display_name or None)
        result = await async_upload_chunked(
            self._sink,
            data,
            target_id=target_id,
            display_name=display_name,
            content_type=self._config.document_content_type,
            config=self._config,
        )
        result.page_count = page_count
        return result

    async def submit(self, target_id: str) -> UploadResult | None:
        """Upload the current selection as one PDF.

        Every outcome is reported through the notifier.  On success the
        selection (files, previews and display name) is cleared; on any
        failure it is left untouched so the user can retry.

        Returns
        -------
        UploadResult | None
            The upload result, or ``None`` if nothing was uploaded.
        """
        if not self._selection:
            exc = EmptySelectionError()
            self._notifier.notify("Error", exc.message, Severity.ERROR)
            return None

        self._is_loading = True
        try:
            result = await self.process_files(
                self._selection.files,
                target_id,
                self._selection.display_name,
            )
        except ImagePdfError as exc:
            log.error(
                "Submit failed",
                extra={
                    "extra_fields": {
                        "op": "submit",
                        "target_id": target_id,
                        "code": str(exc.code),
                        "error": exc.message,
                    }
                },
            )
            fallback = (
                _GENERIC_UPLOAD_MESSAGE
                if isinstance(exc, TransferError)
                else _GENERIC_PROCESSING_MESSAGE
            )
            self._notifier.notify("Error", exc.message or fallback, Severity.ERROR)
            return None
        except Exception as exc:
            log.exception(
                "Submit failed with an unexpected error",
                extra={
                    "extra_fields": {
                        "op": "submit",
                        "target_id": target_id,
                        "error_type": type(exc).__name__,
                    }
                },
            )
            self._notifier.notify("Error", _GENERIC_PROCESSING_MESSAGE, Severity.ERROR)
            return None
        finally:
            self._is_loading = False

        self._notifier.notify("Success", _SUCCESS_MESSAGE, Severity.SUCCESS)
        self._selection.clear()
        return result

    # ------------------------------------------------------------------
    # Resource management
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP transport if this client created it."""
        if self._transport is not None:
            await self._transport.close()

    async def __aenter__(self) -> AsyncImagePdfClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
