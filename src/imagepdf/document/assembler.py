"""PDF document assembly: one page per normalized image.

:class:`DocumentAssembler` owns a single reportlab canvas.  Each
:meth:`~DocumentAssembler.embed` call appends a page sized to the image's
pixel dimensions and draws the image at the origin; :meth:`finalize`
serialises the document to bytes.

The assembler is single-writer: callers must not interleave ``embed``
calls from several tasks.  :class:`~imagepdf.async_client.AsyncImagePdfClient`
embeds sequentially in input order after every normalization resolved.
"""

from __future__ import annotations

import io

from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from imagepdf.config import EMBEDDABLE_MIMES
from imagepdf.errors import AssemblyError
from imagepdf.models import NormalizedImage
from imagepdf.observability import get_logger

log = get_logger("imagepdf.document")


class DocumentAssembler:
    """Incrementally build a paginated PDF from normalized images.

    Parameters
    ----------
    title:
        Optional document title written to the PDF metadata.
    """

    def __init__(self, title: str | None = None) -> None:
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer)
        if title:
            self._canvas.setTitle(title)
        self._page_sizes: list[tuple[int, int]] = []
        self._finalized = False

    @property
    def page_count(self) -> int:
        """Number of pages embedded so far."""
        return len(self._page_sizes)

    @property
    def page_sizes(self) -> list[tuple[int, int]]:
        """``(width, height)`` of every page, in page order."""
        return list(self._page_sizes)

    def embed(self, image: NormalizedImage) -> None:
        """Append one page holding *image*.

        The page is exactly as large as the image.  The image is drawn at
        the origin scaled by ``min(page_w / img_w, page_h / img_h, 1)``,
        which is always ``1`` because the page is sized to the image.

        Raises
        ------
        AssemblyError
            If the image type is not embeddable, the image cannot be read,
            or the document was already finalized.
        """
        if self._finalized:
            raise AssemblyError(
                message="Cannot embed into a finalized document",
                context={"name": image.name, "stage": "embed"},
            )
        if image.mime_type not in EMBEDDABLE_MIMES:
            raise AssemblyError(
                message=f"Cannot embed {image.name}: {image.mime_type} is not embeddable",
                context={"name": image.name, "stage": "embed", "mime_type": image.mime_type},
            )

        try:
            reader = ImageReader(io.BytesIO(image.data))
            img_width, img_height = reader.getSize()
            page_width, page_height = img_width, img_height
            scale = min(page_width / img_width, page_height / img_height, 1)

            self._canvas.setPageSize((page_width, page_height))
            self._canvas.drawImage(
                reader,
                0,
                0,
                width=img_width * scale,
                height=img_height * scale,
                mask="auto",
            )
            self._canvas.showPage()
        except Exception as exc:
            raise AssemblyError(
                message=f"Failed to embed image {image.name}: {exc}",
                context={"name": image.name, "stage": "embed"},
                cause=exc,
            ) from exc

        self._page_sizes.append((page_width, page_height))

    def finalize(self) -> bytes:
        """Serialise the document and return the PDF bytes.

        May be called once; the assembler rejects further embeds afterwards.

        Raises
        ------
        AssemblyError
            If serialisation fails or the document was already finalized.
        """
        if self._finalized:
            raise AssemblyError(
                message="Document was already finalized",
                context={"stage": "finalize"},
            )
        self._finalized = True
        try:
            self._canvas.save()
        except Exception as exc:
            raise AssemblyError(
                message=f"Failed to save document: {exc}",
                context={"stage": "finalize", "pages": self.page_count},
                cause=exc,
            ) from exc

        data = self._buffer.getvalue()
        log.debug(
            "Document finalized",
            extra={
                "extra_fields": {
                    "op": "finalize",
                    "pages": self.page_count,
                    "bytes": len(data),
                }
            },
        )
        return data
