"""Image normalization: downscale, recompress, and transcode.

Every selected image is normalized before it is placed on a page:

1. Reject files whose declared size exceeds ``max_file_size`` (no decode).
2. Decode with Pillow inside a ``with`` block so the decode buffer is
   released on every exit path.
3. Scale the longer side down to ``max_dimension`` (never up).
4. Re-encode in the source format at ``quality``.
5. WebP only: decode the recompressed WebP again and transcode it to PNG,
   since the assembler can only embed PNG and JPEG.

Any exception raised inside Pillow, including the ``SyntaxError`` and
``struct.error`` it uses for corrupt PNG chunks and EXIF blocks, becomes
:class:`AssemblyError`.

The Pillow work is CPU bound; :func:`async_normalize` runs it in a worker
thread so sibling normalizations can interleave on the event loop.
"""

from __future__ import annotations

import asyncio
import io
import math
import time

from PIL import Image, ImageOps

from imagepdf.config import ImagePdfConfig
from imagepdf.errors import AssemblyError
from imagepdf.models import FileCandidate, NormalizedImage
from imagepdf.observability import get_logger, resolve_metrics

from .validate import validate_size

log = get_logger("imagepdf.image")

_PIL_FORMATS: dict[str, str] = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/webp": "WEBP",
}


def target_dimensions(width: int, height: int, bound: int) -> tuple[int, int]:
    """Compute the downscaled size of a *width* x *height* image.

    The longer side is clamped to *bound* and the shorter side scaled by
    the same factor, rounded half up.  Images already within *bound* keep
    their size.  For square images the height branch applies, which gives
    the same result.
    """
    if width > height:
        if width > bound:
            height = _round_half_up(height * bound / width)
            width = bound
    elif height > bound:
        width = _round_half_up(width * bound / height)
        height = bound
    return max(1, width), max(1, height)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _encode(img: Image.Image, mime_type: str, quality: int) -> bytes:
    """Encode *img* as *mime_type*; ``quality`` is ignored for PNG."""
    output = io.BytesIO()
    fmt = _PIL_FORMATS[mime_type]

    if fmt == "JPEG":
        if img.mode in ("RGBA", "LA", "P"):
            # Flatten transparency onto white, JPEG has no alpha channel.
            if img.mode == "P":
                img = img.convert("RGBA")
            rgb_img = Image.new("RGB", img.size, (255, 255, 255))
            rgb_img.paste(img, mask=img.split()[-1])
            img = rgb_img
        elif img.mode != "RGB":
            img = img.convert("RGB")
        img.save(output, format="JPEG", quality=quality, optimize=True)
    elif fmt == "WEBP":
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        img.save(output, format="WEBP", quality=quality)
    else:
        if img.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
            img = img.convert("RGBA")
        img.save(output, format="PNG", optimize=True)

    return output.getvalue()


def _transcode_webp_to_png(webp_bytes: bytes) -> bytes:
    with Image.open(io.BytesIO(webp_bytes)) as img:
        img.load()
        return _encode(img, "image/png", 100)


def normalize(file: FileCandidate, config: ImagePdfConfig) -> NormalizedImage:
    """Normalize one selected image.

    Parameters
    ----------
    file:
        The file to normalize.  Its declared ``mime_type`` selects the
        output encoding.
    config:
        Supplies ``max_file_size``, ``max_dimension`` and ``quality``.

    Returns
    -------
    NormalizedImage
        PNG or JPEG bytes with their final pixel size.

    Raises
    ------
    OversizedInputError
        If ``file.size`` exceeds ``config.max_file_size``.
    AssemblyError
        If the image cannot be decoded or re-encoded, or its declared type
        is not one of the supported raster formats.
    """
    validate_size(file, config)

    mime_type = file.mime_type
    if mime_type not in _PIL_FORMATS:
        raise AssemblyError(
            message=f"Cannot normalize {file.name}: unsupported type {mime_type}",
            context={"name": file.name, "stage": "decode", "mime_type": mime_type},
        )

    try:
        with Image.open(io.BytesIO(file.data)) as src:
            src.load()
            img = ImageOps.exif_transpose(src) or src
            width, height = target_dimensions(
                img.width, img.height, config.max_dimension,
            )
            if (width, height) != img.size:
                img = img.resize((width, height), Image.Resampling.LANCZOS)
            data = _encode(img, mime_type, config.quality_percent)
    except Exception as exc:
        raise AssemblyError(
            message=f"Failed to process image {file.name}: {exc}",
            context={"name": file.name, "stage": "decode"},
            cause=exc,
        ) from exc

    if mime_type == "image/webp":
        try:
            data = _transcode_webp_to_png(data)
        except Exception as exc:
            raise AssemblyError(
                message=f"Failed to convert {file.name} from WebP to PNG: {exc}",
                context={"name": file.name, "stage": "encode"},
                cause=exc,
            ) from exc
        mime_type = "image/png"

    return NormalizedImage(
        name=file.name,
        data=data,
        mime_type=mime_type,
        width=width,
        height=height,
    )


async def async_normalize(
    file: FileCandidate,
    config: ImagePdfConfig,
) -> NormalizedImage:
    """Normalize one image in a worker thread (async).

    The size gate runs on the calling task, before any thread is used.
    See :func:`normalize` for parameters and errors.
    """
    validate_size(file, config)

    metrics = resolve_metrics(config.metrics)
    t0 = time.monotonic()
    result = await asyncio.to_thread(normalize, file, config)
    elapsed_ms = (time.monotonic() - t0) * 1000

    metrics.increment(
        "imagepdf.images_normalized_total",
        tags={"mime_type": file.mime_type},
    )
    metrics.timing(
        "imagepdf.normalize_duration_ms",
        elapsed_ms,
        tags={"mime_type": file.mime_type},
    )
    log.debug(
        "Image normalized",
        extra={
            "extra_fields": {
                "op": "normalize",
                "name": file.name,
                "source_mime": file.mime_type,
                "output_mime": result.mime_type,
                "source_bytes": file.size,
                "output_bytes": len(result.data),
                "width": result.width,
                "height": result.height,
                "duration_ms": round(elapsed_ms, 1),
            }
        },
    )
    return result
