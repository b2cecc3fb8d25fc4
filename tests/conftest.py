"""Shared test fixtures for the imagepdf test suite."""

from __future__ import annotations

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from imagepdf.config import ImagePdfConfig
from imagepdf.models import PendingFile

_FORMATS = {
    "image/png": ("PNG", "png"),
    "image/jpeg": ("JPEG", "jpg"),
    "image/webp": ("WEBP", "webp"),
}


def encode_image(
    width: int,
    height: int,
    fmt: str = "PNG",
    mode: str = "RGB",
) -> bytes:
    """Encode a solid-colour *width* x *height* image as *fmt*."""
    color = (200, 40, 40, 128) if mode == "RGBA" else (200, 40, 40)
    if mode == "L":
        color = 128
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def config() -> ImagePdfConfig:
    """Default configuration (production limits)."""
    return ImagePdfConfig()


@pytest.fixture
def image_bytes():
    """Factory: ``image_bytes(w, h, fmt="PNG", mode="RGB") -> bytes``."""
    return encode_image


@pytest.fixture
def make_file():
    """Factory building a :class:`PendingFile` holding a real image.

    ``size`` overrides the declared size without changing the bytes.
    """

    def _make(
        width: int = 10,
        height: int = 10,
        mime_type: str = "image/png",
        name: str | None = None,
        size: int | None = None,
        mode: str = "RGB",
    ) -> PendingFile:
        fmt, ext = _FORMATS.get(mime_type, ("PNG", "png"))
        data = encode_image(width, height, fmt, mode)
        return PendingFile(
            name=name or f"image-{width}x{height}.{ext}",
            mime_type=mime_type,
            size=len(data) if size is None else size,
            data=data,
        )

    return _make


@pytest.fixture
def notifier() -> MagicMock:
    """A notifier recording every ``notify`` call."""
    return MagicMock()


@pytest.fixture
def sink() -> MagicMock:
    """A chunk sink returning ``token-1``, ``token-2``, ... per chunk."""
    counter = {"n": 0}

    def _store(parent_id, file_name, base64_chunk, content_type, token):
        counter["n"] += 1
        return f"token-{counter['n']}"

    mock = MagicMock()
    mock.store_chunk = AsyncMock(side_effect=_store)
    return mock
