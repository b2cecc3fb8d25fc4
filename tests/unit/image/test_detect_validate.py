"""Tests for MIME detection and candidate validation."""

from __future__ import annotations

import pytest

from imagepdf.config import ImagePdfConfig
from imagepdf.errors import OversizedInputError, UnsupportedFileTypeError
from imagepdf.image.detect import guess_mime, sniff_mime
from imagepdf.image.validate import validate_mime, validate_size
from imagepdf.models import PendingFile


class TestSniffMime:
    def test_png(self, image_bytes):
        assert sniff_mime(image_bytes(2, 2, "PNG")) == "image/png"

    def test_jpeg(self, image_bytes):
        assert sniff_mime(image_bytes(2, 2, "JPEG")) == "image/jpeg"

    def test_webp(self, image_bytes):
        assert sniff_mime(image_bytes(2, 2, "WEBP")) == "image/webp"

    def test_riff_that_is_not_webp(self):
        assert sniff_mime(b"RIFF\x00\x00\x00\x00WAVEfmt ") is None

    def test_unknown(self):
        assert sniff_mime(b"hello world") is None

    def test_empty(self):
        assert sniff_mime(b"") is None


class TestGuessMime:
    def test_bytes_win_over_extension(self, image_bytes):
        assert guess_mime(image_bytes(2, 2, "PNG"), "photo.jpg") == "image/png"

    def test_extension_fallback(self):
        assert guess_mime(b"????", "photo.jpeg") == "image/jpeg"

    def test_octet_stream_fallback(self):
        assert guess_mime(b"????", "noext") == "application/octet-stream"


class TestValidate:
    def test_allowed_mime_returned(self):
        f = PendingFile("a.webp", "image/webp", 1, b"x")
        assert validate_mime(f, ImagePdfConfig()) == "image/webp"

    def test_disallowed_mime_context(self):
        f = PendingFile("a.gif", "image/gif", 1, b"x")
        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            validate_mime(f, ImagePdfConfig())
        assert exc_info.value.message == "Unsupported file type: image/gif"
        assert exc_info.value.context["name"] == "a.gif"
        assert "image/png" in exc_info.value.context["allowed_mimes"]

    def test_size_at_limit_passes(self):
        validate_size(PendingFile("a.png", "image/png", 100, b""), ImagePdfConfig(max_file_size=100))

    def test_size_over_limit(self):
        f = PendingFile("big.png", "image/png", 101, b"")
        with pytest.raises(OversizedInputError) as exc_info:
            validate_size(f, ImagePdfConfig(max_file_size=100))
        assert exc_info.value.message == "File big.png exceeds the max size of 100 bytes."
        assert exc_info.value.context["size_bytes"] == 101


class TestPendingFileFromPath:
    def test_reads_and_sniffs(self, tmp_path, image_bytes):
        data = image_bytes(3, 4, "JPEG")
        path = tmp_path / "scan.bin"
        path.write_bytes(data)

        f = PendingFile.from_path(path)

        assert f.name == "scan.bin"
        assert f.mime_type == "image/jpeg"
        assert f.size == len(data)
        assert f.data == data

    def test_explicit_mime(self, tmp_path):
        path = tmp_path / "x.png"
        path.write_bytes(b"abc")
        assert PendingFile.from_path(path, mime_type="image/webp").mime_type == "image/webp"
