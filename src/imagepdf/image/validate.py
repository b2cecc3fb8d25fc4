"""Candidate validation: MIME allowlist and size checks.

Type validation runs when files enter the selection; the size check runs
inside normalization, before any decode work, so an oversized file aborts
the batch it is part of.
"""

from __future__ import annotations

from imagepdf.config import ImagePdfConfig
from imagepdf.errors import OversizedInputError, UnsupportedFileTypeError
from imagepdf.models import FileCandidate


def validate_mime(candidate: FileCandidate, config: ImagePdfConfig) -> str:
    """Return the candidate's declared MIME type if it is allowed.

    Raises
    ------
    UnsupportedFileTypeError
        If the declared type is not in ``config.allowed_mimes``.
    """
    mime_type = candidate.mime_type
    if mime_type not in config.allowed_mimes:
        raise UnsupportedFileTypeError(
            message=f"Unsupported file type: {mime_type}",
            context={
                "name": candidate.name,
                "mime_type": mime_type,
                "allowed_mimes": list(config.allowed_mimes),
            },
        )
    return mime_type


def validate_size(candidate: FileCandidate, config: ImagePdfConfig) -> None:
    """Raise :class:`OversizedInputError` if the declared size is too big."""
    if candidate.size > config.max_file_size:
        raise OversizedInputError(
            message=(
                f"File {candidate.name} exceeds the max size of "
                f"{config.max_file_size} bytes."
            ),
            context={
                "name": candidate.name,
                "size_bytes": candidate.size,
                "max_bytes": config.max_file_size,
            },
        )
