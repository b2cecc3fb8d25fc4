"""Full error hierarchy for imagepdf.

Every public error class inherits from :class:`ImagePdfError`.  Each
carries a machine-readable ``code`` (from :class:`ErrorCode`), a
human-readable ``message``, an optional structured ``context`` dict, and an
optional ``cause`` (chained exception).

Error codes are a :class:`str` enum so they serialise naturally to JSON and
can be matched with simple ``==`` comparisons.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the pipeline can raise."""

    UNSUPPORTED_FILE_TYPE = "UNSUPPORTED_FILE_TYPE"
    OVERSIZED_INPUT = "OVERSIZED_INPUT"
    ASSEMBLY_ERROR = "ASSEMBLY_ERROR"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    EMPTY_SELECTION = "EMPTY_SELECTION"
    TRANSFER_ERROR = "TRANSFER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class ImagePdfError(Exception):
    """Base exception for all imagepdf errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A user-presentable description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Selection / input errors
# ---------------------------------------------------------------------------

class UnsupportedFileTypeError(ImagePdfError):
    """A candidate file's declared MIME type is not in the allowlist.

    Recoverable: the file is excluded and the rest of the batch continues.

    Context keys: ``name``, ``mime_type``, ``allowed_mimes``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UNSUPPORTED_FILE_TYPE,
            message=message,
            context=context,
            cause=cause,
        )


class OversizedInputError(ImagePdfError):
    """An input file exceeds ``max_file_size``.  Aborts the whole batch.

    Context keys: ``name``, ``size_bytes``, ``max_bytes``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.OVERSIZED_INPUT,
            message=message,
            context=context,
            cause=cause,
        )


class EmptySelectionError(ImagePdfError):
    """An upload was requested while no files are selected."""

    def __init__(
        self,
        message: str = "Please select files to upload",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.EMPTY_SELECTION,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Assembly errors
# ---------------------------------------------------------------------------

class AssemblyError(ImagePdfError):
    """Decoding, transcoding, embedding, or serialising the document failed.

    Context keys: ``name``, ``stage`` (``"decode"``, ``"encode"``,
    ``"embed"``, ``"finalize"``).
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.ASSEMBLY_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class PayloadTooLargeError(ImagePdfError):
    """The finalized document exceeds ``max_file_size``.

    Raised before any network interaction.

    Context keys: ``size_bytes``, ``max_bytes``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Transfer errors
# ---------------------------------------------------------------------------

class TransferError(ImagePdfError):
    """A chunk round-trip failed.  Remaining chunks are not sent.

    Chunks already stored remotely are left as they are.

    Context keys: ``target_id``, ``chunk_index``, ``cursor``,
    ``status_code``.
    """

    def __init__(
        self,
        message: str = "Error uploading file",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.TRANSFER_ERROR,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class TransferNetworkError(TransferError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``method``, ``path``, ``attempt``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.NETWORK_ERROR,
        )


class TransferRetryExhaustedError(TransferError):
    """All retry attempts have been exhausted for a retryable request.

    Context keys: ``attempts``, ``last_status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.RETRY_EXHAUSTED,
        )
