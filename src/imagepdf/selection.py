"""Selection state: the files a user picked, waiting to be uploaded.

:class:`FileSelection` keeps two index-aligned lists, the accepted
:class:`PendingFile` objects and their :class:`PreviewHandle`, plus the
display name the document will be stored under.  Files with a MIME type
outside the allowlist are reported through the notifier and never enter
the lists.

:class:`PreviewRegistry` issues the preview handles.  A handle keeps the
file's bytes reachable for display until it is released, so every removal
and every clear must release the handles it drops.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from imagepdf.config import ImagePdfConfig
from imagepdf.errors import UnsupportedFileTypeError
from imagepdf.image.validate import validate_mime
from imagepdf.models import FileCandidate, PendingFile, PreviewHandle, Severity
from imagepdf.notify import LoggingNotifier, Notifier
from imagepdf.observability import get_logger

log = get_logger("imagepdf.selection")


class PreviewRegistry:
    """Issues and revokes ``blob:`` style preview references."""

    def __init__(self, prefix: str = "blob:imagepdf/") -> None:
        self._prefix = prefix
        self._live: dict[str, bytes] = {}

    def __len__(self) -> int:
        return len(self._live)

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, PreviewHandle) and handle.url in self._live

    def open(self, file: PendingFile) -> PreviewHandle:
        """Create a handle that resolves to *file*'s bytes."""
        url = f"{self._prefix}{uuid.uuid4()}"
        self._live[url] = file.data
        return PreviewHandle(name=file.name, url=url)

    @contextmanager
    def opened(self, file: PendingFile) -> Iterator[PreviewHandle]:
        """Open a handle that is released again if the block raises."""
        handle = self.open(file)
        try:
            yield handle
        except BaseException:
            self.release(handle)
            raise

    def resolve(self, url: str) -> bytes:
        """Return the bytes behind *url*.

        Raises
        ------
        KeyError
            If the handle was released or never issued.
        """
        return self._live[url]

    def release(self, handle: PreviewHandle) -> bool:
        """Revoke *handle*.  Returns ``False`` if it was not live."""
        return self._live.pop(handle.url, None) is not None


class FileSelection:
    """The pending files, their previews, and the document display name.

    Parameters
    ----------
    config:
        Supplies the MIME allowlist.
    notifier:
        Receives one error notification per rejected file.
    previews:
        Registry issuing preview handles; a private one is created if
        omitted.
    """

    def __init__(
        self,
        config: ImagePdfConfig | None = None,
        notifier: Notifier | None = None,
        previews: PreviewRegistry | None = None,
    ) -> None:
        self._config = config or ImagePdfConfig()
        self._notifier = notifier or LoggingNotifier()
        self._registry = previews if previews is not None else PreviewRegistry()
        self._files: list[PendingFile] = []
        self._previews: list[PreviewHandle] = []
        self.display_name: str = ""

    # -- read access ---------------------------------------------------------

    @property
    def files(self) -> list[PendingFile]:
        return list(self._files)

    @property
    def previews(self) -> list[PreviewHandle]:
        return list(self._previews)

    @property
    def registry(self) -> PreviewRegistry:
        return self._registry

    def __len__(self) -> int:
        return len(self._files)

    def __bool__(self) -> bool:
        return bool(self._files)

    # -- mutation ------------------------------------------------------------

    def add_files(self, candidates: Iterable[FileCandidate]) -> list[PendingFile]:
        """Validate and append *candidates* in arrival order.

        Unsupported types are reported through the notifier and skipped;
        the rest of the batch is still processed.  When no display name is
        set yet, the first accepted file's name becomes the display name.

        Returns
        -------
        list[PendingFile]
            The files accepted by this call.
        """
        accepted: list[PendingFile] = []
        for candidate in candidates:
            try:
                validate_mime(candidate, self._config)
            except UnsupportedFileTypeError as exc:
                log.info(
                    "File rejected",
                    extra={
                        "extra_fields": {
                            "op": "add_files",
                            "name": candidate.name,
                            "mime_type": candidate.mime_type,
                        }
                    },
                )
                self._notifier.notify("Error", exc.message, Severity.ERROR)
                continue

            pending = PendingFile.from_candidate(candidate)
            with self._registry.opened(pending) as handle:
                self._files.append(pending)
                self._previews.append(handle)
            accepted.append(pending)

        if not self.display_name and accepted:
            self.display_name = accepted[0].name
        return accepted

    def remove_file(self, index: int) -> PendingFile:
        """Remove the file at *index* and release its preview.

        Clears the display name once the selection is empty.

        Raises
        ------
        IndexError
            If *index* is out of range; nothing is changed.
        """
        if not 0 <= index < len(self._files):
            raise IndexError(
                f"selection index {index} out of range for {len(self._files)} files"
            )
        self._registry.release(self._previews[index])
        del self._previews[index]
        removed = self._files.pop(index)

        if not self._files:
            self.display_name = ""
        return removed

    def set_display_name(self, name: str) -> None:
        """Set the name under which the document will be stored."""
        self.display_name = name

    def clear(self) -> None:
        """Release every preview and empty the selection and display name."""
        for handle in self._previews:
            self._registry.release(handle)
        self._previews.clear()
        self._files.clear()
        self.display_name = ""
