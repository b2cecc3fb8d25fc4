"""User notification boundary.

The pipeline reports outcomes (an unsupported file, a failed upload, a
successful upload) through a :class:`Notifier`.  Hosts plug in their own
toast or message-bar implementation; :class:`LoggingNotifier` is the
default and writes each notification to the structured logger.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from imagepdf.models import Severity
from imagepdf.observability import get_logger

_LEVELS: dict[Severity, int] = {
    Severity.SUCCESS: logging.INFO,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@runtime_checkable
class Notifier(Protocol):
    """Fire-and-forget sink for user-visible messages."""

    def notify(self, title: str, message: str, severity: Severity) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes every notification as a log record."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or get_logger("imagepdf.notify")

    def notify(self, title: str, message: str, severity: Severity) -> None:
        self._log.log(
            _LEVELS.get(Severity(severity), logging.INFO),
            message,
            extra={
                "extra_fields": {
                    "op": "notify",
                    "title": title,
                    "severity": Severity(severity).value,
                }
            },
        )
