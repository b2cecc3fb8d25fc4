"""Structured JSON logging for imagepdf.

All package loggers live under the ``imagepdf`` namespace.  A single
stream handler carrying :class:`StructuredFormatter` is attached to the
``imagepdf`` logger the first time :func:`get_logger` runs; module loggers
such as ``imagepdf.transfer`` propagate to it, so every record comes out as
one JSON line::

    {"ts": "2026-01-01T12:00:00.123456+00:00", "level": "INFO",
     "logger": "imagepdf.transfer", "message": "Chunk stored",
     "op": "upload_chunk", "chunk_index": 2, "cursor": 5000000}

Structured fields go through ``extra={"extra_fields": {...}}``::

    log = get_logger("imagepdf.image")
    log.debug("Image normalized", extra={"extra_fields": {"width": 1000}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

ROOT_LOGGER = "imagepdf"

# Keys the formatter owns; extra fields cannot overwrite them.
_RESERVED_KEYS = frozenset({"ts", "level", "logger", "message"})


class StructuredFormatter(logging.Formatter):
    """Render a record as a single-line JSON object.

    Guaranteed keys: ``ts`` (ISO-8601 UTC, taken from the record's creation
    time), ``level``, ``logger`` and ``message``.  ``extra_fields`` are
    merged in at the top level, then ``exception`` and ``stack_info`` when
    present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields = getattr(record, "extra_fields", None) or {}
        entry.update((k, v) for k, v in fields.items() if k not in _RESERVED_KEYS)

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return resolved
    return level


def _ensure_root_handler(stream: IO[str] | None) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
        root.setLevel(logging.DEBUG)
        root.propagate = False
    return root


def get_logger(
    name: str = ROOT_LOGGER,
    *,
    level: int | str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Return a logger in the ``imagepdf`` namespace.

    Parameters
    ----------
    name:
        Logger name.  Names outside the namespace are nested under it, so
        ``"selection"`` becomes ``"imagepdf.selection"``.
    level:
        Optional level for this logger, as an ``int`` or a case-insensitive
        name.  The root handler itself passes everything from ``DEBUG`` up.
    stream:
        Output for the root handler.  Only honoured by the call that
        installs it; defaults to ``sys.stderr``.

    Raises
    ------
    ValueError
        If *level* is an unknown level name.
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"

    _ensure_root_handler(stream)
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(_resolve_level(level))
    return logger
