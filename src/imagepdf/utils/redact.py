"""Payload redaction for safe debug dumps.

Chunk requests carry up to ``chunk_size`` characters of document data and
may carry a bearer token in their headers.  :func:`redact` must be applied
before any request or response is written to logs.  Rules:

* Values under sensitive keys (``authorization``, ``token``, ``secret``,
  ...) are masked, keeping only the last four characters of the token.
* Chunk bodies (the ``base64Data`` field, or any long base64-looking
  string) are replaced with ``<base64:N_chars>``.
* ``bytes`` values are replaced with ``<binary:N_bytes>``.
"""

from __future__ import annotations

import copy
import re
from typing import Any

_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "token",
    "secret",
    "password",
    "credential",
    "authorization",
    "cookie",
    "api_key",
    "api-key",
})

_CHUNK_KEYS: frozenset[str] = frozenset({"base64data", "data", "chunk"})

# Base64 or percent-encoded base64 text.
_BASE64_RE = re.compile(r"^(?:[A-Za-z0-9+/=]|%2[BbFf]|%3[Dd])+$")

_LONG_VALUE_THRESHOLD = 128


def _mask(value: str, token: str | None) -> str:
    if token and token in value:
        suffix = token[-4:] if len(token) >= 4 else "****"
        placeholder = f"<redacted:...{suffix}>"
        if token in placeholder:
            placeholder = "<redacted>"
        value = value.replace(token, placeholder)
    return re.sub(r"(Bearer\s+)(?!<redacted)\S+", r"\1<redacted>", value)


def _is_chunk_text(value: str) -> bool:
    return len(value) >= _LONG_VALUE_THRESHOLD and bool(_BASE64_RE.match(value))


def _redact_value(key: str, value: Any, token: str | None) -> Any:
    key_lower = key.lower()
    if isinstance(value, dict):
        return _redact_dict(value, token)
    if isinstance(value, list):
        return [_redact_value(key, item, token) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    if isinstance(value, str):
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            return _mask(value, token) if token and token in value else "<redacted>"
        if key_lower in _CHUNK_KEYS or _is_chunk_text(value):
            return f"<base64:{len(value)}_chars>"
        return _mask(value, token) if token else value
    if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
        return "<redacted>"
    return value


def _redact_dict(d: dict, token: str | None) -> dict:
    return {
        key: _redact_value(key if isinstance(key, str) else "", value, token)
        for key, value in d.items()
    }


def redact(payload: dict, token: str | None = None) -> dict:
    """Return a deep copy of *payload* with sensitive data redacted.

    Parameters
    ----------
    payload:
        Request body, headers, or a response dump.
    token:
        The configured bearer token.  If supplied, every occurrence is
        scrubbed from string values.

    Returns
    -------
    dict
        A new dictionary; *payload* is never mutated.

    Examples
    --------
    >>> redact({"Authorization": "Bearer abc123"})
    {'Authorization': '<redacted>'}
    >>> redact({"fileName": "scan.pdf", "base64Data": "JVBERi0x"})
    {'fileName': 'scan.pdf', 'base64Data': '<base64:8_chars>'}
    """
    return _redact_dict(copy.deepcopy(payload), token)
