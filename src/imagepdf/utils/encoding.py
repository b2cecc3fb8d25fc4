"""Transport encodings applied to the assembled document.

The document is base64 encoded once; each slice of that text is then
percent-encoded with the same reserved set as ECMAScript's
``encodeURIComponent`` before it is handed to the sink, which decodes it
on the server side.
"""

from __future__ import annotations

import base64
from urllib.parse import quote

# Characters encodeURIComponent leaves untouched besides ASCII alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def to_base64_text(payload: bytes) -> str:
    """Standard base64 (with padding) of *payload* as ASCII text."""
    return base64.b64encode(payload).decode("ascii")


def encode_uri_component(text: str) -> str:
    """Percent-encode *text* like ``encodeURIComponent``.

    For base64 text only ``+``, ``/`` and ``=`` are affected.
    """
    return quote(text, safe=_URI_COMPONENT_SAFE)
