from .chunk import count_chunks, slice_end
from .encoding import encode_uri_component, to_base64_text
from .redact import redact

__all__ = [
    "count_chunks",
    "encode_uri_component",
    "redact",
    "slice_end",
    "to_base64_text",
]
