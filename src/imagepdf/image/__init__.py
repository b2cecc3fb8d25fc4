"""Image stage: detecting, validating, and normalizing selected images.

Exports
-------
sniff_mime / guess_mime
    MIME detection helpers.
validate_mime / validate_size
    Allowlist and size gates.
normalize / async_normalize
    Downscale, recompress, and transcode one image.
target_dimensions
    The bounded-size computation used by normalization.
"""

from .detect import guess_mime, sniff_mime
from .normalize import async_normalize, normalize, target_dimensions
from .validate import validate_mime, validate_size

__all__ = [
    "async_normalize",
    "guess_mime",
    "normalize",
    "sniff_mime",
    "target_dimensions",
    "validate_mime",
    "validate_size",
]
