"""Document stage: assemble normalized images into a single PDF."""

from .assembler import DocumentAssembler

__all__ = ["DocumentAssembler"]
