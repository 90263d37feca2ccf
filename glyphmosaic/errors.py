"""
errors.py
=========

Exception taxonomy for the glyph mosaic pipeline.

Every failure that aborts a run derives from `MosaicError` so CLI entry
points can report it with a single handler. Plain argument mistakes
(wrong tensor shape, non-positive cell size) stay `ValueError`.
"""

from __future__ import annotations


class MosaicError(RuntimeError):
    """Base class for fatal pipeline errors."""


class FontResourceError(MosaicError):
    """Raised when the font resource cannot be read or yields no usable metrics."""


class CodecError(MosaicError):
    """Raised when an image cannot be decoded/encoded or has an unsupported mode."""


class DegenerateDataError(MosaicError):
    """Raised when data cannot produce well-defined signatures or matches."""


class AlphabetError(MosaicError):
    """Raised when a persisted glyph alphabet is missing or malformed."""
