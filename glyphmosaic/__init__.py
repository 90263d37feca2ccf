"""
Glyph Mosaic Package

Rebuilds a grayscale image out of font glyphs: the image is cut into
glyph-sized cells, each cell and each glyph gets a (brightness, edge_x,
edge_y) signature, and every cell is replaced by the glyph whose signature is
closest.

Modules
-------
- rasterize.py     : Font resource handle + glyph → fixed-size bitmap rendering
- codec.py         : PNG decode (L / RGBA → gray) and grayscale encode
- features.py      : Cell grid + Sobel-style signature extraction
- normalization.py : Min-max (image cells) and quantile (glyphs) rescaling
- alphabet.py      : Glyph alphabet construction / persistence
- match.py         : Weighted nearest-glyph search
- compose.py       : Output buffer assembly
- pipeline.py      : Orchestration + main CLI
- visualize.py     : Alphabet contact sheet / side-by-side diagnostics

NOTE ON EXECUTION CONTEXT
-------------------------
Run the CLIs as modules so package-relative imports resolve:
    python -m glyphmosaic.pipeline  ...
    python -m glyphmosaic.rasterize ...
    python -m glyphmosaic.visualize ...

An installed checkout also provides the `glyph-mosaic` console script.

Convenience Re-exports
----------------------
    from glyphmosaic import MosaicPipeline, FontResource, GlyphAlphabet
"""

from .alphabet import GlyphAlphabet, build_alphabet, load_alphabet, save_alphabet  # noqa: F401
from .errors import (  # noqa: F401
    AlphabetError,
    CodecError,
    DegenerateDataError,
    FontResourceError,
    MosaicError,
)
from .features import CellGrid, extract_cells  # noqa: F401
from .match import match_cell, match_cells  # noqa: F401
from .normalization import normalize_minmax, normalize_quantile  # noqa: F401
from .pipeline import MosaicConfig, MosaicPipeline, MosaicResult  # noqa: F401
from .rasterize import FontResource, GlyphRasterizer, GlyphRasterizerConfig  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AlphabetError",
    "CellGrid",
    "CodecError",
    "DegenerateDataError",
    "FontResource",
    "FontResourceError",
    "GlyphAlphabet",
    "GlyphRasterizer",
    "GlyphRasterizerConfig",
    "MosaicConfig",
    "MosaicError",
    "MosaicPipeline",
    "MosaicResult",
    "build_alphabet",
    "extract_cells",
    "load_alphabet",
    "match_cell",
    "match_cells",
    "normalize_minmax",
    "normalize_quantile",
    "save_alphabet",
]
