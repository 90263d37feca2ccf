"""
rasterize.py
============

Font glyph -> fixed-size grayscale bitmap rendering (the glyph bitmap
provider of the mosaic pipeline).

Design Principles
-----------------
- The font is an explicit `FontResource` handle handed to the rasterizer;
  nothing is loaded at import time and there is no process-wide font cache.
- Every glyph is rendered into the same `width x height` box:
    * height : configured cell height in pixels.
    * width  : horizontal advance of a reference character (space by
               default), truncated to whole pixels.
- The baseline sits at the font ascent (Pillow's "la" anchor at y=0).
- Ink with a negative bearing is shifted so its bounding box starts at
  column/row 0; ink past the right/bottom edge is clamped onto the last
  valid column/row (max-folded) rather than dropped.
- A glyph with no visible pixels renders to `None`, except the blank
  character which is always an all-zero bitmap.

Intended Usage
--------------
    from glyphmosaic.rasterize import FontResource, GlyphRasterizer, GlyphRasterizerConfig

    res = FontResource.from_path("DejaVuSansMono.ttf")
    rst = GlyphRasterizer(res, GlyphRasterizerConfig(height=20))
    width, bitmap = rst.render("A")      # bitmap: (20, width) uint8 tensor or None

CLI (Light)
-----------
    python -m glyphmosaic.rasterize --font DejaVuSansMono.ttf --height 20 \
        --out-dir renders --save-tensor artifacts/alphabet.pt

Author: Mosaic Phase 1
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import torch
from PIL import Image, ImageDraw, ImageFont

from .errors import FontResourceError


# ---------------------------------------------------------------------------
# Font Resource
# ---------------------------------------------------------------------------


@dataclass
class FontResource:
    """
    Handle to a TrueType/OpenType font.

    Either raw font bytes (`data`) or an already loaded Pillow FreeType font
    (`base_font`) backs the handle; `load(size)` returns a fresh font object
    at the requested pixel size.
    """

    name: str
    data: Optional[bytes] = None
    base_font: Optional[ImageFont.FreeTypeFont] = None

    @classmethod
    def from_path(cls, path: str) -> "FontResource":
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            raise FontResourceError(f"Cannot read font file {p}: {e}") from e
        if not data:
            raise FontResourceError(f"Font file is empty: {p}")
        return cls(name=p.name, data=data)

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "<memory>") -> "FontResource":
        if not data:
            raise FontResourceError("Font data is empty")
        return cls(name=name, data=data)

    @classmethod
    def from_font(cls, font: ImageFont.FreeTypeFont, name: str = "<font>") -> "FontResource":
        if not isinstance(font, ImageFont.FreeTypeFont):
            raise FontResourceError(
                f"Expected a FreeType font, got {type(font).__name__}"
            )
        return cls(name=name, base_font=font)

    def load(self, size: int) -> ImageFont.FreeTypeFont:
        if size <= 0:
            raise ValueError(f"Font size must be positive; got {size}")
        try:
            if self.data is not None:
                return ImageFont.truetype(BytesIO(self.data), size)
            if self.base_font is not None:
                return self.base_font.font_variant(size=size)
        except (OSError, ImportError) as e:
            raise FontResourceError(f"Cannot load font '{self.name}': {e}") from e
        raise FontResourceError(f"Font resource '{self.name}' has no data")


# ---------------------------------------------------------------------------
# Rasterizer
# ---------------------------------------------------------------------------


class GlyphRender(NamedTuple):
    width: int
    bitmap: Optional[torch.Tensor]


@dataclass
class GlyphRasterizerConfig:
    # Cell / glyph height in pixels
    height: int = 20
    # Character range rendered into the alphabet (printable ASCII by default)
    first_char: int = 0x20
    num_chars: int = 95
    # Advance of this character fixes the cell width
    reference_char: str = " "
    # Always present as an all-zero bitmap
    blank_char: str = " "
    # Scale so ascent + descent spans `height` (else em size == height)
    fit_line_height: bool = True

    def __post_init__(self):
        if self.height <= 0:
            raise ValueError(f"height must be positive; got {self.height}")
        if self.num_chars < 0 or self.first_char < 0:
            raise ValueError("first_char and num_chars must be non-negative")
        if self.first_char + self.num_chars > 0x110000:
            raise ValueError("Character range exceeds the Unicode code space")

    def characters(self) -> List[str]:
        return [chr(c) for c in range(self.first_char, self.first_char + self.num_chars)]


def _fit_font_size(resource: FontResource, height: int) -> int:
    probe = resource.load(height)
    ascent, descent = probe.getmetrics()
    line = ascent + descent
    if line <= 0:
        raise FontResourceError(f"Font '{resource.name}' reports no vertical extent")
    return max(1, int(round(height * height / line)))


def _clamp_fold(arr: np.ndarray, width: int, height: int) -> np.ndarray:
    # Overflow columns/rows collapse onto the last valid column/row.
    if arr.shape[1] > width:
        tail = arr[:, width - 1 :].max(axis=1)
        arr = arr[:, :width].copy()
        arr[:, width - 1] = tail
    if arr.shape[0] > height:
        tail = arr[height - 1 :, :].max(axis=0)
        arr = arr[:height, :].copy()
        arr[height - 1] = tail
    return arr


class GlyphRasterizer:
    """
    Renders characters of one font into fixed-size (height, width) uint8
    bitmaps. Width is derived once from the reference character.
    """

    def __init__(self, resource: FontResource, cfg: Optional[GlyphRasterizerConfig] = None):
        self.cfg = cfg or GlyphRasterizerConfig()
        self.resource = resource
        size = (
            _fit_font_size(resource, self.cfg.height)
            if self.cfg.fit_line_height
            else self.cfg.height
        )
        self.font_size = size
        self.font = resource.load(size)
        self.width = int(self.font.getlength(self.cfg.reference_char))
        if self.width < 1:
            raise FontResourceError(
                f"Reference character {self.cfg.reference_char!r} has no advance "
                f"in font '{resource.name}' at size {size}"
            )

    @property
    def height(self) -> int:
        return self.cfg.height

    def render(self, char: str) -> GlyphRender:
        """Render one character; bitmap is None when it has no visible ink."""
        width, height = self.width, self.cfg.height
        if char == self.cfg.blank_char:
            return GlyphRender(width, torch.zeros(height, width, dtype=torch.uint8))

        left, top, right, bottom = (int(v) for v in self.font.getbbox(char))
        if right <= left or bottom <= top:
            return GlyphRender(width, None)

        shift_x = -min(left, 0)
        shift_y = -min(top, 0)
        canvas_w = max(width, right + shift_x)
        canvas_h = max(height, bottom + shift_y)
        img = Image.new("L", (canvas_w, canvas_h), color=0)
        ImageDraw.Draw(img).text((shift_x, shift_y), char, font=self.font, fill=255)

        arr = _clamp_fold(np.array(img, dtype=np.uint8), width, height)
        if not arr.any():
            return GlyphRender(width, None)
        return GlyphRender(width, torch.from_numpy(np.ascontiguousarray(arr)))

    def render_range(self) -> Iterator[Tuple[str, GlyphRender]]:
        for ch in self.cfg.characters():
            yield ch, self.render(ch)


# ---------------------------------------------------------------------------
# Optional Saving
# ---------------------------------------------------------------------------


def save_pngs(
    bitmaps: torch.Tensor,
    labels: Sequence[str],
    out_dir: str,
    prefix: str = "glyph",
):
    """
    Save each bitmap (assumes shape (N,H,W) uint8) as an 8-bit PNG named by
    alphabet index and code point.
    """
    Path(out_dir).mkdir(parents=True, exist_ok=True)
    for i, label in enumerate(labels):
        arr = bitmaps[i].cpu().numpy()
        img = Image.fromarray(arr)
        img.save(Path(out_dir) / f"{prefix}_{i:03d}_u{ord(label[0]):04x}.png")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _build_argparser():
    ap = argparse.ArgumentParser(
        description="Render a font's character range into fixed-size glyph bitmaps."
    )
    ap.add_argument("--font", required=True, help="Path to a TrueType/OpenType font")
    ap.add_argument("--height", type=int, default=20, help="Glyph height in pixels")
    ap.add_argument("--first-char", type=int, default=0x20, help="First code point")
    ap.add_argument("--num-chars", type=int, default=95, help="Number of code points")
    ap.add_argument(
        "--out-dir", type=str, default=None, help="If set, write PNG images here"
    )
    ap.add_argument(
        "--save-tensor",
        type=str,
        default=None,
        help="If set, path to save the alphabet (.pt)",
    )
    ap.add_argument(
        "--meta-jsonl",
        type=str,
        default=None,
        help="If set, write per-glyph signatures as JSONL",
    )
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    from .alphabet import build_alphabet, save_alphabet, write_alphabet_jsonl
    from .errors import MosaicError

    ap = _build_argparser()
    args = ap.parse_args(argv)

    try:
        cfg = GlyphRasterizerConfig(
            height=args.height, first_char=args.first_char, num_chars=args.num_chars
        )
        rasterizer = GlyphRasterizer(FontResource.from_path(args.font), cfg)
        alphabet = build_alphabet(rasterizer)
    except (MosaicError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 2

    print(
        f"[INFO] Rendered {len(alphabet)}/{cfg.num_chars} glyphs "
        f"-> bitmaps {tuple(alphabet.bitmaps.shape)} (font size {rasterizer.font_size})"
    )

    if args.out_dir:
        save_pngs(alphabet.bitmaps, alphabet.labels, args.out_dir)
        print(f"[INFO] Saved PNGs to {args.out_dir}")

    if args.save_tensor:
        save_alphabet(alphabet, args.save_tensor)
        print(f"[INFO] Saved alphabet to {args.save_tensor}")

    if args.meta_jsonl:
        write_alphabet_jsonl(alphabet, args.meta_jsonl)
        print(f"[INFO] Wrote glyph metadata: {args.meta_jsonl}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
