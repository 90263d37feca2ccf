#!/usr/bin/env python3
"""
visualize.py
============

Quick visual checks for the mosaic pipeline.

Primary Use Cases
-----------------
1. Contact sheet of the glyph alphabet (in matcher order) to confirm the
   rendered cell size, baseline placement, and which characters were kept.
2. Input / output side-by-side after a mosaic run.

Example
-------
Alphabet sheet, 16 glyphs per row, 3x enlarged:

    python -m glyphmosaic.visualize sheet \
        --font DejaVuSansMono.ttf --height 20 --cols 16 --scale 3 \
        --out artifacts/alphabet_sheet.png

Side-by-side comparison:

    python -m glyphmosaic.visualize compare \
        --input mandelbulb.png --output output.png --out artifacts/compare.png

Author: Mosaic Phase 1
"""

from __future__ import annotations

import argparse
import math
from pathlib import Path
from typing import List, Optional, Sequence

import torch
from PIL import Image

from .alphabet import GlyphAlphabet, build_alphabet, load_alphabet
from .codec import decode_image
from .errors import MosaicError
from .rasterize import FontResource, GlyphRasterizer, GlyphRasterizerConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def tensor_to_pil(t: torch.Tensor) -> Image.Image:
    """
    t: (H,W) uint8
    """
    if t.ndim != 2 or t.dtype != torch.uint8:
        raise ValueError("Expected uint8 tensor shape (H,W)")
    return Image.fromarray(t.cpu().numpy())


def build_grid(
    images: List[Image.Image],
    rows: int,
    cols: int,
    cell_pad: int = 4,
    background: int = 0,
) -> Image.Image:
    if not images:
        raise ValueError("No images to grid")
    cell_w, cell_h = images[0].size
    grid_w = cols * cell_w + (cols + 1) * cell_pad
    grid_h = rows * cell_h + (rows + 1) * cell_pad
    canvas = Image.new("L", (grid_w, grid_h), color=background)
    i = 0
    for r in range(rows):
        for c in range(cols):
            if i >= len(images):
                break
            x = cell_pad + c * (cell_w + cell_pad)
            y = cell_pad + r * (cell_h + cell_pad)
            canvas.paste(images[i], (x, y))
            i += 1
    return canvas


def _enlarge(img: Image.Image, scale: int) -> Image.Image:
    if scale <= 1:
        return img
    return img.resize((img.width * scale, img.height * scale), resample=Image.Resampling.NEAREST)


def alphabet_sheet(
    alphabet: GlyphAlphabet,
    cols: int = 16,
    scale: int = 1,
    cell_pad: int = 2,
) -> Image.Image:
    """Grid of alphabet bitmaps; background 64 so blank glyphs stay visible."""
    if cols <= 0:
        raise ValueError(f"cols must be positive; got {cols}")
    images = [_enlarge(tensor_to_pil(b), scale) for b in alphabet.bitmaps]
    rows = math.ceil(len(images) / cols)
    return build_grid(images, rows=rows, cols=min(cols, len(images)), cell_pad=cell_pad, background=64)


def side_by_side(left: torch.Tensor, right: torch.Tensor, gap: int = 8) -> Image.Image:
    a, b = tensor_to_pil(left), tensor_to_pil(right)
    canvas = Image.new("L", (a.width + gap + b.width, max(a.height, b.height)), color=0)
    canvas.paste(a, (0, 0))
    canvas.paste(b, (a.width + gap, 0))
    return canvas


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_argparser():
    ap = argparse.ArgumentParser(description="Glyph mosaic visual diagnostics.")
    sub = ap.add_subparsers(dest="command", required=True)

    sheet = sub.add_parser("sheet", help="Contact sheet of the glyph alphabet")
    src = sheet.add_mutually_exclusive_group(required=True)
    src.add_argument("--font", help="Font to render the alphabet from")
    src.add_argument("--alphabet", help="Precomputed alphabet (.pt)")
    sheet.add_argument("--height", type=int, default=20)
    sheet.add_argument("--first-char", type=int, default=0x20)
    sheet.add_argument("--num-chars", type=int, default=95)
    sheet.add_argument("--cols", type=int, default=16)
    sheet.add_argument("--scale", type=int, default=2)
    sheet.add_argument("--out", required=True, help="PNG path for the sheet")

    cmp_ = sub.add_parser("compare", help="Input and mosaic output side by side")
    cmp_.add_argument("--input", required=True)
    cmp_.add_argument("--output", required=True, help="Mosaic produced by the pipeline")
    cmp_.add_argument("--out", required=True, help="PNG path for the comparison")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    try:
        if args.command == "sheet":
            if args.alphabet:
                alphabet = load_alphabet(args.alphabet)
            else:
                cfg = GlyphRasterizerConfig(
                    height=args.height, first_char=args.first_char, num_chars=args.num_chars
                )
                alphabet = build_alphabet(
                    GlyphRasterizer(FontResource.from_path(args.font), cfg)
                )
            img = alphabet_sheet(alphabet, cols=args.cols, scale=args.scale)
            print(f"[INFO] Alphabet sheet: {len(alphabet)} glyphs, skipped={''.join(alphabet.skipped)!r}")
        else:
            _, _, left = decode_image(args.input)
            _, _, right = decode_image(args.output)
            img = side_by_side(left, right)
    except (MosaicError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 2

    Path(args.out).parent.mkdir(parents=True, exist_ok=True)
    img.save(args.out)
    print(f"[INFO] Saved image: {args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
