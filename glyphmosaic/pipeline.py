#!/usr/bin/env python3
"""
pipeline.py
===========

End-to-end glyph mosaic: grayscale image in, same-sized grayscale image made
of glyph bitmaps out.

Data Flow
---------
    font ──▶ GlyphRasterizer ──▶ alphabet bitmaps ──▶ extract_cells ──▶ quantile
    image ─▶ decode_image ─────▶ buffer ───────────▶ extract_cells ──▶ minmax
                                      both normalized sets ──▶ match_cells
                                      choices ──▶ compose ──▶ encode_image

The alphabet is built once per `MosaicPipeline` and reused for every image.
A run either completes and writes its output, or raises a `MosaicError`
before anything is written.

Usage
-----
    python -m glyphmosaic.pipeline \
        --font DejaVuSansMono.ttf \
        --input mandelbulb.png \
        --output output.png

Reuse a precomputed alphabet (see `python -m glyphmosaic.rasterize --save-tensor`):

    python -m glyphmosaic.pipeline --alphabet artifacts/alphabet.pt --input in.png

Write a run summary (grid, glyph usage) as JSON:

    python -m glyphmosaic.pipeline ... --json-out artifacts/run.json

Author: Mosaic Phase 1
"""

from __future__ import annotations

import argparse
import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import torch

from .alphabet import GlyphAlphabet, build_alphabet, load_alphabet
from .codec import Source, decode_image, encode_image
from .compose import compose, usage_histogram
from .errors import DegenerateDataError, MosaicError
from .features import CellGrid, extract_cells
from .match import match_cells
from .normalization import (
    DEGENERATE_RAISE,
    DEGENERATE_ZERO,
    NormalizationConfig,
    Strategy,
    apply_normalization,
)
from .rasterize import FontResource, GlyphRasterizer, GlyphRasterizerConfig


# ---------------------------------------------------------------------------
# Config / Result
# ---------------------------------------------------------------------------


@dataclass
class MosaicConfig:
    raster: GlyphRasterizerConfig = field(default_factory=GlyphRasterizerConfig)
    image_norm: NormalizationConfig = field(
        default_factory=lambda: NormalizationConfig(strategy=Strategy.MINMAX)
    )
    # Max image cells per distance-matrix chunk in the matcher
    chunk_size: int = 4096


@dataclass
class MosaicResult:
    output: torch.Tensor
    choices: torch.Tensor
    grid: CellGrid
    cell_signatures: torch.Tensor
    labels: Sequence[str]

    def summary(self, top: int = 10) -> Dict[str, Any]:
        counts = usage_histogram(self.choices, len(self.labels))
        ranked = sorted(
            (i for i, c in enumerate(counts) if c > 0), key=lambda i: (-counts[i], i)
        )
        return {
            "width": self.grid.width,
            "height": self.grid.height,
            "cell_w": self.grid.cell_w,
            "cell_h": self.grid.cell_h,
            "cols": self.grid.cols,
            "rows": self.grid.rows,
            "cells": self.grid.count,
            "alphabet_size": len(self.labels),
            "distinct_glyphs": len(ranked),
            "top_glyphs": [
                {"index": i, "label": self.labels[i], "count": counts[i]}
                for i in ranked[:top]
            ],
        }


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class MosaicPipeline:
    """Holds one immutable glyph alphabet and converts images against it."""

    def __init__(self, alphabet: GlyphAlphabet, cfg: Optional[MosaicConfig] = None):
        self.alphabet = alphabet
        self.cfg = cfg or MosaicConfig()

    @classmethod
    def from_font(
        cls, resource: FontResource, cfg: Optional[MosaicConfig] = None
    ) -> "MosaicPipeline":
        cfg = cfg or MosaicConfig()
        alphabet = build_alphabet(GlyphRasterizer(resource, cfg.raster))
        return cls(alphabet, cfg)

    def run(self, buffer: torch.Tensor) -> MosaicResult:
        if buffer.ndim != 2:
            raise ValueError(f"Expected a (H, W) buffer; got {tuple(buffer.shape)}")
        height, width = buffer.shape
        grid = CellGrid(width, height, self.alphabet.cell_w, self.alphabet.cell_h)
        if grid.count == 0:
            raise DegenerateDataError(
                f"Image {width}x{height} is smaller than one "
                f"{grid.cell_w}x{grid.cell_h} cell"
            )

        raw = extract_cells(buffer, width, height, grid.cell_w, grid.cell_h)
        cells = apply_normalization(raw, self.cfg.image_norm)
        choices = match_cells(
            cells, self.alphabet.signatures, chunk_size=self.cfg.chunk_size
        )
        output = compose(choices, self.alphabet.bitmaps, grid)
        return MosaicResult(
            output=output,
            choices=choices,
            grid=grid,
            cell_signatures=cells,
            labels=self.alphabet.labels,
        )

    def run_file(self, source: Source, destination: Source) -> MosaicResult:
        width, height, buffer = decode_image(source)
        result = self.run(buffer)
        encode_image(destination, result.output, width, height)
        return result


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _build_argparser():
    ap = argparse.ArgumentParser(
        description="Rebuild a grayscale image out of font glyphs."
    )
    ap.add_argument("--input", required=True, help="Input PNG (8-bit L or RGBA)")
    ap.add_argument("--output", default="output.png", help="Output grayscale PNG")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--font", help="TrueType/OpenType font to render glyphs from")
    src.add_argument("--alphabet", help="Precomputed alphabet (.pt) from glyphmosaic.rasterize")
    ap.add_argument("--height", type=int, default=20, help="Glyph/cell height in pixels")
    ap.add_argument("--first-char", type=int, default=0x20, help="First code point")
    ap.add_argument("--num-chars", type=int, default=95, help="Number of code points")
    ap.add_argument(
        "--chunk-size",
        type=int,
        default=4096,
        help="Image cells per matcher chunk (bounds memory)",
    )
    ap.add_argument(
        "--strict-degenerate",
        action="store_true",
        help="Abort instead of mapping constant signature components to 0",
    )
    ap.add_argument(
        "--json-out", type=str, default=None, help="Optional path to write run summary JSON"
    )
    ap.add_argument("--quiet", action="store_true", help="Suppress [INFO] lines")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_argparser().parse_args(argv)

    def info(msg: str):
        if not args.quiet:
            print(f"[INFO] {msg}")

    t0 = time.time()
    try:
        cfg = MosaicConfig(
            raster=GlyphRasterizerConfig(
                height=args.height, first_char=args.first_char, num_chars=args.num_chars
            ),
            image_norm=NormalizationConfig(
                strategy=Strategy.MINMAX,
                degenerate=DEGENERATE_RAISE if args.strict_degenerate else DEGENERATE_ZERO,
            ),
            chunk_size=args.chunk_size,
        )
        if args.alphabet:
            pipeline = MosaicPipeline(load_alphabet(args.alphabet), cfg)
            info(f"Loaded alphabet: {args.alphabet}")
        else:
            pipeline = MosaicPipeline.from_font(FontResource.from_path(args.font), cfg)
            info(f"Rendered alphabet from font: {args.font}")
        alphabet = pipeline.alphabet
        info(
            f"Alphabet size={len(alphabet)} cell={alphabet.cell_w}x{alphabet.cell_h} "
            f"skipped={len(alphabet.skipped)}"
        )

        result = pipeline.run_file(args.input, args.output)
    except (MosaicError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 2

    summary = result.summary()
    info(f"Wrote output: {args.output}")
    print(
        f"[RESULT] image={summary['width']}x{summary['height']} "
        f"grid={summary['cols']}x{summary['rows']} cells={summary['cells']} "
        f"distinct_glyphs={summary['distinct_glyphs']}/{summary['alphabet_size']} "
        f"elapsed={time.time() - t0:.2f}s"
    )
    if summary["width"] != result.grid.covered_width or summary["height"] != result.grid.covered_height:
        print(
            f"[WARN] Remainder strip left blank: "
            f"{result.grid.width - result.grid.covered_width}px right, "
            f"{result.grid.height - result.grid.covered_height}px bottom"
        )

    if args.json_out:
        outp = Path(args.json_out)
        outp.parent.mkdir(parents=True, exist_ok=True)
        summary["settings"] = {
            "input": args.input,
            "output": args.output,
            "font": args.font,
            "alphabet": args.alphabet,
            "height": args.height,
            "first_char": args.first_char,
            "num_chars": args.num_chars,
            "strict_degenerate": args.strict_degenerate,
        }
        with outp.open("w", encoding="utf-8") as f:
            json.dump(summary, f, ensure_ascii=False, indent=2)
        info(f"Wrote summary JSON: {outp}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
