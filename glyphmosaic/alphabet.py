"""
alphabet.py
===========

The glyph alphabet: an ordered, immutable set of candidate glyph bitmaps and
their signatures, built once per run.

Membership
----------
- The blank character (space by default) is always a member with an
  all-zero bitmap.
- Every other character in the configured range is a member only if it has
  visible ink; glyphs with no outline are skipped.
- Order follows the character range and fixes the matcher's tie-break
  (lower index wins).

Signatures
----------
`raw_signatures` come straight from the cell feature extractor (one cell per
bitmap). `signatures` are their quantile-normalized counterparts and are what
the matcher compares against.

Persistence
-----------
`save_alphabet` writes a torch checkpoint:

    {
      "bitmaps": uint8 tensor (N, H, W),
      "labels":  list[str],
      "cell_w":  int,
      "cell_h":  int,
      "format":  "glyph-alphabet/1",
    }

Signatures are not stored; `load_alphabet` recomputes them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

import torch

from .errors import AlphabetError, DegenerateDataError
from .features import extract_cells
from .normalization import normalize_quantile
from .rasterize import GlyphRasterizer

ALPHABET_FORMAT = "glyph-alphabet/1"


@dataclass(frozen=True)
class GlyphAlphabet:
    bitmaps: torch.Tensor
    labels: List[str]
    raw_signatures: torch.Tensor
    signatures: torch.Tensor
    cell_w: int
    cell_h: int
    skipped: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return self.bitmaps.shape[0]

    @classmethod
    def from_bitmaps(
        cls,
        bitmaps: torch.Tensor,
        labels: Sequence[str],
        skipped: Sequence[str] = (),
    ) -> "GlyphAlphabet":
        if bitmaps.ndim != 3:
            raise ValueError(f"Bitmaps must have shape (N, H, W); got {tuple(bitmaps.shape)}")
        if bitmaps.dtype != torch.uint8:
            raise ValueError(f"Bitmaps must be uint8; got {bitmaps.dtype}")
        n, cell_h, cell_w = bitmaps.shape
        if len(labels) != n:
            raise ValueError(f"Got {len(labels)} labels for {n} bitmaps")
        if n == 0:
            raise DegenerateDataError("Glyph alphabet has no usable glyphs")

        raw = torch.cat(
            [extract_cells(b, cell_w, cell_h, cell_w, cell_h) for b in bitmaps], dim=0
        )
        return cls(
            bitmaps=bitmaps.contiguous(),
            labels=list(labels),
            raw_signatures=raw,
            signatures=normalize_quantile(raw),
            cell_w=cell_w,
            cell_h=cell_h,
            skipped=list(skipped),
        )


def build_alphabet(rasterizer: GlyphRasterizer) -> GlyphAlphabet:
    """Render the rasterizer's character range and keep the usable members."""
    bitmaps: List[torch.Tensor] = []
    labels: List[str] = []
    skipped: List[str] = []
    for ch, rendered in rasterizer.render_range():
        if rendered.bitmap is None:
            skipped.append(ch)
            continue
        bitmaps.append(rendered.bitmap)
        labels.append(ch)
    if not bitmaps:
        raise DegenerateDataError(
            f"No glyph in U+{rasterizer.cfg.first_char:04X}.. "
            f"(+{rasterizer.cfg.num_chars}) produced a bitmap"
        )
    return GlyphAlphabet.from_bitmaps(torch.stack(bitmaps, dim=0), labels, skipped)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def save_alphabet(alphabet: GlyphAlphabet, path: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    torch.save(
        {
            "bitmaps": alphabet.bitmaps,
            "labels": alphabet.labels,
            "cell_w": alphabet.cell_w,
            "cell_h": alphabet.cell_h,
            "format": ALPHABET_FORMAT,
        },
        p,
    )


def load_alphabet(path: str) -> GlyphAlphabet:
    p = Path(path)
    if not p.exists():
        raise AlphabetError(f"Alphabet file not found: {p}")
    try:
        obj = torch.load(p, map_location="cpu")
    except Exception as e:  # torch raises a variety of unpickling errors
        raise AlphabetError(f"Cannot read alphabet file {p}: {e}") from e
    if not isinstance(obj, dict) or obj.get("format") != ALPHABET_FORMAT:
        raise AlphabetError(f"{p} is not a {ALPHABET_FORMAT} checkpoint")
    bitmaps = obj.get("bitmaps")
    labels = obj.get("labels")
    if not isinstance(bitmaps, torch.Tensor) or not isinstance(labels, list):
        raise AlphabetError(f"{p} is missing 'bitmaps' or 'labels'")
    if bitmaps.ndim != 3 or tuple(bitmaps.shape[1:]) != (obj.get("cell_h"), obj.get("cell_w")):
        raise AlphabetError(
            f"{p}: bitmap shape {tuple(bitmaps.shape)} disagrees with stored cell size"
        )
    try:
        return GlyphAlphabet.from_bitmaps(bitmaps.to(torch.uint8), [str(x) for x in labels])
    except ValueError as e:
        raise AlphabetError(f"{p}: {e}") from e


def alphabet_records(alphabet: GlyphAlphabet) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for i, label in enumerate(alphabet.labels):
        rows.append(
            {
                "index": i,
                "label": label,
                "codepoint": ord(label[0]) if label else None,
                "raw_signature": [float(v) for v in alphabet.raw_signatures[i]],
                "signature": [float(v) for v in alphabet.signatures[i]],
            }
        )
    return rows


def write_alphabet_jsonl(alphabet: GlyphAlphabet, path: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        for rec in alphabet_records(alphabet):
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
