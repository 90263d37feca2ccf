"""
match.py
========

Nearest-glyph selection under a weighted squared distance:

    d = 0.05 * (gb - ib)^2 + (iex - gex)^2 + (iey - gey)^2

Brightness is down-weighted; edge structure dominates the choice.

Two entry points with identical results:
  - `match_cell`  : plain linear scan over the alphabet, strict `<`, so the
                    first (lowest-index) glyph reaching the minimum wins.
  - `match_cells` : batched over all image cells with torch; `argmin`
                    returns the first minimal index, giving the same
                    tie-break. Chunked to bound the (C, N) distance matrix.
"""

from __future__ import annotations

import math

import torch

from .errors import DegenerateDataError

BRIGHTNESS_WEIGHT = 0.05


def _weights(dtype: torch.dtype) -> torch.Tensor:
    return torch.tensor([BRIGHTNESS_WEIGHT, 1.0, 1.0], dtype=dtype)


def _check_alphabet(glyph_sigs: torch.Tensor) -> None:
    if glyph_sigs.ndim != 2 or glyph_sigs.shape[1] != 3:
        raise ValueError(
            f"Glyph signatures must have shape (N, 3); got {tuple(glyph_sigs.shape)}"
        )
    if glyph_sigs.shape[0] == 0:
        raise DegenerateDataError("Cannot match against an empty glyph alphabet")
    if not torch.isfinite(glyph_sigs).all():
        raise DegenerateDataError("Glyph signatures contain non-finite values")


def weighted_distance(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
    """Distance between signatures `a` and `b` (broadcasts over leading dims)."""
    diff = a - b
    return (diff * diff * _weights(diff.dtype)).sum(dim=-1)


def match_cell(signature: torch.Tensor, glyph_sigs: torch.Tensor) -> int:
    """Index of the closest glyph; the earliest one wins on equal distance."""
    _check_alphabet(glyph_sigs)
    ib, iex, iey = (float(v) for v in signature)
    if not all(math.isfinite(v) for v in (ib, iex, iey)):
        raise DegenerateDataError("Cell signature contains non-finite values")

    best_match = 0
    best_error = math.inf
    for i, (gb, gex, gey) in enumerate(glyph_sigs.tolist()):
        error = (gb - ib) ** 2 * BRIGHTNESS_WEIGHT + (iex - gex) ** 2 + (iey - gey) ** 2
        if error < best_error:
            best_error = error
            best_match = i
    return best_match


def match_cells(
    image_sigs: torch.Tensor,
    glyph_sigs: torch.Tensor,
    chunk_size: int = 4096,
) -> torch.Tensor:
    """
    Closest glyph index for every image cell.

    Returns
    -------
    torch.LongTensor
        Shape (num_cells,).
    """
    _check_alphabet(glyph_sigs)
    if image_sigs.ndim != 2 or image_sigs.shape[1] != 3:
        raise ValueError(
            f"Image signatures must have shape (M, 3); got {tuple(image_sigs.shape)}"
        )
    if not torch.isfinite(image_sigs).all():
        raise DegenerateDataError("Image signatures contain non-finite values")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive; got {chunk_size}")

    m = image_sigs.shape[0]
    glyphs = glyph_sigs.to(image_sigs.dtype).unsqueeze(0)  # (1,N,3)
    out = torch.empty(m, dtype=torch.long)
    for start in range(0, m, chunk_size):
        end = min(start + chunk_size, m)
        chunk = image_sigs[start:end].unsqueeze(1)  # (C,1,3)
        dist = weighted_distance(chunk, glyphs)  # (C,N)
        out[start:end] = dist.argmin(dim=1)
    return out
