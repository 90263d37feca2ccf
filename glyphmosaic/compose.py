"""
compose.py
==========

Pastes the chosen glyph bitmap into every whole cell of a fresh output
buffer. No blending: each covered pixel is overwritten by exactly one glyph
pixel. Remainder strips outside the whole-cell grid stay 0.
"""

from __future__ import annotations

from typing import List

import torch

from .features import CellGrid


def compose(choices: torch.Tensor, bitmaps: torch.Tensor, grid: CellGrid) -> torch.Tensor:
    """
    Parameters
    ----------
    choices : LongTensor (grid.count,)
        Alphabet index per cell, row-major.
    bitmaps : uint8 tensor (N, cell_h, cell_w)
    grid : CellGrid

    Returns
    -------
    torch.Tensor
        (grid.height, grid.width) uint8 output buffer.
    """
    if bitmaps.ndim != 3 or tuple(bitmaps.shape[1:]) != (grid.cell_h, grid.cell_w):
        raise ValueError(
            f"Glyph bitmaps {tuple(bitmaps.shape)} do not match cell size "
            f"{grid.cell_w}x{grid.cell_h}"
        )
    if choices.ndim != 1 or choices.shape[0] != grid.count:
        raise ValueError(
            f"Expected {grid.count} choices, got shape {tuple(choices.shape)}"
        )
    if grid.count and (int(choices.min()) < 0 or int(choices.max()) >= bitmaps.shape[0]):
        raise ValueError("Glyph choice index out of range for the alphabet")

    output = torch.zeros(grid.height, grid.width, dtype=torch.uint8)
    if grid.count == 0:
        return output

    tiles = bitmaps[choices.long()]  # (rows*cols, cell_h, cell_w)
    tiles = tiles.reshape(grid.rows, grid.cols, grid.cell_h, grid.cell_w)
    mosaic = tiles.permute(0, 2, 1, 3).reshape(grid.covered_height, grid.covered_width)
    output[: grid.covered_height, : grid.covered_width] = mosaic
    return output


def usage_histogram(choices: torch.Tensor, num_glyphs: int) -> List[int]:
    """How many cells picked each alphabet member."""
    return torch.bincount(choices.long(), minlength=num_glyphs).tolist()
