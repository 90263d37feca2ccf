"""
features.py
===========

Cell grid + per-cell signature extraction.

A signature is the ordered triple

    (brightness, edge_x, edge_y)

accumulated over every pixel of a cell:

    brightness += I(x, y) / 255
    edge_x     += |(NW + 2W + SW) - (NE + 2E + SE)|
    edge_y     += |(NW + 2N + NE) - (SW + 2S + SE)|

with neighbour intensities scaled to [0, 1]. The 3x3 neighbourhood is only
evaluated for pixels strictly inside the *whole buffer*; pixels on the
outer image border add to brightness but never to edge energy. Cell
borders are not special: a pixel on the edge of a cell still reads its
neighbours from the adjacent cells.

Grids only cover whole cells. A width/height that is not a multiple of the
cell size leaves a remainder strip on the right/bottom that is ignored.

Buffers are `torch.uint8` tensors of shape (H, W); signatures come back as
a (N, 3) tensor of `SIGNATURE_DTYPE` in row-major cell order
(index = x + y * cols).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import torch

SIGNATURE_DTYPE = torch.float64

# Column order of every signature tensor.
BRIGHTNESS, EDGE_X, EDGE_Y = 0, 1, 2
COMPONENT_NAMES = ("brightness", "edge_x", "edge_y")


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CellGrid:
    width: int
    height: int
    cell_w: int
    cell_h: int

    def __post_init__(self):
        if self.cell_w <= 0 or self.cell_h <= 0:
            raise ValueError(
                f"Cell size must be positive; got {self.cell_w}x{self.cell_h}"
            )
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid buffer size {self.width}x{self.height}")

    @property
    def cols(self) -> int:
        return self.width // self.cell_w

    @property
    def rows(self) -> int:
        return self.height // self.cell_h

    @property
    def count(self) -> int:
        return self.cols * self.rows

    @property
    def covered_width(self) -> int:
        return self.cols * self.cell_w

    @property
    def covered_height(self) -> int:
        return self.rows * self.cell_h

    def index(self, x: int, y: int) -> int:
        return x + y * self.cols

    def origin(self, index: int) -> Tuple[int, int]:
        """Top-left pixel (px, py) of cell `index`."""
        if index < 0 or index >= self.count:
            raise IndexError(f"Cell index {index} out of range (count={self.count})")
        return (index % self.cols) * self.cell_w, (index // self.cols) * self.cell_h


# ---------------------------------------------------------------------------
# Edge operator
# ---------------------------------------------------------------------------


def _check_buffer(buffer: torch.Tensor, width: int, height: int) -> None:
    if not isinstance(buffer, torch.Tensor):
        raise ValueError(f"Expected a torch.Tensor buffer, got {type(buffer)}")
    if buffer.ndim != 2 or tuple(buffer.shape) != (height, width):
        raise ValueError(
            f"Buffer shape {tuple(buffer.shape)} does not match (height, width)=({height}, {width})"
        )


def edge_energy_maps(buffer: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Absolute Sobel-style responses (|gx|, |gy|) for every pixel of `buffer`.

    Both maps have the buffer's (H, W) shape and are exactly zero on the
    1-pixel outer border.
    """
    f = buffer.to(SIGNATURE_DTYPE) / 255.0
    ex = torch.zeros_like(f)
    ey = torch.zeros_like(f)
    if f.shape[0] < 3 or f.shape[1] < 3:
        return ex, ey

    nw, n, ne = f[:-2, :-2], f[:-2, 1:-1], f[:-2, 2:]
    w, e = f[1:-1, :-2], f[1:-1, 2:]
    sw, s, se = f[2:, :-2], f[2:, 1:-1], f[2:, 2:]

    gx = (nw + 2.0 * w + sw) - (ne + 2.0 * e + se)
    gy = (nw + 2.0 * n + ne) - (sw + 2.0 * s + se)
    ex[1:-1, 1:-1] = gx.abs()
    ey[1:-1, 1:-1] = gy.abs()
    return ex, ey


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _cell_sums(values: torch.Tensor, grid: CellGrid) -> torch.Tensor:
    # (rows*cell_h, cols*cell_w) -> (rows, cell_h, cols, cell_w) -> (rows, cols)
    cropped = values[: grid.covered_height, : grid.covered_width]
    blocks = cropped.reshape(grid.rows, grid.cell_h, grid.cols, grid.cell_w)
    return blocks.sum(dim=(1, 3)).reshape(-1)


def extract_cells(
    buffer: torch.Tensor,
    width: int,
    height: int,
    cell_w: int,
    cell_h: int,
) -> torch.Tensor:
    """
    Raw (unnormalized) signatures for every whole cell of `buffer`.

    Returns
    -------
    torch.Tensor
        Shape (rows * cols, 3), columns (brightness, edge_x, edge_y).
    """
    _check_buffer(buffer, width, height)
    grid = CellGrid(width, height, cell_w, cell_h)
    if grid.count == 0:
        return torch.empty(0, 3, dtype=SIGNATURE_DTYPE)

    brightness = buffer.to(SIGNATURE_DTYPE) / 255.0
    ex, ey = edge_energy_maps(buffer)
    return torch.stack(
        [
            _cell_sums(brightness, grid),
            _cell_sums(ex, grid),
            _cell_sums(ey, grid),
        ],
        dim=1,
    )


def extract_signature(bitmap: torch.Tensor) -> torch.Tensor:
    """Signature of a single bitmap treated as one full cell; shape (3,)."""
    h, w = bitmap.shape
    return extract_cells(bitmap, w, h, w, h)[0]
