"""
test_visualize.py
=================

Contact sheet / comparison image helpers.

Usage:
    pytest glyphmosaic/debug/test_visualize.py
"""

import numpy as np
import torch
from PIL import Image

from glyphmosaic.alphabet import GlyphAlphabet, save_alphabet
from glyphmosaic.visualize import alphabet_sheet, build_grid, main, side_by_side


def _alphabet(n=5):
    bitmaps = torch.stack([torch.full((3, 2), 40 * i, dtype=torch.uint8) for i in range(n)])
    return GlyphAlphabet.from_bitmaps(bitmaps, [chr(ord("a") + i) for i in range(n)])


def test_build_grid_size():
    imgs = [Image.new("L", (2, 3), color=255) for _ in range(5)]
    grid = build_grid(imgs, rows=2, cols=3, cell_pad=1)
    assert grid.size == (3 * 2 + 4 * 1, 2 * 3 + 3 * 1)


def test_alphabet_sheet_layout():
    sheet = alphabet_sheet(_alphabet(), cols=2, scale=2, cell_pad=1)
    # 3 rows x 2 cols of 4x6 tiles
    assert sheet.size == (2 * 4 + 3, 3 * 6 + 4)
    arr = np.array(sheet)
    # Second glyph (value 40) lands at row 0, col 1.
    assert arr[1, 1 + 4 + 1] == 40


def test_side_by_side():
    left = torch.full((4, 3), 10, dtype=torch.uint8)
    right = torch.full((2, 5), 200, dtype=torch.uint8)
    img = side_by_side(left, right, gap=2)
    assert img.size == (3 + 2 + 5, 4)
    arr = np.array(img)
    assert arr[0, 0] == 10 and arr[0, 5] == 200 and arr[3, 5] == 0


def test_cli_sheet(tmp_path):
    alpha_path = tmp_path / "alphabet.pt"
    save_alphabet(_alphabet(), str(alpha_path))
    out = tmp_path / "sheet.png"
    rc = main(["sheet", "--alphabet", str(alpha_path), "--cols", "4", "--out", str(out)])
    assert rc == 0
    assert out.exists()
