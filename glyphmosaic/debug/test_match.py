"""
test_match.py
=============

Weighted nearest-glyph selection: distances, tie-break, batched vs scan.

Usage:
    pytest glyphmosaic/debug/test_match.py
"""

import pytest
import torch

from glyphmosaic.errors import DegenerateDataError
from glyphmosaic.match import BRIGHTNESS_WEIGHT, match_cell, match_cells, weighted_distance


def _sigs(rows):
    return torch.tensor(rows, dtype=torch.float64)


GLYPHS = _sigs(
    [
        [0.0, 0.0, 0.0],
        [0.5, 0.1, 0.0],
        [1.0, 0.9, 0.9],
    ]
)


def test_weighted_distance_formula():
    a = _sigs([1.0, 0.5, 0.25])
    b = _sigs([0.0, 0.0, 0.0])
    expected = BRIGHTNESS_WEIGHT * 1.0 + 0.25 + 0.0625
    assert weighted_distance(a, b).item() == pytest.approx(expected)


def test_quadrant_scenario_hand_computed():
    # Image cells from a 0/85/170/255 quadrant image after min-max: the
    # black cell keeps its raw edge energy, the others span brightness 0..1
    # with flat (zeroed) edge components.
    cells = _sigs(
        [
            [0.0, 4 / 3, 8 / 3],
            [0.0, 0.0, 0.0],
            [0.5, 0.0, 0.0],
            [1.0, 0.0, 0.0],
        ]
    )
    # cell0: d = (8.889, 8.645, 3.359) -> 2
    # cell1: d = (0.0, 0.0225, 1.67)   -> 0
    # cell2: d = (0.0125, 0.01, 1.6325) -> 1
    # cell3: d = (0.05, 0.0225, 1.62)  -> 1
    assert match_cells(cells, GLYPHS).tolist() == [2, 0, 1, 1]
    assert [match_cell(c, GLYPHS) for c in cells] == [2, 0, 1, 1]


def test_brightness_is_down_weighted():
    glyphs = _sigs([[0.0, 0.0, 0.0], [1.0, 0.3, 0.0]])
    cell = _sigs([1.0, 0.0, 0.0])
    # 0.05 * 1.0 beats an exact brightness match with 0.3 edge error.
    assert match_cell(cell, glyphs) == 0


def test_ties_pick_lowest_index():
    glyphs = _sigs([[0.9, 0.9, 0.9], [0.2, 0.2, 0.2], [0.2, 0.2, 0.2], [0.1, 0.1, 0.1]])
    cells = _sigs([[0.2, 0.2, 0.2], [0.21, 0.19, 0.2]])
    assert match_cells(cells, glyphs).tolist() == [1, 1]
    assert [match_cell(c, glyphs) for c in cells] == [1, 1]


def test_equidistant_glyphs_pick_first():
    glyphs = _sigs([[0.0, 0.9, 0.9], [0.0, 0.5, 0.0], [0.0, 0.0, 0.5]])
    cell = _sigs([0.0, 0.25, 0.25])
    # Glyphs 1 and 2 are equally far; 0 is farther.
    assert match_cell(cell, glyphs) == 1
    assert match_cells(cell.unsqueeze(0), glyphs).tolist() == [1]


def test_single_glyph_alphabet_always_wins():
    g = torch.Generator().manual_seed(5)
    cells = torch.rand(20, 3, generator=g, dtype=torch.float64) * 5
    glyphs = _sigs([[0.3, 0.7, 0.1]])
    assert match_cells(cells, glyphs).tolist() == [0] * 20


def test_batched_matches_linear_scan_across_chunks():
    g = torch.Generator().manual_seed(17)
    cells = torch.rand(101, 3, generator=g, dtype=torch.float64)
    glyphs = torch.rand(23, 3, generator=g, dtype=torch.float64)
    batched = match_cells(cells, glyphs, chunk_size=8).tolist()
    assert batched == [match_cell(c, glyphs) for c in cells]
    assert batched == match_cells(cells, glyphs).tolist()


def test_empty_alphabet_raises():
    with pytest.raises(DegenerateDataError):
        match_cells(_sigs([[0.1, 0.2, 0.3]]), torch.empty(0, 3, dtype=torch.float64))


def test_non_finite_signatures_raise():
    cells = _sigs([[float("nan"), 0.0, 0.0]])
    with pytest.raises(DegenerateDataError):
        match_cells(cells, GLYPHS)
    with pytest.raises(DegenerateDataError):
        match_cell(cells[0], GLYPHS)
