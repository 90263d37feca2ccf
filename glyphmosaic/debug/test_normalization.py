"""
test_normalization.py
=====================

Min-max (image cells) and quantile (glyph) normalization checks.

Usage:
    pytest glyphmosaic/debug/test_normalization.py
"""

import pytest
import torch

from glyphmosaic.errors import DegenerateDataError
from glyphmosaic.normalization import (
    NormalizationConfig,
    Strategy,
    apply_normalization,
    normalize_minmax,
    normalize_quantile,
)


def _sigs(rows):
    return torch.tensor(rows, dtype=torch.float64)


def test_minmax_per_component():
    raw = _sigs([[0, 5, 5], [1, 2, 10], [3, 4, 20], [2, 6, 15]])
    out = normalize_minmax(raw)
    assert out[1:].tolist() == [[0.0, 0.0, 0.0], [1.0, 0.5, 1.0], [0.5, 1.0, 0.5]]


def test_minmax_leaves_blank_cells_raw():
    raw = _sigs([[0, 5, 5], [1, 2, 10], [3, 4, 20]])
    out = normalize_minmax(raw)
    assert out[0].tolist() == [0.0, 5.0, 5.0]
    # The blank row's edge values do not widen the other rows' range.
    assert out[2, 1].item() == 1.0


def test_minmax_does_not_mutate_input():
    raw = _sigs([[1, 2, 3], [4, 5, 6]])
    before = raw.clone()
    normalize_minmax(raw)
    assert torch.equal(raw, before)


def test_minmax_range_and_extremes():
    g = torch.Generator().manual_seed(3)
    raw = torch.rand(50, 3, generator=g, dtype=torch.float64) * 40 + 0.5
    out = normalize_minmax(raw)
    assert out.min().item() >= 0.0 and out.max().item() <= 1.0
    for c in range(3):
        assert out[raw[:, c].argmin(), c].item() == 0.0
        assert out[raw[:, c].argmax(), c].item() == 1.0


def test_minmax_constant_component_maps_to_zero():
    raw = _sigs([[1, 2, 3], [2, 2, 3]])
    out = normalize_minmax(raw)
    assert out.tolist() == [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]
    assert torch.isfinite(out).all()


def test_minmax_constant_component_strict_raises():
    raw = _sigs([[1, 2, 3], [2, 2, 4]])
    with pytest.raises(DegenerateDataError):
        normalize_minmax(raw, degenerate="raise")


def test_minmax_all_blank_is_unchanged():
    raw = _sigs([[0, 1, 2], [0, 3, 4]])
    assert torch.equal(normalize_minmax(raw), raw)


def test_quantile_stable_ranks():
    raw = _sigs([[3, 0, 1], [1, 0, 1], [3, 0, 1], [2, 0, 1]])
    out = normalize_quantile(raw)
    assert out[:, 0].tolist() == [0.5, 0.0, 0.75, 0.25]
    # All-equal component: ranks follow original order.
    assert out[:, 1].tolist() == [0.0, 0.25, 0.5, 0.75]


def test_quantile_is_a_permutation_of_rank_fractions():
    g = torch.Generator().manual_seed(11)
    n = 37
    raw = torch.rand(n, 3, generator=g, dtype=torch.float64)
    out = normalize_quantile(raw)
    expected = [i / n for i in range(n)]
    for c in range(3):
        assert sorted(out[:, c].tolist()) == expected


def test_quantile_empty_raises():
    with pytest.raises(DegenerateDataError):
        normalize_quantile(torch.empty(0, 3, dtype=torch.float64))


def test_apply_normalization_dispatch():
    raw = _sigs([[1, 1, 1], [2, 3, 4]])
    q = apply_normalization(raw, NormalizationConfig(strategy=Strategy.QUANTILE))
    m = apply_normalization(raw, NormalizationConfig(strategy=Strategy.MINMAX))
    assert q.tolist() == [[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]]
    assert m.tolist() == [[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        NormalizationConfig(strategy="zscore")
