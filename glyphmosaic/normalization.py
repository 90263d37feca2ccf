"""
normalization.py
================

Rescaling strategies for signature collections.

Image-cell signatures and glyph signatures are put on comparable [0, 1]
scales with two different strategies. Both treat the three components
(brightness, edge_x, edge_y) independently; there is no cross-component
coupling.

Strategies
----------
minmax (image cells):
    - Per component, min/max are taken over signatures whose brightness is
      not exactly 0. Fully black cells would otherwise pin the minimum.
    - Those same zero-brightness signatures are *not* rescaled; they keep
      their raw values (including any edge energy picked up from bright
      neighbouring cells).
    - value = (value - min) / (max - min).
    - Degenerate component (max == min): every included value becomes 0.0,
      or `DegenerateDataError` when `degenerate="raise"`.

quantile (glyph alphabet):
    - Per component, stable sort (ties keep original order) and replace
      each value with rank / N.
    - Output for one component is exactly {0/N, 1/N, ..., (N-1)/N}.

Both functions return a new tensor; the input is never mutated, so each
component pass only ever sees pre-normalization values.

Usage
-----
    from glyphmosaic.normalization import NormalizationConfig, apply_normalization, Strategy
    cells = apply_normalization(raw_cells, NormalizationConfig(strategy=Strategy.MINMAX))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import torch

from .errors import DegenerateDataError
from .features import BRIGHTNESS, COMPONENT_NAMES


class Strategy:
    MINMAX = "minmax"
    QUANTILE = "quantile"


ALLOWED_STRATEGIES = {Strategy.MINMAX, Strategy.QUANTILE}

# Fallbacks for a component whose max equals its min.
DEGENERATE_ZERO = "zero"
DEGENERATE_RAISE = "raise"
ALLOWED_DEGENERATE = {DEGENERATE_ZERO, DEGENERATE_RAISE}


@dataclass
class NormalizationConfig:
    """
    Attributes
    ----------
    strategy : str
        'minmax' or 'quantile'.
    degenerate : str
        'zero' maps a constant component to 0.0; 'raise' aborts with
        DegenerateDataError. Only used by minmax.
    """

    strategy: str = Strategy.MINMAX
    degenerate: str = DEGENERATE_ZERO

    def __post_init__(self):
        if self.strategy not in ALLOWED_STRATEGIES:
            raise ValueError(
                f"Unknown normalization strategy '{self.strategy}'. "
                f"Allowed: {sorted(ALLOWED_STRATEGIES)}"
            )
        if self.degenerate not in ALLOWED_DEGENERATE:
            raise ValueError(
                f"Unknown degenerate fallback '{self.degenerate}'. "
                f"Allowed: {sorted(ALLOWED_DEGENERATE)}"
            )


def _check_signatures(sigs: torch.Tensor) -> None:
    if sigs.ndim != 2 or sigs.shape[1] != 3:
        raise ValueError(f"Signatures must have shape (N, 3); got {tuple(sigs.shape)}")


def _ensure_finite(out: torch.Tensor, strategy: str) -> torch.Tensor:
    if not torch.isfinite(out).all():
        raise DegenerateDataError(f"{strategy} normalization produced non-finite values")
    return out


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def normalize_minmax(sigs: torch.Tensor, degenerate: str = DEGENERATE_ZERO) -> torch.Tensor:
    """Min-max rescale of non-blank signatures; blank rows are returned raw."""
    _check_signatures(sigs)
    out = sigs.clone()
    included = sigs[:, BRIGHTNESS] != 0
    if not bool(included.any()):
        return out

    subset = sigs[included]
    lo = subset.min(dim=0).values
    hi = subset.max(dim=0).values
    span = hi - lo
    flat = span == 0
    if bool(flat.any()) and degenerate == DEGENERATE_RAISE:
        names = [COMPONENT_NAMES[i] for i in range(3) if bool(flat[i])]
        raise DegenerateDataError(
            f"Constant component(s) across {subset.shape[0]} signatures: {', '.join(names)}"
        )

    safe_span = torch.where(flat, torch.ones_like(span), span)
    scaled = (subset - lo) / safe_span
    scaled[:, flat] = 0.0
    out[included] = scaled
    return _ensure_finite(out, Strategy.MINMAX)


def normalize_quantile(sigs: torch.Tensor) -> torch.Tensor:
    """Replace each component value with its stable rank divided by N."""
    _check_signatures(sigs)
    n = sigs.shape[0]
    if n == 0:
        raise DegenerateDataError("Cannot quantile-normalize an empty signature set")

    out = torch.empty_like(sigs)
    ranks = torch.arange(n, dtype=sigs.dtype) / n
    for c in range(3):
        order = torch.argsort(sigs[:, c], stable=True)
        out[order, c] = ranks
    return _ensure_finite(out, Strategy.QUANTILE)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def get_normalizer(cfg: NormalizationConfig) -> Callable[[torch.Tensor], torch.Tensor]:
    if cfg.strategy == Strategy.QUANTILE:
        return normalize_quantile
    return lambda sigs: normalize_minmax(sigs, degenerate=cfg.degenerate)


def apply_normalization(sigs: torch.Tensor, cfg: NormalizationConfig) -> torch.Tensor:
    return get_normalizer(cfg)(sigs)
