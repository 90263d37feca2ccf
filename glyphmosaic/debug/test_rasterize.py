"""
test_rasterize.py
=================

Glyph bitmap provider checks against Pillow's bundled font.

Usage:
    pytest glyphmosaic/debug/test_rasterize.py
"""

import pytest
import torch

from glyphmosaic.errors import FontResourceError
from glyphmosaic.rasterize import (
    FontResource,
    GlyphRasterizer,
    GlyphRasterizerConfig,
    save_pngs,
)


def _rasterizer(font, **kw):
    return GlyphRasterizer(FontResource.from_font(font, "default"), GlyphRasterizerConfig(**kw))


def test_fixed_cell_size(default_font):
    rst = _rasterizer(default_font, height=16)
    assert rst.width >= 1
    for ch in "AgW.|":
        width, bitmap = rst.render(ch)
        assert width == rst.width
        assert bitmap is not None
        assert bitmap.dtype == torch.uint8
        assert tuple(bitmap.shape) == (16, rst.width)


def test_blank_is_all_zero(default_font):
    rst = _rasterizer(default_font, height=12)
    _, bitmap = rst.render(" ")
    assert bitmap is not None
    assert int(bitmap.sum()) == 0


def test_visible_glyph_has_ink(default_font):
    rst = _rasterizer(default_font, height=20)
    _, bitmap = rst.render("M")
    assert int(bitmap.max()) > 128


def test_overflow_is_clamped_to_last_column(default_font):
    # Narrow reference advance: wide glyphs overflow and fold onto the edge.
    rst = _rasterizer(default_font, height=20, reference_char="i")
    _, bitmap = rst.render("W")
    assert tuple(bitmap.shape) == (20, rst.width)
    assert int(bitmap[:, -1].max()) > 0


def test_render_range_follows_config(default_font):
    rst = _rasterizer(default_font, height=10, first_char=ord("A"), num_chars=3)
    chars = [ch for ch, _ in rst.render_range()]
    assert chars == ["A", "B", "C"]


def test_bad_font_bytes_raise():
    with pytest.raises(FontResourceError):
        GlyphRasterizer(FontResource.from_bytes(b"definitely not a font"))


def test_missing_font_file_raises(tmp_path):
    with pytest.raises(FontResourceError):
        FontResource.from_path(str(tmp_path / "missing.ttf"))


def test_config_validation():
    with pytest.raises(ValueError):
        GlyphRasterizerConfig(height=0)
    with pytest.raises(ValueError):
        GlyphRasterizerConfig(first_char=-1)


def test_save_pngs(tmp_path):
    bitmaps = torch.zeros(2, 4, 3, dtype=torch.uint8)
    save_pngs(bitmaps, ["a", "b"], str(tmp_path / "renders"))
    names = sorted(p.name for p in (tmp_path / "renders").iterdir())
    assert names == ["glyph_000_u0061.png", "glyph_001_u0062.png"]
