"""Tests for text measurement and glyph placement."""

import math

import pytest

from ocr_synth.synthetic_data_generator.fonts import FontCache
from ocr_synth.synthetic_data_generator.layout import (
    HEIGHT_PADDING,
    WIDTH_PADDING,
    layout_text,
    natural_space_width,
)


@pytest.fixture
def font(tmp_path):
    return FontCache().load_font(str(tmp_path / "missing.ttf"), 24)


def test_zero_spacing_uses_native_measurement(font):
    layout = layout_text("AB12", font, 0)
    ascent, descent = font.draw_metrics()
    assert layout.native
    assert layout.glyphs == ()
    assert layout.width == math.ceil(font.font.getlength("AB12")) + WIDTH_PADDING
    assert layout.height == math.ceil(ascent + descent) + HEIGHT_PADDING


def test_tiny_spacing_counts_as_zero(font):
    assert layout_text("AB", font, 0.005).native
    assert not layout_text("AB", font, 0.02).native


def test_spacing_added_between_glyphs_only(font):
    a = font.font.getlength("A")
    b = font.font.getlength("B")
    layout = layout_text("AB", font, 5)
    assert not layout.native
    assert layout.glyphs == (("A", 0.0), ("B", pytest.approx(a + 5)))
    assert layout.width == math.ceil(a + 5 + b) + WIDTH_PADDING


def test_space_advances_by_natural_width_plus_tenth_of_spacing(font):
    a = font.font.getlength("A")
    layout = layout_text("A B", font, 10)
    expected = a + 10 + natural_space_width(font) + 1.0
    assert layout.glyphs[1] == ("B", pytest.approx(expected))


def test_negative_spacing_tightens_layout(font):
    loose = layout_text("ABAB", font, 3)
    tight = layout_text("ABAB", font, -3)
    assert tight.width < loose.width


def test_natural_space_width_floor(font):
    assert natural_space_width(font) >= 0.3 * font.size


def test_empty_text_keeps_padding(font):
    layout = layout_text("", font, 0)
    assert layout.width == WIDTH_PADDING
    assert layout_text("", font, 4).width == 1 + WIDTH_PADDING


def test_only_spaces_have_no_glyphs(font):
    layout = layout_text("  ", font, 5)
    assert layout.glyphs == ()
    assert layout.width == math.ceil(2 * (natural_space_width(font) + 0.5)) + WIDTH_PADDING
