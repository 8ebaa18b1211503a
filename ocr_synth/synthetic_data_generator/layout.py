"""Measurement and glyph placement of a single line of text.

With (near) zero character spacing, the whole string is measured and drawn
in one call so that the font's shaping and kerning apply. With non-zero
spacing, the string is laid out glyph by glyph: `spacing` is inserted after
every non-space glyph except the last one, and a space advances by the
font's natural space width plus a tenth of `spacing`.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from PIL import ImageDraw

from ocr_synth.synthetic_data_generator.fonts import LoadedFont

SPACING_EPSILON = 0.01
"""Spacing below this magnitude (in pixels) is treated as zero."""

WIDTH_PADDING = 4
HEIGHT_PADDING = 2
SPACE_SPACING_FACTOR = 0.1
MIN_SPACE_WIDTH_RATIO = 0.3


@dataclass(frozen=True)
class TextLayout:
    """The measured box of a string and the positions of its glyphs.

    Attributes:
        text: The laid out string.
        width: The padded width of the text box in pixels.
        height: The padded height of the text box in pixels.
        spacing: The character spacing used for the layout.
        native: True if the string is drawn in one call with native shaping.
        glyphs: For per-glyph layouts, (character, x offset) pairs for every
            non-space character; empty for native layouts.
    """

    text: str
    width: int
    height: int
    spacing: float
    native: bool
    glyphs: Tuple[Tuple[str, float], ...] = ()


def natural_space_width(font: LoadedFont) -> float:
    """Returns the advance of a space between two narrow glyphs.

    The width is derived from measuring "i i" against "ii" and is floored at
    30% of the font size, since some fonts report a near-zero difference.
    """
    measured = font.font.getlength("i i") - font.font.getlength("ii")
    return max(measured, font.size * MIN_SPACE_WIDTH_RATIO)


def layout_text(text: str, font: LoadedFont, spacing: float) -> TextLayout:
    """Measures `text` and computes where each glyph is drawn.

    Args:
        text: The string to lay out.
        font: The sized font.
        spacing: The character spacing in pixels.

    Returns:
        TextLayout: The padded box and glyph positions.
    """
    ascent, descent = font.draw_metrics()
    height = math.ceil(ascent + descent) + HEIGHT_PADDING

    if abs(spacing) < SPACING_EPSILON:
        width = font.font.getlength(text)
        return TextLayout(text, math.ceil(width) + WIDTH_PADDING, height, spacing, native=True)

    space_width = natural_space_width(font)
    x = 0.0
    glyphs = []
    for i, char in enumerate(text):
        if char == " ":
            x += space_width + spacing * SPACE_SPACING_FACTOR
            continue
        glyphs.append((char, x))
        x += font.font.getlength(char)
        if i < len(text) - 1:
            x += spacing

    width = max(1.0, x)
    return TextLayout(text, math.ceil(width) + WIDTH_PADDING, height, spacing, native=False, glyphs=tuple(glyphs))


def draw_layout(draw: ImageDraw.ImageDraw, layout: TextLayout, font: LoadedFont, x: float, y: float, fill) -> None:
    """Draws a laid out string with its top-left corner at (x, y)."""
    if layout.native:
        draw.text((x, y), layout.text, font=font.font, fill=fill)
        return
    for char, offset in layout.glyphs:
        draw.text((x + offset, y), char, font=font.font, fill=fill)
