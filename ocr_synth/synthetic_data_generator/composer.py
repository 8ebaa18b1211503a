"""Composition of the text canvas before distortions.

This module defines the `Composer` class, which turns a string, a font and
the generation settings into a raster: it sizes the canvas from the text
layout and the margins, paints one of the configured backgrounds, and draws
the text (with an optional drop shadow) at the aligned position.
"""

import math

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from ocr_synth.config.schemas import (
    BLACK,
    ColorSetting,
    GenerationSettings,
    HorizontalAlignment,
    LinearGradientBackground,
    SolidColorBackground,
    VerticalAlignment,
)
from ocr_synth.synthetic_data_generator.fonts import FontCache, LoadedFont
from ocr_synth.synthetic_data_generator.layout import TextLayout, draw_layout, layout_text
from ocr_synth.synthetic_data_generator.params import resolve

TRANSPARENT = (0, 0, 0, 0)


def render_linear_gradient(width, height, start: ColorSetting, end: ColorSetting, angle_degrees):
    """Renders a linear gradient as an RGBA array.

    The gradient runs along a line through the canvas center at
    `angle_degrees`, spanning the longer canvas dimension. Pixels beyond the
    ends of the line take the end colors.

    Args:
        width (int): The canvas width in pixels.
        height (int): The canvas height in pixels.
        start (ColorSetting): The color at the start of the line.
        end (ColorSetting): The color at the end of the line.
        angle_degrees (float): The direction of the line; 0 runs left to right.

    Returns:
        np.ndarray: A (height, width, 4) uint8 array.
    """
    angle = math.radians(angle_degrees)
    length = max(width, height)
    half_dx = math.cos(angle) * length / 2
    half_dy = math.sin(angle) * length / 2
    start_x = width / 2.0 - half_dx
    start_y = height / 2.0 - half_dy

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    xs += 0.5
    ys += 0.5
    # Projection of each pixel center onto the gradient line, as a fraction of its length.
    t = ((xs - start_x) * 2 * half_dx + (ys - start_y) * 2 * half_dy) / float(length * length)
    t = np.clip(t, 0.0, 1.0)[..., None]

    c0 = np.array(start.as_rgba(), dtype=np.float64)
    c1 = np.array(end.as_rgba(), dtype=np.float64)
    gradient = c0 + (c1 - c0) * t
    return np.clip(np.rint(gradient), 0, 255).astype(np.uint8)


class Composer:
    """Draws backgrounds and text onto a canvas sized for the text.

    Attributes:
        font_cache (FontCache): The cache used to load fonts. It may be shared
            between threads.
    """

    def __init__(self, font_cache=None):
        self.font_cache = font_cache if font_cache is not None else FontCache()

    def __call__(self, settings: GenerationSettings, text: str, font_path, rng: np.random.Generator) -> np.ndarray:
        """Composes one sample before distortions.

        Args:
            settings: The generation settings (read only).
            text: The string to render.
            font_path: The font file to render with. Unusable files fall back
                to the built-in face.
            rng: The random generator owned by this sample.

        Returns:
            np.ndarray: The composed canvas as a BGR uint8 array.
        """
        font_size = resolve(settings.font_size, rng)
        spacing = resolve(settings.character_spacing, rng)
        margin_left = int(resolve(settings.margins.left, rng))
        margin_right = int(resolve(settings.margins.right, rng))
        margin_top = int(resolve(settings.margins.top, rng))
        margin_bottom = int(resolve(settings.margins.bottom, rng))

        font = self.font_cache.load_font(font_path, font_size)
        layout = layout_text(text, font, spacing)

        width = max(1, layout.width + margin_left + margin_right)
        height = max(1, int(resolve(settings.initial_height, rng)), layout.height + margin_top + margin_bottom)

        canvas = self.draw_background((width, height), settings, rng)
        bounds = (margin_left, margin_top, layout.width, height - margin_top - margin_bottom)
        canvas = self.draw_text(canvas, layout, font, settings, rng, bounds)

        return cv2.cvtColor(np.array(canvas.convert("RGB")), cv2.COLOR_RGB2BGR)

    def draw_background(self, size, settings: GenerationSettings, rng: np.random.Generator) -> Image.Image:
        """Paints a randomly chosen background over an opaque white base.

        An empty background list falls back to a plain white background.
        """
        width, height = size
        canvas = Image.new("RGBA", size, (255, 255, 255, 255))

        backgrounds = settings.backgrounds
        if backgrounds:
            background = backgrounds[int(rng.integers(len(backgrounds)))]
        else:
            background = SolidColorBackground()

        if isinstance(background, LinearGradientBackground):
            gradient = render_linear_gradient(width, height, background.start, background.end, background.angle_degrees)
            layer = Image.fromarray(gradient, "RGBA")
        else:
            layer = Image.new("RGBA", size, background.color.as_rgba())

        return Image.alpha_composite(canvas, layer)

    def text_origin(self, layout: TextLayout, font: LoadedFont, settings: GenerationSettings, bounds):
        """Computes the top-left drawing position of the text block.

        Vertical centering uses the em-normalized cell ascent and descent of
        the font rather than the measured box, so that baselines of different
        fonts at the same size line up.
        """
        left, top, bounds_width, bounds_height = bounds

        alignment = settings.horizontal_alignment
        if alignment == HorizontalAlignment.CENTER:
            x = left + (bounds_width - layout.width) / 2.0
        elif alignment == HorizontalAlignment.RIGHT:
            x = left + bounds_width - layout.width
        else:
            x = float(left)

        alignment = settings.vertical_alignment
        if alignment == VerticalAlignment.TOP:
            y = float(top)
        elif alignment == VerticalAlignment.BOTTOM:
            y = float(top + bounds_height - layout.height)
        else:
            cell_ascent, cell_descent = font.em_metrics()
            draw_ascent, _ = font.draw_metrics()
            baseline = top + (bounds_height - (cell_ascent + cell_descent)) / 2.0 + cell_ascent
            # Pillow positions text by its ascender line, not its baseline.
            y = baseline - draw_ascent
        return x, y

    def draw_text(self, canvas: Image.Image, layout: TextLayout, font: LoadedFont, settings: GenerationSettings,
                  rng: np.random.Generator, bounds) -> Image.Image:
        """Draws the drop shadow (if enabled) and then the text."""
        colors = settings.foreground_colors
        color = colors[int(rng.integers(len(colors)))] if colors else BLACK
        x, y = self.text_origin(layout, font, settings, bounds)

        shadow = settings.drop_shadow
        if shadow.enabled:
            offset_x = resolve(shadow.offset_x, rng)
            offset_y = resolve(shadow.offset_y, rng)
            opacity = resolve(shadow.opacity, rng)
            blur = resolve(shadow.blur_radius, rng)

            alpha = int(np.clip(255 * opacity, 0, 255))
            fill = (shadow.color.r, shadow.color.g, shadow.color.b, alpha)
            layer = Image.new("RGBA", canvas.size, TRANSPARENT)
            draw_layout(ImageDraw.Draw(layer), layout, font, x + offset_x, y + offset_y, fill)
            if blur > 0:
                layer = layer.filter(ImageFilter.GaussianBlur(blur))
            canvas = Image.alpha_composite(canvas, layer)

        layer = Image.new("RGBA", canvas.size, TRANSPARENT)
        draw_layout(ImageDraw.Draw(layer), layout, font, x, y, color.as_rgba())
        return Image.alpha_composite(canvas, layer)
