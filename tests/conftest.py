"""Shared fixtures for the ocr_synth test suite.

Tests never depend on system fonts: `broken_font_dir` holds a file with a
font suffix but invalid contents, which makes the generator fall back to
Pillow's built-in face, and `real_font` builds a small TrueType font with
fontTools so that table metrics can be checked.
"""

import threading
import time

import numpy as np
import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from ocr_synth.config.schemas import GenerationSettings, RangeOrFixed
from ocr_synth.synthetic_data_generator.generator import ImageGenerator

TEST_FAMILY = "Test Sans"
UNITS_PER_EM = 1000
WIN_ASCENT = 900
WIN_DESCENT = 250


def build_font(path):
    """Writes a minimal TrueType font with box glyphs for 'A', 'B' and space."""
    pen = TTGlyphPen(None)
    pen.moveTo((50, 0))
    pen.lineTo((50, 700))
    pen.lineTo((450, 700))
    pen.lineTo((450, 0))
    pen.closePath()
    box = pen.glyph()

    glyph_order = [".notdef", "space", "A", "B"]
    fb = FontBuilder(UNITS_PER_EM, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap({32: "space", 65: "A", 66: "B"})
    fb.setupGlyf({name: box for name in glyph_order})
    glyf = fb.font["glyf"]
    fb.setupHorizontalMetrics({name: (500, glyf[name].xMin) for name in glyph_order})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": TEST_FAMILY, "styleName": "Regular"})
    fb.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=WIN_ASCENT, usWinDescent=WIN_DESCENT)
    fb.setupPost()
    fb.save(str(path))
    return path


@pytest.fixture
def real_font(tmp_path):
    return build_font(tmp_path / "test_sans.ttf")


@pytest.fixture
def broken_font_dir(tmp_path):
    font_dir = tmp_path / "fonts"
    font_dir.mkdir()
    (font_dir / "broken.ttf").write_bytes(b"not a font")
    return font_dir


@pytest.fixture
def corpus_file(tmp_path):
    path = tmp_path / "strings.txt"
    path.write_text("AB12\n", encoding="utf-8")
    return path


@pytest.fixture
def settings(corpus_file, broken_font_dir):
    """Settings for a plain dataset: no distortions and no final rescale."""
    return GenerationSettings(
        strings_file_path=str(corpus_file),
        font_folder_path=str(broken_font_dir),
        font_size=RangeOrFixed.of(24),
        initial_height=RangeOrFixed.of(64),
        rescaled_height=RangeOrFixed.of(0),
    )


class FakeGenerator(ImageGenerator):
    """Returns a blank image quickly and records how many samples overlap."""

    def __init__(self, delay=0.0, fail_on=(), on_call=None):
        super().__init__(seed=0)
        self.delay = delay
        self.fail_on = set(fail_on)
        self.on_call = on_call
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._count_lock = threading.Lock()

    def process(self, settings, text, font_path):
        with self._count_lock:
            self.calls += 1
            call = self.calls
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.on_call is not None:
                self.on_call(call)
            if self.delay:
                time.sleep(self.delay)
            if call in self.fail_on:
                raise RuntimeError(f"forced failure {call}")
            return np.full((8, 16, 3), 255, dtype=np.uint8), 90
        finally:
            with self._count_lock:
                self.active -= 1
