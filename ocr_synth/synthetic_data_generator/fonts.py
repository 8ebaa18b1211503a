"""Thread-safe font loading with a silent fallback face.

Font files are parsed once per path and kept in a read-through cache. A
cached `FontFace` is immutable, so worker threads read it without locking;
only the one-time insert happens under the cache lock. Sized Pillow fonts are
built from the cached bytes once per thread, path and size, so no
`FreeTypeFont` object is shared between threads.
"""

import io
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from fontTools.ttLib import TTFont
from loguru import logger
from PIL import ImageFont


@dataclass(frozen=True)
class FontFace:
    """A parsed font file, independent of size.

    Attributes:
        path: The font file path the face was loaded from.
        data: The raw font bytes, or None if the file was unusable and the
            fallback face must be used instead.
        units_per_em: The em size in font units, if known.
        cell_ascent: The ascent of the font cell in font units, if known.
        cell_descent: The descent of the font cell in font units (positive).
        family_name: The family name from the font's name table.
    """

    path: str
    data: Optional[bytes] = None
    units_per_em: Optional[int] = None
    cell_ascent: Optional[int] = None
    cell_descent: Optional[int] = None
    family_name: str = ""

    @property
    def is_fallback(self) -> bool:
        return self.data is None


@dataclass(frozen=True)
class LoadedFont:
    """A sized font ready for measuring and drawing one sample."""

    font: ImageFont.FreeTypeFont
    size: int
    face: FontFace

    @property
    def is_fallback(self) -> bool:
        return self.face.is_fallback

    def draw_metrics(self) -> Tuple[int, int]:
        """Returns the (ascent, descent) Pillow uses when drawing, in pixels."""
        if hasattr(self.font, "getmetrics"):
            return self.font.getmetrics()
        left, top, right, bottom = self.font.getbbox("Ay")
        return bottom, 0

    def em_metrics(self) -> Tuple[float, float]:
        """Returns the em-normalized cell (ascent, descent) in pixels.

        The cell ascent and descent from the font tables are scaled by the
        font size over the em height. The fallback face has no tables, so the
        drawing metrics are used instead.
        """
        face = self.face
        if face.units_per_em and face.cell_ascent is not None and face.cell_descent is not None:
            scale = self.size / face.units_per_em
            return face.cell_ascent * scale, face.cell_descent * scale
        ascent, descent = self.draw_metrics()
        return float(ascent), float(descent)


def read_cell_metrics(data: bytes) -> Tuple[Optional[int], Optional[int], Optional[int], str]:
    """Reads the em size, cell ascent/descent and family name of a font.

    The Windows ascent/descent from the `OS/2` table define the font cell;
    the `hhea` values are used when that table is missing.

    Args:
        data: The raw bytes of a font file (the first face of a collection
            is used).

    Returns:
        A tuple (units_per_em, cell_ascent, cell_descent, family_name).
    """
    ttfont = TTFont(io.BytesIO(data), fontNumber=0, lazy=True)
    try:
        units_per_em = ttfont["head"].unitsPerEm
        if "OS/2" in ttfont:
            os2 = ttfont["OS/2"]
            ascent, descent = os2.usWinAscent, os2.usWinDescent
        else:
            hhea = ttfont["hhea"]
            ascent, descent = hhea.ascent, abs(hhea.descent)
        family = ""
        if "name" in ttfont:
            family = ttfont["name"].getDebugName(1) or ""
        return units_per_em, ascent, descent, family
    finally:
        ttfont.close()


def load_face(font_path: str) -> FontFace:
    """Parses a font file into a `FontFace`.

    An unreadable or corrupt file produces a fallback face instead of an
    error. Missing table metrics leave the metric fields unset, in which case
    drawing metrics are used for vertical centering.
    """
    try:
        with open(font_path, "rb") as f:
            data = f.read()
        # Pillow must accept the file, otherwise it is unusable for drawing.
        ImageFont.truetype(io.BytesIO(data), 12)
    except (OSError, ValueError) as e:
        logger.debug(f"Using fallback face for {font_path}: {e}")
        return FontFace(path=font_path)

    try:
        units_per_em, ascent, descent, family = read_cell_metrics(data)
    except Exception as e:
        logger.debug(f"No cell metrics for {font_path}: {e}")
        return FontFace(path=font_path, data=data)

    return FontFace(
        path=font_path,
        data=data,
        units_per_em=units_per_em,
        cell_ascent=ascent,
        cell_descent=descent,
        family_name=family,
    )


def load_fallback_font(size: int) -> ImageFont.FreeTypeFont:
    """Returns Pillow's built-in sans-serif face at `size` pixels."""
    return ImageFont.load_default(size=size)


class FontCache:
    """A concurrent read-through cache of parsed font faces keyed by path.

    Sized Pillow fonts are cached separately for each thread, keyed by path
    and pixel size, so a worker reuses its `FreeTypeFont` objects across
    samples without sharing them with other threads.
    """

    def __init__(self):
        self._faces: Dict[str, FontFace] = {}
        self._lock = threading.Lock()
        self._local = threading.local()

    def __len__(self):
        return len(self._faces)

    def get_face(self, font_path) -> FontFace:
        key = str(font_path)
        face = self._faces.get(key)
        if face is not None:
            return face
        with self._lock:
            face = self._faces.get(key)
            if face is None:
                face = load_face(key)
                self._faces[key] = face
        return face

    def _thread_fonts(self) -> Dict[Tuple[str, int], LoadedFont]:
        fonts = getattr(self._local, "fonts", None)
        if fonts is None:
            fonts = self._local.fonts = {}
        return fonts

    def load_font(self, font_path, size: float) -> LoadedFont:
        """Returns a sized font for `font_path`, falling back silently.

        Args:
            font_path: The path of the font file.
            size: The font size in pixels; rounded to a whole pixel, min 1.

        Returns:
            LoadedFont: The sized font. If the file cannot be used, the font
            wraps the built-in fallback face at the same size.
        """
        size = max(1, int(round(size)))
        key = (str(font_path), size)
        fonts = self._thread_fonts()
        loaded = fonts.get(key)
        if loaded is None:
            loaded = fonts[key] = self._create_font(key[0], size)
        return loaded

    def _create_font(self, font_path: str, size: int) -> LoadedFont:
        face = self.get_face(font_path)
        if not face.is_fallback:
            try:
                return LoadedFont(ImageFont.truetype(io.BytesIO(face.data), size), size, face)
            except OSError as e:
                logger.debug(f"Using fallback face for {face.path} at size {size}: {e}")
                face = FontFace(path=face.path)
        return LoadedFont(load_fallback_font(size), size, face)
