"""Utility functions for the synthetic data generation pipeline.

This module provides helpers for loading the generation inputs (the text
corpus and the font files) and for formatting progress output.
"""

from pathlib import Path
from typing import Iterable, List, Optional

FONT_SUFFIXES = {".ttf", ".otf", ".ttc", ".woff"}
"""Font file extensions picked up when scanning a font folder (case-insensitive)."""


def load_strings(file_path) -> List[str]:
    """Loads the text corpus, one sample per non-blank line.

    Args:
        file_path (str or Path): The path to a UTF-8 text file.

    Returns:
        list[str]: The non-blank lines, without line terminators. A missing
        file yields an empty list.
    """
    if not file_path:
        return []
    path = Path(file_path)
    if not path.is_file():
        return []
    with path.open("r", encoding="utf-8") as f:
        lines = [line.rstrip("\r\n") for line in f]
    return [line for line in lines if line.strip()]


def find_font_files(folder_path) -> List[str]:
    """Recursively finds font files in a directory.

    Args:
        folder_path (str or Path): The directory to scan.

    Returns:
        list[str]: The sorted paths of every file whose extension is in
        `FONT_SUFFIXES`. A missing directory yields an empty list.
    """
    if not folder_path:
        return []
    root = Path(folder_path)
    if not root.is_dir():
        return []
    return sorted(str(p) for p in root.glob("**/*") if p.is_file() and p.suffix.lower() in FONT_SUFFIXES)


def list_usable_fonts(folder_path, enabled_fonts: Optional[Iterable] = None) -> List[str]:
    """Lists the fonts a job may render with.

    If `enabled_fonts` is non-empty, the usable fonts are the enabled entries
    whose files exist. Otherwise every font file found in `folder_path` is
    usable.

    Args:
        folder_path (str or Path): The font folder.
        enabled_fonts (Iterable[FontSetting], optional): An explicit subset.

    Returns:
        list[str]: Paths of the usable font files.
    """
    enabled_fonts = list(enabled_fonts or [])
    if enabled_fonts:
        return [f.file_path for f in enabled_fonts if f.is_enabled and Path(f.file_path).is_file()]
    return find_font_files(folder_path)


def format_duration(seconds: float) -> str:
    """Formats a duration as HH:MM:SS."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
