"""This file defines the environment paths and runtime defaults.

This module centralizes the default directories used by the command-line entry
points and the process-level defaults that can be overridden through
environment variables (prefixed with `OCR_SYNTH_`) or a `.env` file. All
paths are constructed relative to the project's root directory.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


ROOT_DIR = Path(__file__).parent.parent
"""The root directory of the project."""

FONTS_ROOT = ROOT_DIR / "fonts"
"""The default directory scanned for font files."""

OUTPUT_ROOT = ROOT_DIR / "out"
"""The default directory where generated datasets are written."""

LABELS_FILENAME = "labels.txt"
"""The name of the label file written next to the generated images."""


class RuntimeSettings(BaseSettings):
    """Process-level defaults for the generator.

    Values are read from the environment (e.g. `OCR_SYNTH_MAX_THREADS=8`) or
    from a `.env` file, and fall back to the defaults declared below.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="OCR_SYNTH_",
    )

    max_threads: int = Field(4, description="Default size of the worker pool.")
    log_level: str = Field("INFO", description="Minimum level emitted by the console sink.")
    progress_interval: int = Field(100, description="Emit a progress line every N completions.")
    show_progress: bool = Field(True, description="Whether to display a tqdm progress bar.")
