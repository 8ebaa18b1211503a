"""Pydantic schemas for the generation settings and batch configuration.

This module defines the data structures consumed by the image synthesis
pipeline and the batch runner. Every tunable numeric parameter is a
`RangeOrFixed`, which either pins a value or describes a uniform sampling
interval that is resolved once per rendered sample.

`GenerationSettings` is frozen: the pipeline shares one instance read-only
across all worker threads, and any editing surface must hand over a new
instance (e.g. via `model_copy(update=...)`) instead of mutating it.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RangeOrFixed(BaseModel):
    """A numeric parameter that is either fixed or sampled from a range."""

    model_config = ConfigDict(frozen=True)

    use_range: bool = Field(False, description="Sample uniformly from [min, max) instead of using `fixed`.")
    fixed: float = Field(0.0, description="The value used when `use_range` is false.")
    min: float = Field(0.0, description="Lower bound of the sampling interval.")
    max: float = Field(1.0, description="Upper bound of the sampling interval.")

    @classmethod
    def of(cls, value: float) -> "RangeOrFixed":
        """Shorthand for a fixed parameter."""
        return cls(fixed=value)

    @classmethod
    def between(cls, low: float, high: float) -> "RangeOrFixed":
        """Shorthand for a ranged parameter."""
        return cls(use_range=True, min=low, max=high)


class ColorSetting(BaseModel):
    """An 8-bit RGBA color."""

    model_config = ConfigDict(frozen=True)

    r: int = Field(0, ge=0, le=255)
    g: int = Field(0, ge=0, le=255)
    b: int = Field(0, ge=0, le=255)
    a: int = Field(255, ge=0, le=255)

    def as_rgba(self) -> Tuple[int, int, int, int]:
        return self.r, self.g, self.b, self.a


WHITE = ColorSetting(r=255, g=255, b=255)
BLACK = ColorSetting(r=0, g=0, b=0)


class SolidColorBackground(BaseModel):
    """A background filled with a single color."""

    model_config = ConfigDict(frozen=True)

    type: Literal["solid"] = "solid"
    name: str = "Background"
    color: ColorSetting = WHITE


class LinearGradientBackground(BaseModel):
    """A background interpolated between two colors along an angled line."""

    model_config = ConfigDict(frozen=True)

    type: Literal["linear_gradient"] = "linear_gradient"
    name: str = "Background"
    start: ColorSetting = WHITE
    end: ColorSetting = ColorSetting(r=240, g=240, b=240)
    angle_degrees: float = 0.0


BackgroundDefinition = Annotated[
    Union[SolidColorBackground, LinearGradientBackground],
    Field(discriminator="type"),
]


class HorizontalAlignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VerticalAlignment(str, Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


class MarginSettings(BaseModel):
    """Per-side margins around the text block, in pixels."""

    model_config = ConfigDict(frozen=True)

    top: RangeOrFixed = RangeOrFixed.of(5)
    left: RangeOrFixed = RangeOrFixed.of(5)
    right: RangeOrFixed = RangeOrFixed.of(5)
    bottom: RangeOrFixed = RangeOrFixed.of(5)


class DropShadowSettings(BaseModel):
    """Configuration of the drop shadow drawn beneath the text."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    offset_x: RangeOrFixed = RangeOrFixed.of(2)
    offset_y: RangeOrFixed = RangeOrFixed.of(2)
    blur_radius: RangeOrFixed = RangeOrFixed.of(1)
    opacity: RangeOrFixed = RangeOrFixed.of(0.5)
    color: ColorSetting = BLACK


class FontSetting(BaseModel):
    """A font file explicitly enabled (or disabled) for generation."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    file_name: str = ""
    is_enabled: bool = True


class GenerationSettings(BaseModel):
    """All parameters consumed by the image synthesis pipeline.

    Attributes:
        strings_file_path: Path to the text corpus, one sample per line.
        font_folder_path: Directory scanned recursively for font files.
        enabled_fonts: If non-empty, restricts generation to these fonts.
        font_size: Font size in pixels.
        character_spacing: Extra spacing between glyphs, in pixels.
        foreground_colors: Candidate text colors; one is picked per sample.
        backgrounds: Candidate backgrounds; one is picked per sample.
        initial_height: Minimum canvas height before distortions.
        rescaled_height: Final image height after the rescale step.
        enable_jpg_artifacts: Whether previews go through a JPEG round trip.
        jpg_quality: JPEG quality (1-100) used for encoding.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    strings_file_path: str = ""
    font_folder_path: str = ""
    enabled_fonts: Tuple[FontSetting, ...] = ()

    font_size: RangeOrFixed = RangeOrFixed.of(24)
    character_spacing: RangeOrFixed = RangeOrFixed.of(0)
    horizontal_alignment: HorizontalAlignment = HorizontalAlignment.LEFT
    vertical_alignment: VerticalAlignment = VerticalAlignment.CENTER

    foreground_colors: Tuple[ColorSetting, ...] = ()
    backgrounds: Tuple[BackgroundDefinition, ...] = (SolidColorBackground(),)

    initial_height: RangeOrFixed = RangeOrFixed.of(64)
    rescaled_height: RangeOrFixed = RangeOrFixed.of(32)
    margins: MarginSettings = MarginSettings()

    blur_radius: RangeOrFixed = RangeOrFixed.of(0)
    warp_strength: RangeOrFixed = RangeOrFixed.of(0)
    skew_angle: RangeOrFixed = RangeOrFixed.of(0)
    rotation_angle: RangeOrFixed = RangeOrFixed.of(0)

    gaussian_noise: RangeOrFixed = RangeOrFixed.of(0)
    salt_pepper_noise: RangeOrFixed = RangeOrFixed.of(0)
    enable_jpg_artifacts: bool = False
    jpg_quality: RangeOrFixed = RangeOrFixed.of(95)

    drop_shadow: DropShadowSettings = DropShadowSettings()

    @model_validator(mode="before")
    @classmethod
    def migrate_single_background(cls, data: Any) -> Any:
        """Folds a legacy single `background` entry into `backgrounds`."""
        if isinstance(data, dict) and "background" in data:
            data = dict(data)
            legacy = data.pop("background")
            if legacy is not None and not data.get("backgrounds"):
                data["backgrounds"] = [legacy]
        return data


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BatchJob(BaseModel):
    """One settings file to generate into its own output subfolder.

    Only the batch runner mutates a job while it is running.
    """

    settings_file_path: str
    image_count: int = 1000
    subfolder_name: str = ""
    status: JobStatus = JobStatus.PENDING
    status_message: str = ""
    progress_percent: int = 0

    @model_validator(mode="after")
    def default_subfolder_name(self) -> "BatchJob":
        if not self.subfolder_name and self.settings_file_path:
            self.subfolder_name = Path(self.settings_file_path).stem
        return self


class BatchConfiguration(BaseModel):
    """A persisted list of batch jobs and the parameters they share."""

    output_folder: str = ""
    max_threads: int = 4
    jobs: List[BatchJob] = Field(default_factory=list)
    last_run_date: datetime = Field(default_factory=datetime.now)

    def remove_job(self, index: int) -> BatchJob:
        """Removes and returns the job at `index`.

        Raises:
            ValueError: If the job is currently running.
        """
        job = self.jobs[index]
        if job.status == JobStatus.RUNNING:
            raise ValueError(f"Cannot remove running job '{job.subfolder_name}'")
        return self.jobs.pop(index)
