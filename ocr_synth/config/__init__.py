"""Handles loading and saving of generation settings and batch configurations.

Both documents are stored as YAML and validated with the Pydantic schemas
defined in `schemas.py`. Saving dumps the models in JSON mode so that enums
and datetimes are written as plain strings, which makes every document
round-trip losslessly through `load_*` and `save_*`.
"""

from pathlib import Path
from typing import Union

import yaml
from pydantic import ValidationError

from ocr_synth.config.schemas import (
    BatchConfiguration,
    GenerationSettings,
    JobStatus,
)
from ocr_synth.synthetic_data_generator.common.exceptions import SettingsLoadError

PathLike = Union[str, Path]


def _read_yaml(path: PathLike) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise SettingsLoadError(f"Cannot read '{path}': {e}") from e
    return data or {}


def _write_yaml(data: dict, path: PathLike) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)


def load_settings(path: PathLike) -> GenerationSettings:
    """Loads a `GenerationSettings` document from a YAML file.

    Args:
        path: The path to the settings file.

    Returns:
        The validated, immutable settings.

    Raises:
        SettingsLoadError: If the file cannot be read or does not validate.
    """
    data = _read_yaml(path)
    try:
        return GenerationSettings.model_validate(data)
    except ValidationError as e:
        raise SettingsLoadError(f"Invalid settings in '{path}': {e}") from e


def save_settings(settings: GenerationSettings, path: PathLike) -> None:
    """Writes `settings` to `path` as YAML."""
    _write_yaml(settings.model_dump(mode="json"), path)


def load_batch_config(path: PathLike, reset_status: bool = True) -> BatchConfiguration:
    """Loads a batch configuration from a YAML file.

    When `reset_status` is set, every job is put back to `pending` so the
    configuration can be run again. The message of a job remembers whether
    it completed on the previous run.

    Args:
        path: The path to the batch configuration file.
        reset_status: Whether to reset job statuses for a new run.

    Returns:
        The validated batch configuration.

    Raises:
        SettingsLoadError: If the file cannot be read or does not validate.
    """
    data = _read_yaml(path)
    try:
        config = BatchConfiguration.model_validate(data)
    except ValidationError as e:
        raise SettingsLoadError(f"Invalid batch configuration in '{path}': {e}") from e

    if reset_status:
        for job in config.jobs:
            previous = job.status
            job.status = JobStatus.PENDING
            job.progress_percent = 0
            job.status_message = "Previously completed" if previous == JobStatus.COMPLETED else "Ready"
    return config


def save_batch_config(config: BatchConfiguration, path: PathLike) -> None:
    """Writes a batch configuration to `path` as YAML."""
    _write_yaml(config.model_dump(mode="json"), path)
