"""Tests for the settings schemas and their YAML persistence.

These tests check that settings documents round-trip through YAML, that
legacy and partial documents still load with defaults, and that batch
configurations are reset for a new run when they are reloaded.
"""

import tempfile
import unittest
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from ocr_synth.config import load_batch_config, load_settings, save_batch_config, save_settings
from ocr_synth.config.schemas import (
    BatchConfiguration,
    BatchJob,
    ColorSetting,
    DropShadowSettings,
    FontSetting,
    GenerationSettings,
    HorizontalAlignment,
    JobStatus,
    LinearGradientBackground,
    RangeOrFixed,
    SolidColorBackground,
)
from ocr_synth.env import RuntimeSettings
from ocr_synth.synthetic_data_generator.common.exceptions import SettingsLoadError


class TestSettingsPersistence(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write_yaml(self, data, name="settings.yaml"):
        path = self.tmp_path / name
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    def test_round_trip(self):
        settings = GenerationSettings(
            strings_file_path="corpus.txt",
            font_folder_path="fonts",
            enabled_fonts=(FontSetting(file_path="fonts/a.ttf", file_name="a.ttf"),),
            font_size=RangeOrFixed.between(18, 30),
            horizontal_alignment=HorizontalAlignment.CENTER,
            foreground_colors=(ColorSetting(r=10, g=20, b=30),),
            backgrounds=(
                SolidColorBackground(name="paper", color=ColorSetting(r=250, g=245, b=235)),
                LinearGradientBackground(angle_degrees=30),
            ),
            gaussian_noise=RangeOrFixed.between(0, 0.05),
            drop_shadow=DropShadowSettings(enabled=True, opacity=RangeOrFixed.of(0.3)),
        )
        path = self.tmp_path / "nested" / "settings.yaml"
        save_settings(settings, path)
        self.assertEqual(load_settings(path), settings)

    def test_defaults_for_missing_fields(self):
        settings = load_settings(self.write_yaml({"strings_file_path": "corpus.txt"}))
        self.assertEqual(settings.font_size, RangeOrFixed.of(24))
        self.assertEqual(settings.rescaled_height, RangeOrFixed.of(32))
        self.assertEqual(settings.jpg_quality, RangeOrFixed.of(95))
        self.assertEqual(settings.backgrounds, (SolidColorBackground(),))
        self.assertFalse(settings.drop_shadow.enabled)

    def test_empty_file_loads_defaults(self):
        path = self.tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        self.assertEqual(load_settings(path), GenerationSettings())

    def test_legacy_single_background(self):
        legacy = {"type": "linear_gradient", "angle_degrees": 45}
        settings = load_settings(self.write_yaml({"background": legacy}))
        self.assertEqual(len(settings.backgrounds), 1)
        self.assertIsInstance(settings.backgrounds[0], LinearGradientBackground)
        self.assertEqual(settings.backgrounds[0].angle_degrees, 45)

    def test_legacy_background_does_not_replace_list(self):
        data = {"background": {"type": "solid"}, "backgrounds": [{"type": "linear_gradient"}]}
        settings = load_settings(self.write_yaml(data))
        self.assertEqual(len(settings.backgrounds), 1)
        self.assertIsInstance(settings.backgrounds[0], LinearGradientBackground)

    def test_unknown_keys_ignored(self):
        settings = load_settings(self.write_yaml({"line_spacing": {"fixed": 3}, "font_size": {"fixed": 12}}))
        self.assertEqual(settings.font_size.fixed, 12)

    def test_missing_file(self):
        with self.assertRaises(SettingsLoadError):
            load_settings(self.tmp_path / "missing.yaml")

    def test_malformed_yaml(self):
        path = self.tmp_path / "bad.yaml"
        path.write_text("font_size: [unclosed", encoding="utf-8")
        with self.assertRaises(SettingsLoadError):
            load_settings(path)

    def test_invalid_values(self):
        with self.assertRaises(SettingsLoadError):
            load_settings(self.write_yaml({"foreground_colors": [{"r": 300}]}))
        with self.assertRaises(SettingsLoadError):
            load_settings(self.write_yaml({"backgrounds": [{"type": "radial"}]}))


def test_settings_are_frozen():
    settings = GenerationSettings()
    with pytest.raises(ValidationError):
        settings.font_size = RangeOrFixed.of(12)


def test_range_helpers():
    assert RangeOrFixed.of(3) == RangeOrFixed(use_range=False, fixed=3)
    assert RangeOrFixed.between(1, 2) == RangeOrFixed(use_range=True, min=1, max=2)


def test_job_subfolder_defaults_to_settings_stem():
    assert BatchJob(settings_file_path="configs/clean_text.yaml").subfolder_name == "clean_text"
    assert BatchJob(settings_file_path="configs/a.yaml", subfolder_name="custom").subfolder_name == "custom"


def test_batch_reload_resets_statuses(tmp_path):
    config = BatchConfiguration(
        output_folder="out",
        jobs=[
            BatchJob(settings_file_path="a.yaml", status=JobStatus.COMPLETED, progress_percent=100),
            BatchJob(settings_file_path="b.yaml", status=JobStatus.FAILED, status_message="Failed: boom"),
        ],
    )
    path = tmp_path / "batch.yaml"
    save_batch_config(config, path)

    reloaded = load_batch_config(path)
    assert [job.status for job in reloaded.jobs] == [JobStatus.PENDING, JobStatus.PENDING]
    assert [job.status_message for job in reloaded.jobs] == ["Previously completed", "Ready"]
    assert reloaded.jobs[0].progress_percent == 0

    raw = load_batch_config(path, reset_status=False)
    assert raw.jobs[0].status == JobStatus.COMPLETED
    assert raw.last_run_date == config.last_run_date


def test_invalid_batch_config(tmp_path):
    path = tmp_path / "batch.yaml"
    path.write_text(yaml.safe_dump({"jobs": [{"image_count": 5}]}), encoding="utf-8")
    with pytest.raises(SettingsLoadError):
        load_batch_config(path)


def test_remove_job():
    config = BatchConfiguration(jobs=[BatchJob(settings_file_path="a.yaml"), BatchJob(settings_file_path="b.yaml")])
    removed = config.remove_job(0)
    assert removed.settings_file_path == "a.yaml"
    assert len(config.jobs) == 1


def test_remove_running_job_refused():
    config = BatchConfiguration(jobs=[BatchJob(settings_file_path="a.yaml", status=JobStatus.RUNNING)])
    with pytest.raises(ValueError):
        config.remove_job(0)
    assert len(config.jobs) == 1


def test_runtime_settings_from_environment(monkeypatch):
    monkeypatch.setenv("OCR_SYNTH_MAX_THREADS", "8")
    monkeypatch.setenv("OCR_SYNTH_LOG_LEVEL", "DEBUG")
    runtime = RuntimeSettings()
    assert runtime.max_threads == 8
    assert runtime.log_level == "DEBUG"
    assert runtime.progress_interval == 100
