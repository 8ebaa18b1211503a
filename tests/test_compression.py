"""Tests for JPEG encoding and quality resolution."""

import numpy as np
import pytest
from unittest.mock import patch

from ocr_synth.config.schemas import GenerationSettings, RangeOrFixed
from ocr_synth.synthetic_data_generator.common.exceptions import GenerationError
from ocr_synth.synthetic_data_generator.compression import (
    apply_jpeg_compression,
    decode_jpeg,
    encode_jpeg,
    resolve_quality,
    save_jpeg,
)


@pytest.fixture
def noisy_image():
    return np.random.default_rng(0).integers(0, 256, size=(32, 48, 3), dtype=np.uint8)


def test_encode_produces_jpeg(noisy_image):
    data = encode_jpeg(noisy_image, 90)
    assert data[:2] == b"\xff\xd8"
    assert decode_jpeg(data).shape == noisy_image.shape


def test_lower_quality_is_smaller(noisy_image):
    assert len(encode_jpeg(noisy_image, 10)) < len(encode_jpeg(noisy_image, 95))


def test_round_trip_adds_artifacts(noisy_image):
    result = apply_jpeg_compression(noisy_image, 20)
    assert result.shape == noisy_image.shape
    assert not np.array_equal(result, noisy_image)


def test_encode_failure_raises():
    with patch("ocr_synth.synthetic_data_generator.compression.cv2.imencode", return_value=(False, None)):
        with pytest.raises(GenerationError):
            encode_jpeg(np.zeros((4, 4, 3), dtype=np.uint8), 90)


def test_decode_invalid_bytes_raises():
    with pytest.raises(GenerationError):
        decode_jpeg(b"not a jpeg")


def test_save_jpeg_writes_file(tmp_path, noisy_image):
    path = tmp_path / "0.jpg"
    save_jpeg(noisy_image, path, 80)
    assert decode_jpeg(path.read_bytes()).shape == noisy_image.shape


@pytest.mark.parametrize("quality, expected", [(95, 95), (150, 100), (0, 1), (-20, 1), (55.7, 55)])
def test_resolve_quality_clamps(quality, expected):
    settings = GenerationSettings(jpg_quality=RangeOrFixed.of(quality))
    assert resolve_quality(settings, np.random.default_rng(0)) == expected


def test_resolve_quality_range():
    settings = GenerationSettings(jpg_quality=RangeOrFixed.between(60, 90))
    rng = np.random.default_rng(0)
    qualities = [resolve_quality(settings, rng) for _ in range(200)]
    assert all(60 <= q < 90 for q in qualities)
