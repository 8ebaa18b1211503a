"""JPEG encoding of final rasters.

Batch generation writes the encoded bytes straight to disk. Previews decode
the bytes back into a raster so that the caller sees the real compression
artifacts.
"""

from pathlib import Path

import cv2
import numpy as np

from ocr_synth.config.schemas import GenerationSettings
from ocr_synth.synthetic_data_generator.common.exceptions import GenerationError
from ocr_synth.synthetic_data_generator.params import resolve


def resolve_quality(settings: GenerationSettings, rng) -> int:
    """Resolves the JPEG quality for one sample, clamped to 1-100."""
    return int(np.clip(int(resolve(settings.jpg_quality, rng)), 1, 100))


def encode_jpeg(image, quality):
    """Encodes an image as JPEG.

    Args:
        image (np.ndarray): The BGR image to encode.
        quality (int): The JPEG quality level (1-100).

    Returns:
        bytes: The encoded JPEG data.

    Raises:
        GenerationError: If OpenCV cannot encode the image.
    """
    ok, buffer = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise GenerationError("JPEG encoding failed")
    return buffer.tobytes()


def decode_jpeg(data):
    """Decodes JPEG bytes into a BGR image."""
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise GenerationError("JPEG decoding failed")
    return image


def apply_jpeg_compression(image, quality):
    """Applies JPEG compression artifacts through an encode/decode round trip."""
    return decode_jpeg(encode_jpeg(image, quality))


def save_jpeg(image, path, quality):
    """Encodes `image` and writes it to `path`."""
    Path(path).write_bytes(encode_jpeg(image, quality))
