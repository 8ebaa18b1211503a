"""Core component for generating one synthetic OCR sample.

This module defines the `ImageGenerator` class, which runs the per-sample
pipeline: composition of the text canvas, the distortion pipeline and the
resolution of the JPEG quality. One generator is shared by all worker
threads of a job.

Every sample draws from its own `numpy.random.Generator`, seeded once from
the generator's shared source under a lock. The per-sample generator is then
used without synchronization, so concurrent samples neither race on a
shared generator state nor serialize on a lock around every draw.
"""

import threading
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ocr_synth.config.schemas import GenerationSettings
from ocr_synth.synthetic_data_generator.composer import Composer
from ocr_synth.synthetic_data_generator.compression import apply_jpeg_compression, resolve_quality
from ocr_synth.synthetic_data_generator.fonts import FontCache
from ocr_synth.synthetic_data_generator.image_augmentations import apply_distortions


class ImageGenerator:
    """Generates synthetic text images from generation settings.

    Attributes:
        font_cache (FontCache): Parsed fonts shared by all samples.
        composer (Composer): Draws the background and text of a sample.
    """

    def __init__(self, font_cache: Optional[FontCache] = None, seed: Optional[int] = None):
        """Initializes the ImageGenerator.

        Args:
            font_cache: An existing font cache to share. A new one is created
                if omitted.
            seed: Seed of the shared random source, for reproducible runs.
        """
        self.font_cache = font_cache if font_cache is not None else FontCache()
        self.composer = Composer(self.font_cache)
        self._rng = np.random.default_rng(seed)
        self._rng_lock = threading.Lock()

    def spawn_rng(self) -> np.random.Generator:
        """Creates a private random generator for one unit of work."""
        with self._rng_lock:
            seed = int(self._rng.integers(0, 2**62))
        return np.random.default_rng(seed)

    def shuffled(self, items: Sequence) -> List:
        """Returns the items in a random order drawn from the shared source."""
        with self._rng_lock:
            order = self._rng.permutation(len(items))
        return [items[i] for i in order]

    def choice(self, items: Sequence):
        """Picks one item uniformly at random from the shared source."""
        with self._rng_lock:
            index = int(self._rng.integers(len(items)))
        return items[index]

    def generate_image(self, settings: GenerationSettings, text: str, font_path,
                       rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Renders and distorts one sample.

        Args:
            settings: The generation settings (read only).
            text: The string to render.
            font_path: The font file to render with.
            rng: The generator of this sample. A private one is spawned if
                omitted.

        Returns:
            np.ndarray: The final BGR image, before JPEG encoding.
        """
        if rng is None:
            rng = self.spawn_rng()
        canvas = self.composer(settings, text, font_path, rng)
        return apply_distortions(canvas, settings, rng)

    def process(self, settings: GenerationSettings, text: str, font_path) -> Tuple[np.ndarray, int]:
        """Generates one sample for writing to disk.

        Returns:
            A tuple containing:
                - np.ndarray: The final BGR image.
                - int: The JPEG quality to encode it with.
        """
        rng = self.spawn_rng()
        image = self.generate_image(settings, text, font_path, rng)
        return image, resolve_quality(settings, rng)

    def generate_preview(self, settings: GenerationSettings, text: str, font_path) -> np.ndarray:
        """Generates one sample for display.

        When JPEG artifacts are enabled, the image goes through an
        encode/decode round trip at the resolved quality so the preview shows
        real compression artifacts.
        """
        rng = self.spawn_rng()
        image = self.generate_image(settings, text, font_path, rng)
        if settings.enable_jpg_artifacts:
            return apply_jpeg_compression(image, resolve_quality(settings, rng))
        return image.copy()
