"""The ocr_synth package generates synthetic training data for OCR models.

Each sample is a line of text rendered with a randomly chosen font onto a
randomly chosen background, distorted with geometric and photometric noise,
and saved as a JPEG next to a `labels.txt` ground-truth file. The main entry
points are the `ImageGenerator` class, which produces one sample, and
`generate_images`, which produces a whole dataset on a worker pool.

Example:
    >>> from ocr_synth import ImageGenerator, generate_images, load_settings
    >>> settings = load_settings('settings.yaml')
    >>> result = generate_images(settings, 'out/dataset', image_count=1000, max_threads=8)
    >>> print(result.completed, result.failed)
"""

from ._version import __version__ as __version__
from ocr_synth.config import load_settings as load_settings
from ocr_synth.config.schemas import GenerationSettings as GenerationSettings
from ocr_synth.synthetic_data_generator.generator import ImageGenerator as ImageGenerator
from ocr_synth.synthetic_data_generator.run_generate import generate_images as generate_images
