import sys
import threading
from pathlib import Path

import cv2
import fire
from loguru import logger
from tqdm import tqdm

from ocr_synth.config import load_settings
from ocr_synth.env import FONTS_ROOT, OUTPUT_ROOT, RuntimeSettings
from ocr_synth.synthetic_data_generator.batch import run_batch
from ocr_synth.synthetic_data_generator.common.exceptions import GenerationError
from ocr_synth.synthetic_data_generator.common.utils import find_font_files, list_usable_fonts, load_strings
from ocr_synth.synthetic_data_generator.fonts import read_cell_metrics
from ocr_synth.synthetic_data_generator.generator import ImageGenerator
from ocr_synth.synthetic_data_generator.run_generate import run as run_generate


def configure_logging(level="INFO"):
    """Routes loguru output through tqdm so log lines don't break progress bars."""
    logger.remove()
    logger.add(lambda msg: tqdm.write(msg, end="", file=sys.stderr), level=level.upper(), colorize=True)


def generate(settings_path, output_path, image_count=1000, max_threads=None, seed=None):
    """Generates one dataset of images and labels from a settings file."""
    result = run_generate(settings_path, output_path, image_count=image_count, max_threads=max_threads, seed=seed)
    return f"{result.completed} generated, {result.failed} failed"


def preview(settings_path, output_path=None, text=None, font_path=None, seed=None):
    """Renders one sample and writes it as a PNG.

    Args:
        settings_path (str): Path to a YAML settings file.
        output_path (str, optional): Where to write the preview image.
            Defaults to `preview.png` in the default output directory.
        text (str, optional): The text to render. Defaults to the first line
            of the corpus.
        font_path (str, optional): The font to render with. Defaults to the
            first usable font; the built-in face is used if there is none.
        seed (int, optional): Seed for a reproducible preview.
    """
    settings = load_settings(settings_path)
    if text is None:
        strings = load_strings(settings.strings_file_path)
        text = strings[0] if strings else "Sample Text"
    if font_path is None:
        fonts = list_usable_fonts(settings.font_folder_path, settings.enabled_fonts)
        font_path = fonts[0] if fonts else ""
    if output_path is None:
        output_path = OUTPUT_ROOT / "preview.png"
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    image = ImageGenerator(seed=seed).generate_preview(settings, str(text), font_path)
    if not cv2.imwrite(str(output_path), image):
        raise GenerationError(f"Cannot write preview to '{output_path}'")
    logger.info(f"Preview of '{text}' written to {output_path}")
    return str(output_path)


def batch(config_path, overwrite=False, max_threads=None, seed=None):
    """Runs every job of a batch configuration in order.

    Ctrl+C cancels the batch: samples in flight finish, the running job is
    marked cancelled and the remaining jobs are not started.
    """
    cancel_event = threading.Event()
    result = {}

    def target():
        try:
            result["summary"] = run_batch(config_path, overwrite=overwrite, max_threads=max_threads, seed=seed,
                                          cancel_event=cancel_event)
        except Exception as e:
            result["error"] = e

    worker = threading.Thread(target=target, name="ocr-synth-batch")
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        logger.warning("Cancelling batch...")
        cancel_event.set()
        worker.join()

    if "error" in result:
        raise result["error"]
    summary = result["summary"]
    return f"{summary.succeeded} successful, {summary.failed} failed"


def scan_fonts(font_folder=FONTS_ROOT):
    """Lists the font files found in a folder with their family names."""
    fonts = find_font_files(font_folder)
    for path in fonts:
        try:
            with open(path, "rb") as f:
                family = read_cell_metrics(f.read())[3]
        except Exception as e:
            logger.warning(f"Cannot read {path}: {e}")
            continue
        print(f"{path}\t{family}")
    logger.info(f"Found {len(fonts)} font files in {font_folder}")


def main():
    """The main entry point for the command-line interface.

    Exposes the `generate`, `preview`, `batch` and `scan-fonts` commands
    through `fire`. Configuration problems are reported as a single error
    line and a non-zero exit code instead of a traceback.
    """
    configure_logging(RuntimeSettings().log_level)
    try:
        fire.Fire({
            "generate": generate,
            "preview": preview,
            "batch": batch,
            "scan-fonts": scan_fonts,
        })
    except (GenerationError, FileExistsError) as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
