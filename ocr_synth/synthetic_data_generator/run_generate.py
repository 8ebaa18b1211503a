"""Multi-threaded generation of one dataset.

`generate_images` drives `image_count` independent samples through the
generation pipeline on a bounded worker pool and streams the results to
disk: every sample is written as `<index>.jpg` as soon as it is ready, and a
line `"<index>.jpg <text>"` is appended to `labels.txt`. A failed sample
writes `"<index>.jpg [ERROR: <message>]"` instead, so label lines always
line up with image indices.

Concurrency is bounded by an admission gate (a semaphore sized to
`max_threads`): a slot is taken before a sample is submitted and released
when the sample completes or fails. Cancellation is cooperative and is
checked between submissions; samples already in flight run to completion.
"""

import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

import fire
from loguru import logger
from tqdm import tqdm

from ocr_synth.config import load_settings
from ocr_synth.config.schemas import GenerationSettings
from ocr_synth.env import LABELS_FILENAME, RuntimeSettings
from ocr_synth.synthetic_data_generator.common.exceptions import ConfigurationError
from ocr_synth.synthetic_data_generator.common.utils import format_duration, list_usable_fonts, load_strings
from ocr_synth.synthetic_data_generator.compression import save_jpeg
from ocr_synth.synthetic_data_generator.generator import ImageGenerator

GATE_POLL_SECS = 0.1


@dataclass
class GenerationStatus:
    """A progress report emitted while a dataset is generated."""

    message: str
    completed: int
    failed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return int(100 * self.completed / self.total)


@dataclass
class GenerationResult:
    """The outcome of one `generate_images` call.

    Attributes:
        total: The number of samples requested.
        completed: Samples written successfully.
        failed: Samples that raised and were recorded as error labels.
        skipped: Samples never started because of cancellation.
        cancelled: Whether the run was cancelled.
        elapsed: Wall-clock duration in seconds.
    """

    total: int
    completed: int
    failed: int
    skipped: int
    cancelled: bool
    elapsed: float


class SourceQueue:
    """Hands out items without repetition, then at random with replacement.

    The items are shuffled into a thread-safe queue up front. Concurrent
    callers dequeue distinct items until the queue is drained; after that
    every call picks uniformly at random from the full list.
    """

    def __init__(self, items: Sequence, generator: ImageGenerator):
        self._items = list(items)
        self._generator = generator
        self._queue = queue.SimpleQueue()
        for item in generator.shuffled(self._items):
            self._queue.put(item)

    def next(self):
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return self._generator.choice(self._items)


def _acquire_slot(gate: threading.Semaphore, cancel_event: Optional[threading.Event]) -> bool:
    """Blocks until the gate admits one more sample; False if cancelled."""
    if cancel_event is None:
        gate.acquire()
        return True
    while not gate.acquire(timeout=GATE_POLL_SECS):
        if cancel_event.is_set():
            return False
    if cancel_event.is_set():
        gate.release()
        return False
    return True


def generate_images(
    settings: GenerationSettings,
    output_path,
    image_count: int,
    max_threads: int,
    progress_callback: Optional[Callable[[GenerationStatus], None]] = None,
    cancel_event: Optional[threading.Event] = None,
    generator: Optional[ImageGenerator] = None,
    progress_interval: int = 100,
    show_progress: bool = False,
) -> GenerationResult:
    """Generates a dataset of images and labels into `output_path`.

    The text corpus and the font list are loaded first; if either is empty,
    or if `image_count` or `max_threads` is not positive, a
    `ConfigurationError` is raised before anything is written.

    Args:
        settings: The generation settings, shared read-only by all workers.
        output_path (str or Path): The directory receiving the images and
            `labels.txt`. Created if missing.
        image_count: The number of samples to generate.
        max_threads: The maximum number of samples in flight.
        progress_callback: Called with a `GenerationStatus` every
            `progress_interval` completions, on the last completion, on each
            failure and at the end of the run. Called from worker threads.
        cancel_event: When set, samples not yet started are skipped.
        generator: The `ImageGenerator` to use. A new one is created if
            omitted.
        progress_interval: The number of completions between progress reports.
        show_progress: Whether to display a tqdm progress bar.

    Returns:
        GenerationResult: The counters of the run.

    Raises:
        ConfigurationError: If the job cannot start.
    """
    image_count = int(image_count)
    max_threads = int(max_threads)
    progress_interval = max(1, int(progress_interval))
    if image_count <= 0:
        raise ConfigurationError(f"Image count must be positive, got {image_count}")
    if max_threads <= 0:
        raise ConfigurationError(f"Thread count must be positive, got {max_threads}")

    lock = threading.Lock()
    counters = {"completed": 0, "failed": 0}

    def notify(message):
        logger.info(message)
        if progress_callback is not None:
            with lock:
                completed, failed = counters["completed"], counters["failed"]
            progress_callback(GenerationStatus(message, completed, failed, image_count))

    notify("Loading strings and fonts...")
    strings = load_strings(settings.strings_file_path)
    fonts = list_usable_fonts(settings.font_folder_path, settings.enabled_fonts)
    if not strings:
        raise ConfigurationError(f"No strings loaded from file '{settings.strings_file_path}'")
    if not fonts:
        raise ConfigurationError(f"No fonts found in folder '{settings.font_folder_path}'")
    logger.info(f"Loaded {len(strings)} strings and {len(fonts)} fonts")

    output_path = Path(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    if generator is None:
        generator = ImageGenerator()
    texts = SourceQueue(strings, generator)
    font_paths = SourceQueue(fonts, generator)

    gate = threading.BoundedSemaphore(max_threads)
    label_lock = threading.Lock()
    start_time = time.monotonic()

    with open(output_path / LABELS_FILENAME, "w", encoding="utf-8", newline="\n") as labels_file, \
            tqdm(total=image_count, desc=f"Generating {output_path.name}", disable=not show_progress) as pbar:

        def write_label(line):
            with label_lock:
                labels_file.write(line + "\n")
                labels_file.flush()

        def worker_fn(index):
            try:
                text = texts.next()
                font_path = font_paths.next()
                image, quality = generator.process(settings, text, font_path)
                image_name = f"{index}.jpg"
                save_jpeg(image, output_path / image_name, quality)
                write_label(f"{image_name} {text}")
            except Exception as e:
                with lock:
                    counters["failed"] += 1
                    pbar.update(1)
                # Keep numbering aligned with the image files.
                message = " ".join(str(e).splitlines())
                write_label(f"{index}.jpg [ERROR: {message}]")
                logger.warning(f"Failed to generate image {index}: {e}")
                if progress_callback is not None:
                    notify(f"Failed to generate image {index}: {e}")
                return False
            finally:
                gate.release()

            with lock:
                counters["completed"] += 1
                completed, failed = counters["completed"], counters["failed"]
                pbar.update(1)

            if completed % progress_interval == 0 or completed == image_count:
                elapsed = time.monotonic() - start_time
                rate = completed / elapsed if elapsed > 0 else float(completed)
                eta = (image_count - completed) / max(rate, 0.1)
                notify(
                    f"Generated {completed}/{image_count} images "
                    f"({rate:.1f}/sec, ETA: {format_duration(eta)}, Failed: {failed})"
                )
            return True

        futures = []
        with ThreadPoolExecutor(max_workers=max_threads, thread_name_prefix="ocr-synth") as executor:
            for index in range(image_count):
                if not _acquire_slot(gate, cancel_event):
                    break
                futures.append(executor.submit(worker_fn, index))
            wait(futures)

    # Surface errors that escaped a worker, e.g. a failing label write.
    for future in futures:
        future.result()

    elapsed = time.monotonic() - start_time
    cancelled = len(futures) < image_count
    result = GenerationResult(
        total=image_count,
        completed=counters["completed"],
        failed=counters["failed"],
        skipped=image_count - len(futures),
        cancelled=cancelled,
        elapsed=elapsed,
    )

    if cancelled:
        notify(
            f"Generation cancelled after {result.completed}/{image_count} images "
            f"in {format_duration(elapsed)} ({result.failed} failed, {result.skipped} not started)"
        )
    else:
        notify(
            f"Generation complete! {result.completed}/{image_count} images generated "
            f"in {format_duration(elapsed)} ({result.failed} failed)"
        )
    return result


def run(settings_path, output_path, image_count=1000, max_threads=None, seed=None):
    """Generates one dataset from a saved settings file.

    Args:
        settings_path (str): Path to a YAML settings file.
        output_path (str): Directory receiving the images and `labels.txt`.
        image_count (int, optional): Number of samples. Defaults to 1000.
        max_threads (int, optional): Size of the worker pool. Defaults to
            the `OCR_SYNTH_MAX_THREADS` runtime setting.
        seed (int, optional): Seed for a reproducible run.

    Returns:
        GenerationResult: The counters of the run.
    """
    runtime = RuntimeSettings()
    settings = load_settings(settings_path)
    return generate_images(
        settings,
        output_path,
        image_count=image_count,
        max_threads=max_threads if max_threads is not None else runtime.max_threads,
        generator=ImageGenerator(seed=seed),
        progress_interval=runtime.progress_interval,
        show_progress=runtime.show_progress,
    )


if __name__ == "__main__":
    fire.Fire(run)
