"""Sequential execution of a batch of generation jobs.

A batch is an ordered list of `BatchJob`s, each pointing to a settings file
and an image count. Jobs run one after another, each generating into its own
subfolder of the batch output folder with the full worker pool. Cancellation
is checked before each job and passed down into the running job; the job
that was interrupted is marked cancelled and the remaining jobs are left
pending. Completed jobs are never rolled back.
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ocr_synth.config import load_batch_config, load_settings, save_batch_config
from ocr_synth.config.schemas import BatchJob, JobStatus
from ocr_synth.env import RuntimeSettings
from ocr_synth.synthetic_data_generator.common.exceptions import ConfigurationError, SettingsLoadError
from ocr_synth.synthetic_data_generator.common.utils import format_duration
from ocr_synth.synthetic_data_generator.fonts import FontCache
from ocr_synth.synthetic_data_generator.generator import ImageGenerator
from ocr_synth.synthetic_data_generator.run_generate import GenerationStatus, generate_images


@dataclass
class BatchSummary:
    """The outcome of a batch run."""

    succeeded: int
    failed: int
    cancelled: bool
    elapsed: float


def find_existing_outputs(output_folder, jobs: Sequence[BatchJob]) -> List[str]:
    """Lists the output folders of a batch that already contain files.

    The main output folder is checked at its top level only; job subfolders
    are checked recursively.

    Args:
        output_folder (str or Path): The batch output folder.
        jobs: The jobs whose subfolders are checked.

    Returns:
        list[str]: Human-readable descriptions of the non-empty folders.
    """
    output_folder = Path(output_folder)
    found = []
    if output_folder.is_dir() and any(p.is_file() for p in output_folder.iterdir()):
        found.append("main output folder")
    for job in jobs:
        job_folder = output_folder / job.subfolder_name
        if job_folder.is_dir() and any(p.is_file() for p in job_folder.rglob("*")):
            found.append(f"'{job.subfolder_name}' subfolder")
    return found


class BatchRunner:
    """Runs batch jobs sequentially with a shared worker pool size.

    Attributes:
        output_folder (Path): The folder receiving one subfolder per job.
        max_threads (int): The worker pool size used for every job.
        generator (ImageGenerator, optional): A generator shared by every job.
            If omitted, each job gets its own generator over a shared font
            cache.
        seed (int, optional): Base seed; job `i` is seeded with `seed + i`.
            Ignored when `generator` is given.
    """

    def __init__(self, output_folder, max_threads: int, generator: Optional[ImageGenerator] = None,
                 seed: Optional[int] = None, progress_interval: int = 100, show_progress: bool = False):
        self.output_folder = Path(output_folder)
        self.max_threads = max_threads
        self.generator = generator
        self.font_cache = generator.font_cache if generator is not None else FontCache()
        self.seed = seed
        self.progress_interval = progress_interval
        self.show_progress = show_progress

    def run(self, jobs: Sequence[BatchJob], cancel_event: Optional[threading.Event] = None,
            on_update: Optional[Callable[[BatchJob], None]] = None) -> BatchSummary:
        """Runs every job in order and updates their status in place.

        Args:
            jobs: The jobs to run. Their status, message and progress are
                updated as they run.
            cancel_event: When set, the running job stops admitting samples
                and no further job is started.
            on_update: Called with a job whenever its state changes.

        Returns:
            BatchSummary: Counts of succeeded and failed jobs.
        """
        if self.max_threads <= 0:
            raise ConfigurationError(f"Thread count must be positive, got {self.max_threads}")
        self.output_folder.mkdir(parents=True, exist_ok=True)

        def update(job):
            if on_update is not None:
                on_update(job)

        for job in jobs:
            job.status = JobStatus.PENDING
            job.progress_percent = 0
            job.status_message = "Waiting..."
            update(job)

        start_time = time.monotonic()
        cancelled = False
        logger.info(f"Starting generation of {len(jobs)} jobs...")

        for position, job in enumerate(jobs):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break

            job.status = JobStatus.RUNNING
            job.status_message = "Loading settings..."
            update(job)

            try:
                settings = load_settings(job.settings_file_path)
            except SettingsLoadError as e:
                logger.error(f"Job '{job.subfolder_name}': {e}")
                job.status = JobStatus.FAILED
                job.status_message = "Failed to load settings"
                update(job)
                continue

            job.status_message = "Generating images..."
            update(job)

            def on_progress(status: GenerationStatus, job=job):
                if cancel_event is not None and cancel_event.is_set():
                    return
                job.status_message = status.message
                job.progress_percent = status.percent
                update(job)

            generator = self.generator
            if generator is None:
                seed = None if self.seed is None else self.seed + position
                generator = ImageGenerator(self.font_cache, seed=seed)
            try:
                result = generate_images(
                    settings,
                    self.output_folder / job.subfolder_name,
                    image_count=job.image_count,
                    max_threads=self.max_threads,
                    progress_callback=on_progress,
                    cancel_event=cancel_event,
                    generator=generator,
                    progress_interval=self.progress_interval,
                    show_progress=self.show_progress,
                )
            except Exception as e:
                logger.error(f"Job '{job.subfolder_name}' failed: {e}")
                job.status = JobStatus.FAILED
                job.status_message = f"Failed: {e}"
                update(job)
                continue

            if result.cancelled:
                job.status = JobStatus.CANCELLED
                job.status_message = "Cancelled"
                update(job)
                cancelled = True
                break

            job.status = JobStatus.COMPLETED
            job.progress_percent = 100
            job.status_message = f"Completed - {job.image_count} images generated"
            update(job)

            done = position + 1
            elapsed = time.monotonic() - start_time
            remaining = len(jobs) - done
            logger.info(f"Jobs: {done}/{len(jobs)} processed, ETA: {format_duration(remaining * elapsed / done)}")

        elapsed = time.monotonic() - start_time
        summary = BatchSummary(
            succeeded=sum(1 for j in jobs if j.status == JobStatus.COMPLETED),
            failed=sum(1 for j in jobs if j.status == JobStatus.FAILED),
            cancelled=cancelled,
            elapsed=elapsed,
        )
        if cancelled:
            logger.info("Generation cancelled")
        logger.info(
            f"Generation complete: {summary.succeeded} successful, {summary.failed} failed "
            f"(total time {format_duration(elapsed)})"
        )
        return summary


def run_batch(config_path, overwrite=False, max_threads=None, seed=None,
              cancel_event: Optional[threading.Event] = None) -> BatchSummary:
    """Runs a saved batch configuration and saves the statuses back.

    Args:
        config_path (str or Path): The YAML batch configuration.
        overwrite (bool): Proceed even if output folders already contain files.
        max_threads (int, optional): Overrides the configured thread count.
        seed (int, optional): Base seed for reproducible runs.
        cancel_event: Cooperative cancellation signal.

    Returns:
        BatchSummary: The outcome of the run.

    Raises:
        FileExistsError: If output folders contain files and `overwrite` is
            not set.
    """
    runtime = RuntimeSettings()
    config = load_batch_config(config_path)
    output_folder = config.output_folder or "."

    existing = find_existing_outputs(output_folder, config.jobs)
    if existing:
        message = f"Existing files detected in: {', '.join(existing)}"
        if not overwrite:
            raise FileExistsError(f"{message}. Pass overwrite=True to continue.")
        logger.warning(f"{message}; files may be overwritten")

    runner = BatchRunner(
        output_folder,
        max_threads=max_threads if max_threads is not None else config.max_threads,
        seed=seed,
        progress_interval=runtime.progress_interval,
        show_progress=runtime.show_progress,
    )
    try:
        return runner.run(config.jobs, cancel_event=cancel_event)
    finally:
        config.last_run_date = datetime.now()
        save_batch_config(config, config_path)
