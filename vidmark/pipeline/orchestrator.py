"""Batch orchestrator for MP4 conversion.

Expands the input pattern, classifies matches, plans one WorkItem per eligible video and runs
each item's backup → encode pipeline on a fixed-size worker pool. Per-file failures are caught
at the unit boundary and turned into outcomes; only configuration problems abort a run.

Key responsibilities:
- Validate startup preconditions (output directory, watermark file, input pattern)
- Reject items whose output would overwrite the input or collide with another input's names
- Bound concurrency to config.max_concurrency workers
- Aggregate outcomes into a BatchSummary on the calling thread (single owner of the counters)
- Emit events for console reporting (JobStarted, JobCompleted, JobFailed, ...)
"""

import concurrent.futures
import logging
import stat
import threading
import time
from pathlib import Path
from typing import Dict, List, Tuple
from vidmark.config.models import BatchConfig
from vidmark.domain.errors import BackupIOError, ConfigError, EncodeError, PathCollisionError, PerFileError, StatError
from vidmark.domain.events import BatchFinished, DiscoveryFinished, FileSkipped, JobCompleted, JobFailed, JobStarted
from vidmark.domain.models import BatchSummary, ConversionOutcome, OutcomeStatus, WorkItem
from vidmark.infrastructure.backup import BackupService
from vidmark.infrastructure.event_bus import EventBus
from vidmark.infrastructure.ffmpeg import FFmpegAdapter
from vidmark.infrastructure.file_scanner import FileScanner, is_video


class Orchestrator:
    """Conversion pipeline orchestrator.

    Args:
        config: Frozen BatchConfig shared read-only with every worker.
        event_bus: EventBus for publishing job lifecycle events.
        file_scanner: FileScanner expanding the input pattern.
        backup_service: BackupService copying originals before encoding.
        ffmpeg_adapter: FFmpegAdapter running the external encoder.
    """

    def __init__(
        self,
        config: BatchConfig,
        event_bus: EventBus,
        file_scanner: FileScanner,
        backup_service: BackupService,
        ffmpeg_adapter: FFmpegAdapter,
    ):
        self.config = config
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.backup_service = backup_service
        self.ffmpeg_adapter = ffmpeg_adapter
        self.logger = logging.getLogger(__name__)

        self._shutdown_event = threading.Event()  # Signal workers to stop

    def _prepare_output_dir(self) -> None:
        output_dir = self.config.output_dir
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create output directory {output_dir}: {e}") from e
        if not output_dir.is_dir():
            raise ConfigError(f"Output path is not a directory: {output_dir}")

        watermark = self.config.watermark_path
        if watermark is not None and not watermark.is_file():
            raise ConfigError(f"Watermark image not found: {watermark}")

    def _output_path_for(self, input_path: Path) -> Path:
        return self.config.output_dir / f"{input_path.stem}.mp4"

    @staticmethod
    def _same_path(a: Path, b: Path) -> bool:
        if a == b:
            return True
        try:
            return a.resolve() == b.resolve()
        except OSError:
            return False

    @staticmethod
    def _path_key(path: Path) -> str:
        try:
            path = path.resolve()
        except OSError:
            path = path.absolute()
        return str(path).lower()

    def _skip(self, path: Path, reason: str) -> ConversionOutcome:
        self.logger.info(f"Skipping {path}: {reason}")
        self.event_bus.publish(FileSkipped(path=path, reason=reason))
        return ConversionOutcome(path=path, status=OutcomeStatus.SKIPPED, error_message=reason)

    def _reject(self, path: Path, error: PerFileError) -> ConversionOutcome:
        self.logger.error(f"Rejected {path}: {error.message}")
        return ConversionOutcome(path=path, status=OutcomeStatus.REJECTED, error_message=error.message)

    def _plan(self, matches: List[Path]) -> Tuple[List[WorkItem], List[ConversionOutcome]]:
        """Turns pattern matches into WorkItems; returns (items, outcomes decided without running)."""
        items: List[WorkItem] = []
        decided: List[ConversionOutcome] = []
        claimed_outputs: Dict[str, Path] = {}
        claimed_backups: Dict[str, Path] = {}
        # Every match, eligible or not, is a source that no write may land on
        matched: Dict[str, Path] = {self._path_key(p): p for p in matches}

        for input_path in matches:
            if not is_video(input_path):
                decided.append(self._skip(input_path, "not a video file"))
                continue

            try:
                st = input_path.stat()
            except OSError as e:
                decided.append(self._reject(input_path, StatError(input_path, f"cannot stat file: {e}")))
                continue
            if stat.S_ISDIR(st.st_mode):
                decided.append(self._skip(input_path, "directory"))
                continue
            if not stat.S_ISREG(st.st_mode):
                decided.append(self._skip(input_path, "not a regular file"))
                continue

            output_path = self._output_path_for(input_path)
            if self._same_path(output_path, input_path):
                decided.append(self._reject(
                    input_path, PathCollisionError(input_path, "output path is the same as the input path")))
                continue
            victim = matched.get(self._path_key(output_path))
            if victim is not None:
                decided.append(self._reject(
                    input_path, PathCollisionError(input_path, f"output {output_path} would overwrite input {victim}")))
                continue
            backup_path = self.config.backup_dir / input_path.name
            victim = matched.get(self._path_key(backup_path))
            if victim is not None and not self._same_path(victim, input_path):
                decided.append(self._reject(
                    input_path, PathCollisionError(input_path, f"backup {backup_path} would overwrite input {victim}")))
                continue

            # Names are compared case-insensitively so case-folding filesystems cannot clobber either
            output_key = output_path.name.lower()
            backup_key = input_path.name.lower()
            if output_key in claimed_outputs:
                decided.append(self._reject(input_path, PathCollisionError(
                    input_path, f"output {output_path.name} already claimed by {claimed_outputs[output_key]}")))
                continue
            if backup_key in claimed_backups:
                decided.append(self._reject(input_path, PathCollisionError(
                    input_path, f"backup name {input_path.name} already claimed by {claimed_backups[backup_key]}")))
                continue
            claimed_outputs[output_key] = input_path
            claimed_backups[backup_key] = input_path

            items.append(WorkItem(input_path=input_path, output_path=output_path, file_size=st.st_size))

        return items, decided

    def _process_item(self, item: WorkItem) -> ConversionOutcome:
        """Runs backup → encode for one item. Never raises for per-file failures."""
        filename = item.input_path.name
        start_time = time.monotonic()

        if self._shutdown_event.is_set():
            return ConversionOutcome(path=item.input_path, status=OutcomeStatus.SKIPPED, error_message="batch interrupted")

        if self.config.debug:
            self.logger.debug(f"UNIT_START: {filename} (thread {threading.get_ident()}, size={item.file_size})")
        self.event_bus.publish(JobStarted(item=item))

        try:
            self.backup_service.backup(item.input_path, self.config.backup_dir)
        except BackupIOError as e:
            self.logger.error(f"Backup failed for {item.input_path}: {e.message}")
            outcome = ConversionOutcome(
                path=item.input_path,
                status=OutcomeStatus.BACKUP_FAILED,
                error_message=e.message,
                duration_seconds=time.monotonic() - start_time,
            )
            self.event_bus.publish(JobFailed(outcome=outcome))
            return outcome

        try:
            self.ffmpeg_adapter.convert(item, self.config, cancel_event=self._shutdown_event)
        except EncodeError as e:
            self.logger.error(f"Conversion failed for {item.input_path}: {e.exit_detail}\n{e.output.rstrip()}")
            outcome = ConversionOutcome(
                path=item.input_path,
                status=OutcomeStatus.ENCODE_FAILED,
                error_message=e.exit_detail,
                captured_output=e.output,
                duration_seconds=time.monotonic() - start_time,
            )
            self.event_bus.publish(JobFailed(outcome=outcome))
            return outcome
        except Exception as e:
            # Unexpected errors still stay inside this unit
            self.logger.exception(f"Unexpected error converting {item.input_path}: {e}")
            outcome = ConversionOutcome(
                path=item.input_path,
                status=OutcomeStatus.ENCODE_FAILED,
                error_message=f"Exception: {e}",
                duration_seconds=time.monotonic() - start_time,
            )
            self.event_bus.publish(JobFailed(outcome=outcome))
            return outcome

        elapsed = time.monotonic() - start_time
        self.logger.info(f"Converted {item.input_path} -> {item.output_path}")
        if self.config.debug:
            self.logger.debug(f"UNIT_END: {filename} status=success elapsed={elapsed:.2f}s")
        outcome = ConversionOutcome(
            path=item.input_path,
            status=OutcomeStatus.SUCCESS,
            output_path=item.output_path,
            duration_seconds=elapsed,
        )
        self.event_bus.publish(JobCompleted(outcome=outcome))
        return outcome

    def run(self) -> BatchSummary:
        """Runs the whole batch and returns the final summary.

        Raises ConfigError before scheduling anything if a startup precondition fails.
        """
        self._prepare_output_dir()
        matches = self.file_scanner.expand(self.config.input_pattern)
        items, decided = self._plan(matches)

        summary = BatchSummary()
        for outcome in decided:
            summary.record(outcome)

        self.logger.info(
            f"Discovery finished: found={len(matches)}, eligible={len(items) + summary.failed}, "
            f"scheduled={len(items)}, skipped={summary.skipped}"
        )
        self.event_bus.publish(DiscoveryFinished(
            files_found=len(matches),
            files_eligible=len(items) + summary.failed,
            files_skipped=summary.skipped,
        ))
        for outcome in decided:
            if outcome.failed:
                self.event_bus.publish(JobFailed(outcome=outcome))

        if items:
            self._run_items(items, summary)

        self.logger.info(
            f"Batch finished: total={summary.total}, succeeded={summary.succeeded}, failed={summary.failed}"
        )
        self.event_bus.publish(BatchFinished(summary=summary))
        return summary

    def _run_items(self, items: List[WorkItem], summary: BatchSummary) -> None:
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.config.max_concurrency,
            thread_name_prefix="vidmark-unit",
        )
        futures = {executor.submit(self._process_item, item): item for item in items}
        try:
            for future in concurrent.futures.as_completed(futures):
                item = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    self.logger.error(f"Unit for {item.input_path} failed with exception: {e}")
                    outcome = ConversionOutcome(
                        path=item.input_path, status=OutcomeStatus.ENCODE_FAILED, error_message=f"Exception: {e}")
                    self.event_bus.publish(JobFailed(outcome=outcome))
                summary.record(outcome)
        except KeyboardInterrupt:
            self.logger.info("Ctrl+C detected - cancelling pending units and stopping active encoders...")
            self._shutdown_event.set()
            for future in futures:
                future.cancel()
            executor.shutdown(wait=True)
            self.logger.info("Shutdown complete")
            raise
        executor.shutdown(wait=True)
