import threading
from typing import Optional
from rich.console import Console
from rich.text import Text
from vidmark.infrastructure.event_bus import EventBus
from vidmark.domain.events import (
    BatchFinished, DiscoveryFinished, FileSkipped, JobCompleted, JobFailed, JobStarted
)
from vidmark.domain.models import BatchSummary, OutcomeStatus

def format_size(size: float) -> str:
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}TB"

def summary_text(summary: BatchSummary) -> Text:
    """The final report line: total, succeeded in green, failed in red."""
    text = Text("Video processing finished! ")
    text.append(f"Total: {summary.total}, succeeded: ")
    text.append(str(summary.succeeded), style="bold green")
    text.append(", failed: ")
    text.append(str(summary.failed), style="bold red")
    if summary.skipped:
        text.append(f" (skipped non-video: {summary.skipped})", style="dim")
    return text

class ConsoleReporter:
    """Subscribes to EventBus and prints per-file progress and the final summary."""

    def __init__(self, bus: EventBus, console: Optional[Console] = None, verbose: bool = False):
        self.bus = bus
        self.console = console or Console()
        self.verbose = verbose
        self.started = 0
        self.finished = 0
        self.expected = 0
        self._lock = threading.Lock()
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(FileSkipped, self.on_file_skipped)
        self.bus.subscribe(JobStarted, self.on_job_started)
        self.bus.subscribe(JobCompleted, self.on_job_completed)
        self.bus.subscribe(JobFailed, self.on_job_failed)
        self.bus.subscribe(BatchFinished, self.on_batch_finished)

    def on_discovery_finished(self, event: DiscoveryFinished):
        self.expected = event.files_eligible
        self.console.print(
            f"Found {event.files_found} match(es): {event.files_eligible} video(s), "
            f"{event.files_skipped} skipped"
        )

    def on_file_skipped(self, event: FileSkipped):
        if self.verbose:
            self.console.print(Text(f"- skip {event.path} ({event.reason})", style="dim"))

    def on_job_started(self, event: JobStarted):
        with self._lock:
            self.started += 1
        if self.verbose:
            self.console.print(Text(f"> {event.item.input_path} ({format_size(event.item.file_size)})"))

    def _progress(self) -> str:
        with self._lock:
            self.finished += 1
            return f"[{self.finished}/{self.expected}]"

    def on_job_completed(self, event: JobCompleted):
        outcome = event.outcome
        line = Text(f"{self._progress()} ")
        line.append("OK ", style="green")
        line.append(f"{outcome.path} -> {outcome.output_path}")
        self.console.print(line)

    def on_job_failed(self, event: JobFailed):
        outcome = event.outcome
        label = {
            OutcomeStatus.BACKUP_FAILED: "BACKUP FAILED",
            OutcomeStatus.ENCODE_FAILED: "FAILED",
            OutcomeStatus.REJECTED: "REJECTED",
        }.get(outcome.status, outcome.status.value)
        line = Text(f"{self._progress()} ")
        line.append(f"{label} ", style="red")
        line.append(f"{outcome.path}: {outcome.error_message}")
        self.console.print(line)

    def on_batch_finished(self, event: BatchFinished):
        self.console.print(summary_text(event.summary))
