"""Domain events for the conversion pipeline.

Events flow through the EventBus and decouple the orchestrator from console reporting.
Worker threads publish JobStarted/JobCompleted/JobFailed; the orchestrator thread publishes the rest.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from pydantic import BaseModel
from .models import BatchSummary, ConversionOutcome, WorkItem


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class DiscoveryFinished(Event):
    """Emitted after the input pattern is expanded and classified."""

    files_found: int
    files_eligible: int
    files_skipped: int = 0


class FileSkipped(Event):
    """Emitted for matches that are not video files."""

    path: Path
    reason: str


class JobStarted(Event):
    """Emitted by a worker when it begins the backup stage of an item."""

    item: WorkItem


class JobCompleted(Event):
    outcome: ConversionOutcome


class JobFailed(Event):
    """Emitted for every failed outcome, including items rejected before scheduling."""

    outcome: ConversionOutcome


class BatchFinished(Event):
    summary: BatchSummary
