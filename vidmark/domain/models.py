from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class OutcomeStatus(str, Enum):
    SUCCESS = "SUCCESS"
    BACKUP_FAILED = "BACKUP_FAILED"
    ENCODE_FAILED = "ENCODE_FAILED"
    REJECTED = "REJECTED"  # stat failure or path collision, never scheduled
    SKIPPED = "SKIPPED"

FAILED_STATUSES = frozenset({OutcomeStatus.BACKUP_FAILED, OutcomeStatus.ENCODE_FAILED, OutcomeStatus.REJECTED})

class WorkItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_path: Path
    output_path: Path
    file_size: int = Field(ge=0)

class ConversionOutcome(BaseModel):
    path: Path
    status: OutcomeStatus
    output_path: Optional[Path] = None
    error_message: Optional[str] = None
    captured_output: Optional[str] = None
    duration_seconds: Optional[float] = None

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES

class BatchSummary(BaseModel):
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    def record(self, outcome: ConversionOutcome) -> None:
        """Tallies one outcome. Only the aggregating thread may call this."""
        if outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
            return
        self.total += 1
        if outcome.status == OutcomeStatus.SUCCESS:
            self.succeeded += 1
        else:
            self.failed += 1
