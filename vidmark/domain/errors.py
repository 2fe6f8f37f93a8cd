"""Error taxonomy for batch conversion.

`ConfigError` is fatal and stops the run before any work is scheduled. Everything deriving from
`PerFileError` is isolated to one input: the orchestrator catches it at the unit boundary, logs it
and turns it into a counted outcome.
"""

from pathlib import Path
from typing import Optional


class ConfigError(Exception):
    """Invalid startup configuration (output dir, watermark, input pattern)."""


class PerFileError(Exception):
    """Base class for failures scoped to a single input file."""

    def __init__(self, path: Path, message: str):
        self.path = Path(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class StatError(PerFileError):
    pass


class PathCollisionError(PerFileError):
    pass


class BackupIOError(PerFileError):
    pass


class EncodeError(PerFileError):
    """Encoder exited non-zero, could not be launched, timed out or was interrupted."""

    def __init__(self, path: Path, exit_detail: str, output: Optional[str] = None):
        self.exit_detail = exit_detail
        self.output = output or ""
        super().__init__(path, exit_detail)
