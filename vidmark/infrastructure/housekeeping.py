import logging
from pathlib import Path
from vidmark.infrastructure.backup import PARTIAL_SUFFIX

logger = logging.getLogger(__name__)

class HousekeepingService:
    """Service for cleaning up partial files left behind by an interrupted run."""

    def cleanup_partial_files(self, directory: Path) -> int:
        """Removes *.part files directly inside the directory. Returns how many were removed."""
        if not directory.is_dir():
            return 0
        removed = 0
        for path in directory.glob(f"*{PARTIAL_SUFFIX}"):
            if not path.is_file():
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Cannot remove stale partial file {path}: {e}")
        if removed:
            logger.info(f"Removed {removed} stale partial file(s) from {directory}")
        return removed
