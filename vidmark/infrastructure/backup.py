import logging
import os
import shutil
from pathlib import Path
from vidmark.domain.errors import BackupIOError

PARTIAL_SUFFIX = ".part"

class BackupService:
    """Copies originals into the backup directory before they are converted."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def backup(self, input_path: Path, backup_dir: Path) -> Path:
        """Copies input_path byte-for-byte to backup_dir/<basename> and returns the destination.

        The copy lands in a .part file first and is renamed into place once complete,
        so an interrupted copy never looks like a finished backup.
        """
        input_path = Path(input_path)
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupIOError(input_path, f"cannot create backup directory {backup_dir}: {e}") from e

        dest = backup_dir / input_path.name
        partial = dest.with_name(dest.name + PARTIAL_SUFFIX)
        try:
            shutil.copyfile(input_path, partial)
            os.replace(partial, dest)
        except OSError as e:
            if partial.exists():
                try:
                    partial.unlink()
                except OSError as cleanup_error:
                    self.logger.warning(f"Failed to remove partial backup {partial}: {cleanup_error}")
            raise BackupIOError(input_path, f"backup to {dest} failed: {e}") from e

        self.logger.debug(f"BACKUP: {input_path} -> {dest}")
        return dest
