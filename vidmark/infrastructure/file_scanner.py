import glob
from pathlib import Path
from typing import List, Union
from vidmark.domain.errors import ConfigError

VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv", ".flv", ".wmv")

def is_video(path: Union[str, Path]) -> bool:
    """True when the path carries one of the supported video extensions (case-insensitive)."""
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS

class FileScanner:
    """Expands a glob pattern into candidate input paths."""

    def expand(self, pattern: str) -> List[Path]:
        """Returns every match of the pattern, sorted; raises ConfigError when nothing matches."""
        if not pattern or not pattern.strip():
            raise ConfigError("Input pattern is empty")
        try:
            matches = glob.glob(pattern, recursive=True)
        except (ValueError, OSError) as e:
            raise ConfigError(f"Cannot parse input pattern {pattern!r}: {e}") from e
        if not matches:
            raise ConfigError(f"No files match input pattern: {pattern}")
        # Deterministic order decides which input wins a name collision
        return sorted(Path(m) for m in matches)
