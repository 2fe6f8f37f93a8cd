import logging
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_NAME = "conversion.log"

def setup_logging(
    output_dir: Path,
    debug: bool = False,
    log_path: Optional[Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Setup logging configuration for vidmark.

    Writes conversion.log into the output directory and mirrors records to the
    terminal through rich. Returns configured logger instance.

    Args:
        output_dir: Directory where converted files are written
        debug: If True, enable DEBUG level logging with per-unit timings
        log_path: Optional path to log file (overrides output_dir)
        console: Optional rich Console for terminal output (stderr by default)
    """
    log_file = Path(log_path) if log_path else (Path(output_dir) / LOG_FILE_NAME)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=debug,
    )

    logging.basicConfig(
        level=level,
        format='%(message)s',
        handlers=[file_handler, console_handler],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
