import typer
import yaml
from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from rich.console import Console

from vidmark.config.loader import build_config
from vidmark.domain.errors import ConfigError
from vidmark.infrastructure.backup import BackupService
from vidmark.infrastructure.event_bus import EventBus
from vidmark.infrastructure.ffmpeg import FFmpegAdapter
from vidmark.infrastructure.file_scanner import FileScanner
from vidmark.infrastructure.housekeeping import HousekeepingService
from vidmark.infrastructure.logging import setup_logging
from vidmark.infrastructure.process_runner import ProcessRunner
from vidmark.pipeline.orchestrator import Orchestrator
from vidmark.ui.reporter import ConsoleReporter, format_size

app = typer.Typer(help="vidmark - batch convert videos to MP4 with an optional watermark")

def _fail(message: str) -> None:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)

@app.command()
def convert(
    input_pattern: Optional[str] = typer.Option(
        None, "--input", "-i",
        help="Input glob pattern, e.g. demo.avi, videos/*, videos/**/* [default: ./*]"
    ),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory [default: ./output]"),
    watermark: Optional[str] = typer.Option(None, "--watermark", "-w", help="Watermark image path (empty disables)"),
    width: Optional[int] = typer.Option(None, "--width", help="Watermark width in pixels [default: 100]"),
    height: Optional[int] = typer.Option(None, "--height", help="Watermark height in pixels, -1 keeps aspect ratio [default: -1]"),
    x: Optional[str] = typer.Option(None, "--x", "-x", help="Watermark x position (pixels or expression like W-w-10)"),
    y: Optional[str] = typer.Option(None, "--y", "-y", help="Watermark y position (pixels or expression like H-h-10)"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Maximum simultaneous conversions [default: 4]"),
    crf_threshold: Optional[int] = typer.Option(
        None, "--crf-threshold",
        help="Size in bytes above which the slow preset and -crf 28 are used [default: 10485760]"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    encoder: Optional[str] = typer.Option(None, "--encoder", help="Encoder executable [default: ffmpeg]"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-file encoder timeout in seconds"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (default: <output>/conversion.log)"),
    debug: Optional[bool] = typer.Option(None, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Back up and convert every video matching the input pattern to MP4."""
    try:
        config = build_config(
            config_path,
            input_pattern=input_pattern,
            output_dir=output_dir,
            watermark_path=watermark,
            watermark_width=width,
            watermark_height=height,
            watermark_x=x,
            watermark_y=y,
            max_concurrency=concurrency,
            crf_size_threshold=crf_threshold,
            encoder=encoder,
            encode_timeout_s=timeout,
            log_path=log_path,
            debug=debug,
        )
    except ValidationError as exc:
        _fail(f"Invalid configuration:\n{exc}")
    except (FileNotFoundError, ValueError, yaml.YAMLError) as exc:
        _fail(str(exc))

    console = Console()
    try:
        logger = setup_logging(config.output_dir, debug=config.debug, log_path=config.log_path)
    except OSError as exc:
        _fail(f"Cannot create output directory {config.output_dir}: {exc}")

    logger.info(f"vidmark started: input={config.input_pattern!r}, output={config.output_dir}")
    logger.info(
        f"Config: concurrency={config.max_concurrency}, "
        f"crf_threshold={format_size(config.crf_size_threshold)}, "
        f"watermark={config.watermark_path or 'none'}, encoder={config.encoder}, "
        f"timeout={config.encode_timeout_s or 'none'}, debug={config.debug}"
    )

    housekeeper = HousekeepingService()
    housekeeper.cleanup_partial_files(config.output_dir)
    housekeeper.cleanup_partial_files(config.backup_dir)

    bus = EventBus()
    ConsoleReporter(bus, console=console, verbose=config.debug)

    orchestrator = Orchestrator(
        config=config,
        event_bus=bus,
        file_scanner=FileScanner(),
        backup_service=BackupService(),
        ffmpeg_adapter=FFmpegAdapter(ProcessRunner()),
    )

    try:
        orchestrator.run()
    except ConfigError as exc:
        logger.error(str(exc))
        _fail(str(exc))
    except KeyboardInterrupt:
        typer.secho("\nConversion stopped by user (Ctrl+C)", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)
    except Exception as exc:
        logger.exception(f"Fatal error: {exc}")
        typer.secho(f"Fatal Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

if __name__ == "__main__":
    app()
