import logging
import threading
import time
from pathlib import Path
from typing import List, Optional
from vidmark.config.models import BatchConfig
from vidmark.domain.errors import EncodeError
from vidmark.domain.models import WorkItem
from vidmark.infrastructure.backup import PARTIAL_SUFFIX
from vidmark.infrastructure.process_runner import ProcessRunner

def watermark_filter(config: BatchConfig) -> str:
    """Scale the watermark (input 1) and overlay it on the video (input 0).

    Height -1 and the x/y expressions are handed to ffmpeg untouched.
    """
    return (
        f"[1:v] scale={config.watermark_width}:{config.watermark_height} [wm]; "
        f"[0:v][wm] overlay={config.watermark_x}:{config.watermark_y}"
    )

def needs_slow_preset(file_size: int, config: BatchConfig) -> bool:
    return file_size > config.crf_size_threshold

def build_ffmpeg_args(item: WorkItem, config: BatchConfig, destination: Optional[Path] = None) -> List[str]:
    """Constructs the ffmpeg arguments (without the executable) for one work item."""
    args: List[str] = []
    if config.overwrite_output:
        args.append("-y")
    args.extend(["-i", str(item.input_path)])

    if config.watermark_enabled:
        args.extend([
            "-i", str(config.watermark_path),
            "-filter_complex", watermark_filter(config),
        ])

    args.extend([
        "-c:v", config.video_codec,
        "-c:a", "copy",
    ])
    if config.watermark_enabled:
        args.append("-shortest")

    # Larger inputs trade encode time for a smaller output
    if needs_slow_preset(item.file_size, config):
        args.extend(["-preset", config.slow_preset, "-crf", str(config.crf)])

    if destination is not None:
        # Partial file name carries no container hint
        args.extend(["-f", "mp4", str(destination)])
    else:
        args.append(str(item.output_path))
    return args

class FFmpegAdapter:
    """Wrapper around ffmpeg for MP4 conversion with optional watermark."""

    def __init__(self, runner: Optional[ProcessRunner] = None):
        self.runner = runner or ProcessRunner()
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def partial_path(item: WorkItem) -> Path:
        return item.output_path.with_name(item.output_path.name + PARTIAL_SUFFIX)

    def convert(self, item: WorkItem, config: BatchConfig, cancel_event: Optional[threading.Event] = None) -> str:
        """Encodes item.input_path into item.output_path and returns the encoder output.

        ffmpeg writes to a .part file that is renamed on success and removed on
        failure, so a failed conversion leaves no output behind.
        """
        filename = item.input_path.name
        partial = self.partial_path(item)
        args = build_ffmpeg_args(item, config, destination=partial)
        start_time = time.monotonic()

        try:
            output = self.runner.run(
                config.encoder,
                args,
                source=item.input_path,
                timeout_s=config.encode_timeout_s,
                cancel_event=cancel_event,
            )
        except EncodeError:
            self._discard(partial)
            raise

        if not partial.exists():
            raise EncodeError(item.input_path, f"{config.encoder} reported success but wrote no output", output)
        try:
            partial.replace(item.output_path)
        except OSError as e:
            self._discard(partial)
            raise EncodeError(item.input_path, f"cannot move output into place: {e}", output) from e

        if config.debug:
            elapsed = time.monotonic() - start_time
            self.logger.debug(f"FFMPEG_END: {filename} status=completed elapsed={elapsed:.2f}s")
        return output

    def _discard(self, partial: Path) -> None:
        if partial.exists():
            try:
                partial.unlink()
            except OSError as e:
                self.logger.warning(f"Failed to remove partial output {partial}: {e}")
