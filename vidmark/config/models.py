from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CRF_THRESHOLD = 10 * 1024 * 1024

class BatchConfig(BaseModel):
    """Immutable settings for one batch run, shared read-only by every worker."""
    model_config = ConfigDict(frozen=True)

    input_pattern: str = "./*"
    output_dir: Path = Path("./output")
    watermark_path: Optional[Path] = None
    watermark_width: int = Field(default=100, gt=0)
    watermark_height: int = -1  # -1 keeps the watermark aspect ratio
    watermark_x: str = "W-w-10"
    watermark_y: str = "10"
    max_concurrency: int = Field(default=4, gt=0)
    crf_size_threshold: int = Field(default=DEFAULT_CRF_THRESHOLD, ge=0)

    # Encoder invocation
    encoder: str = "ffmpeg"
    video_codec: str = "libx264"
    slow_preset: str = "veryslow"
    crf: int = Field(default=28, ge=0, le=63)
    overwrite_output: bool = True
    encode_timeout_s: Optional[float] = Field(default=None, gt=0)

    backup_dir_name: str = "backup"
    log_path: Optional[Path] = None
    debug: bool = False

    @field_validator("watermark_path", mode="before")
    @classmethod
    def empty_watermark_disables(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    @field_validator("watermark_height")
    @classmethod
    def validate_height(cls, v: int) -> int:
        if v != -1 and v <= 0:
            raise ValueError(f"Invalid watermark height {v}. Must be positive or -1 (proportional).")
        return v

    @field_validator("input_pattern", "watermark_x", "watermark_y", "encoder", "backup_dir_name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("backup_dir_name")
    @classmethod
    def validate_backup_dir_name(cls, v: str) -> str:
        if Path(v).name != v or v in {".", ".."}:
            raise ValueError(f"backup_dir_name must be a plain directory name, got {v!r}")
        return v

    @property
    def backup_dir(self) -> Path:
        return self.output_dir / self.backup_dir_name

    @property
    def watermark_enabled(self) -> bool:
        return self.watermark_path is not None
