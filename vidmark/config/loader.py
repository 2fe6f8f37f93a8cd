import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from .models import BatchConfig

def load_config(config_path: Path) -> Dict[str, Any]:
    """Loads a YAML config file into a plain dict of BatchConfig fields."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    # Accept both a flat file and one nested under a 'batch' section
    batch = data.get("batch")
    if isinstance(batch, dict):
        data = {**{k: v for k, v in data.items() if k != "batch"}, **batch}
    return data

def build_config(config_path: Optional[Path] = None, **overrides: Any) -> BatchConfig:
    """Merges CLI overrides (None means 'not given') over the YAML file and validates."""
    data: Dict[str, Any] = load_config(config_path) if config_path else {}
    data.update({k: v for k, v in overrides.items() if v is not None})
    return BatchConfig(**data)
