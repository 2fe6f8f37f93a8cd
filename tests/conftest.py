import threading
import time
import pytest
import yaml
from pathlib import Path
from typing import List, Optional, Set
from vidmark.config.models import BatchConfig
from vidmark.domain.errors import EncodeError
from vidmark.infrastructure.event_bus import EventBus

MIB = 1024 * 1024

# ============================================================================
# Fake encoder
# ============================================================================

class FakeRunner:
    """Stands in for ProcessRunner: records every invocation and writes the destination file.

    Inputs whose basename is in fail_names raise EncodeError instead. When delay_s is set the
    runner sleeps inside the call and tracks how many calls overlap.
    """

    def __init__(self, fail_names: Optional[Set[str]] = None, delay_s: float = 0.0):
        self.fail_names = fail_names or set()
        self.delay_s = delay_s
        self.calls: List[dict] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def run(self, command_name, args, source=None, timeout_s=None, cancel_event=None):
        with self._lock:
            self.calls.append({"command": command_name, "args": list(args), "source": source})
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.delay_s:
                time.sleep(self.delay_s)
            if source is not None and Path(source).name in self.fail_names:
                # Simulate ffmpeg starting to write before failing
                Path(args[-1]).write_bytes(b"partial")
                raise EncodeError(source, f"{command_name} exited with code 1", "Invalid data found when processing input\n")
            Path(args[-1]).write_bytes(b"converted")
            return "encoded ok\n"
        finally:
            with self._lock:
                self.active -= 1

    def args_for(self, name: str) -> List[str]:
        for call in self.calls:
            if call["source"] is not None and Path(call["source"]).name == name:
                return call["args"]
        raise KeyError(name)

@pytest.fixture
def fake_runner():
    return FakeRunner()

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_input_dir(tmp_path):
    """Creates a test input directory."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    return input_dir

@pytest.fixture
def test_output_dir(tmp_path):
    """Output directory path (not created; the orchestrator creates it)."""
    return tmp_path / "output"

@pytest.fixture
def sample_config(test_input_dir, test_output_dir):
    """Returns a BatchConfig pointing at the temporary input/output directories."""
    return BatchConfig(
        input_pattern=str(test_input_dir / "*"),
        output_dir=test_output_dir,
        max_concurrency=2,
        crf_size_threshold=10 * MIB,
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "vidmark.yaml"

    content = {
        'batch': {
            'input_pattern': str(tmp_path / "input" / "*"),
            'output_dir': str(tmp_path / "yaml_out"),
            'watermark_width': 150,
            'watermark_height': -1,
            'watermark_x': '10',
            'watermark_y': 'H-h-10',
            'max_concurrency': 3,
            'crf_size_threshold': 2048,
            'debug': False,
        }
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def dummy_video_files(test_input_dir):
    """Creates small dummy videos plus one non-video file in the input directory."""
    files = []
    for name in ["clip_a.avi", "clip_b.MOV", "clip_c.mkv"]:
        f = test_input_dir / name
        f.write_bytes(b"dummy video content " * 100)  # ~2KB
        files.append(f)
    (test_input_dir / "notes.txt").write_text("not a video")
    return files

def make_sized_file(path: Path, size: int) -> Path:
    """Creates a file of exactly `size` bytes without materializing the content in memory."""
    with open(path, "wb") as f:
        f.truncate(size)
    return path

@pytest.fixture
def sized_file():
    return make_sized_file

# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
