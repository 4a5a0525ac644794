import pytest
import yaml
from pathlib import Path
from mxf2proxy.config.models import AppConfig, GeneralConfig
from mxf2proxy.domain.models import DuplicateVerdict
from mxf2proxy.infrastructure.event_bus import EventBus
from mxf2proxy.infrastructure.subprocess_runner import LAUNCH_FAILED

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def general_config():
    """GeneralConfig with hardware encoding off, so argv is predictable."""
    return GeneralConfig(
        ffmpeg_path="/usr/local/bin/ffmpeg",
        ffprobe_path="ffprobe",
        extensions=[".mxf", ".mov"],
        use_hardware=False,
        debug=False,
    )

@pytest.fixture
def sample_config(general_config):
    """Returns a sample AppConfig object for testing."""
    return AppConfig(general=general_config)

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "mxf2proxy.yaml"

    content = {
        'general': {
            'ffmpeg_path': '/opt/ffmpeg/bin/ffmpeg',
            'extensions': ['mxf', 'MOV'],
            'use_hardware': False,
            'hardware_width_threshold': 3840,
            'lut_dir': str(tmp_path / "luts"),
            'debug': True,
        },
        'settings': {
            'output_format': 'mxf',
            'watermark_enabled': True,
            'watermark_mode': 'custom',
            'watermark_text': 'DRAFT',
        },
        'ui': {
            'activity_feed_max_items': 3,
        },
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
def clip_folder(tmp_path):
    """Folder with two clips and one file that is not a clip."""
    folder = tmp_path / "Card01"
    folder.mkdir()
    for name in ("b.mov", "a.mxf", "c.txt"):
        (folder / name).write_bytes(b"dummy clip content " * 10)
    return folder

# ============================================================================
# Encoder Fakes
# ============================================================================

class FakeRunner:
    """Stands in for SubprocessRunner: records calls and creates outputs.

    `statuses` is consumed one entry per call; once exhausted every call
    succeeds. A successful call writes the last argument (the output path).
    """

    def __init__(self, statuses=None):
        self.statuses = list(statuses or [])
        self.calls = []

    def run(self, executable, args, log_path):
        self.calls.append((executable, list(args), Path(log_path)))
        status = self.statuses.pop(0) if self.statuses else 0
        if status == 0:
            Path(args[-1]).write_bytes(b"encoded")
        return status


class FakePrepass:
    frame_height = 1080

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.calls = []

    def convert(self, input_path, output_path, log):
        self.calls.append((input_path, output_path))
        if self.succeed:
            Path(output_path).write_bytes(b"8bit")
        return self.succeed


class RecordingPrompter:
    """Prompter returning queued answers and recording every question."""

    def __init__(self, verdicts=None, decision=None):
        self.verdicts = list(verdicts or [])
        self.decision = decision
        self.destination_prompts = []
        self.duplicate_prompts = []

    def choose_destination(self, source, default):
        self.destination_prompts.append((source, default))
        return self.decision

    def resolve_duplicate(self, destination):
        self.duplicate_prompts.append(destination)
        return self.verdicts.pop(0) if self.verdicts else DuplicateVerdict.SKIP


@pytest.fixture
def fake_runner():
    return FakeRunner()

@pytest.fixture
def fake_prepass():
    return FakePrepass()

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
