"""Shared pytest configuration and fixtures for the capture test suite."""

import os
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from media_store import FileMediaStore  # noqa: E402
from process_executor import ProcessResult  # noqa: E402
from temp_resources import TempResourceManager  # noqa: E402

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64
VIDEO_BYTES = b'\x00\x00\x00\x18ftypmp42' + b'\x01' * 256

TWO_MONITORS = [
    '0|\\\\.\\DISPLAY1|1920|1080|0|0|PRIMARY',
    '1|\\\\.\\DISPLAY2|1280|1024|1920|0|',
]


# =============================================================================
# Fakes
# =============================================================================

class FakeBackend:
    """Capture backend that writes canned output instead of grabbing the screen"""

    name = 'fake'

    def __init__(self, records=None, image=PNG_BYTES, enumerate_error=None, capture_error=None):
        self.records = list(TWO_MONITORS if records is None else records)
        self.image = image
        self.enumerate_error = enumerate_error
        self.capture_error = capture_error
        self.captured_monitors = []
        self.requested_monitors = []
        self.script_paths = []

    def _write_script(self, scope, purpose):
        artifact = scope.allocate(purpose, '.ps1')
        with open(artifact.path, 'w', encoding='utf-8') as f:
            f.write('# generated')
        self.script_paths.append(artifact.path)

    def monitor_records(self, scope, timeout=10):
        self._write_script(scope, 'list-monitors')
        if self.enumerate_error:
            raise self.enumerate_error
        return list(self.records)

    def capture(self, scope, output_path, monitor_index, image_format='png', timeout=30):
        self._write_script(scope, 'screenshot')
        self.requested_monitors.append(monitor_index)
        if self.capture_error:
            raise self.capture_error
        if monitor_index >= len(self.records):
            monitor_index = 0
        self.captured_monitors.append(monitor_index)
        if self.image is not None:
            with open(output_path, 'wb') as f:
                f.write(self.image)


class FakeExecutor:
    """Executor that answers probes from a set and fakes the encoder run"""

    def __init__(self, available=(), returncode=0, output=VIDEO_BYTES, error=None):
        self.available = set(available)
        self.returncode = returncode
        self.output = output
        self.error = error
        self.probes = []
        self.runs = []

    def probe(self, command, args=('-version',), timeout=5):
        self.probes.append(command)
        return command in self.available

    def run(self, command, args=(), timeout=30, hide_window=True, capture_output=True):
        args = list(args)
        self.runs.append({'command': command, 'args': args, 'timeout': timeout,
                          'hide_window': hide_window})
        if self.error:
            raise self.error
        if self.output is not None:
            with open(args[-1], 'wb') as f:
                f.write(self.output)
        return ProcessResult(command, self.returncode)


def temp_files(directory):
    return sorted(os.listdir(directory))


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "tmp"
    path.mkdir()
    return path


@pytest.fixture
def temp_manager(temp_dir):
    return TempResourceManager(str(temp_dir))


@pytest.fixture
def media_dir(tmp_path):
    return tmp_path / "media"


@pytest.fixture
def media_store(media_dir):
    return FileMediaStore(str(media_dir))


@pytest.fixture
def backend():
    return FakeBackend()
