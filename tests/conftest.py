import os
import sys
import pathlib
import threading

import pytest

# Ensure project root is on sys.path so the top-level packages import when
# pytest runs from a different working directory.
_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

# Must be set before anything imports utils.config.
os.environ["BANNERWATCH_CONFIG"] = str(pathlib.Path(__file__).resolve().parent / "config.yaml")

from logger.storage import SoftwareSink


class RecordingSink(SoftwareSink):
    """Keeps everything written to it in memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self.observations = []
        self.notices = []

    def write_observation(self, observation):
        with self._lock:
            self.observations.append(observation)

    def raise_notice(self, notice):
        with self._lock:
            self.notices.append(notice)


class FailingSink(RecordingSink):
    """Fails the first ``failures`` observation writes."""

    def __init__(self, failures=1):
        super().__init__()
        self.failures = failures

    def write_observation(self, observation):
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("sink unavailable")
        super().write_observation(observation)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def failing_sink():
    return FailingSink(failures=1)
