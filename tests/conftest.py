"""Global pytest fixtures and configuration."""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from swupgrade.models.settings import RegisterMap, UpgradeSettings  # noqa: E402


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = 0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps += 1
        self.now += seconds


class FakeElement:
    """In-memory element whose registers can change on a schedule.

    Every get/set is recorded in `calls` as (op, key, value, time).
    """

    def __init__(self, clock: FakeClock, version="1.0", state=0, registers=None):
        self.clock = clock
        self.registers = registers or RegisterMap()
        self.values = {
            self.registers.version: version,
            self.registers.element_state: state,
            self.registers.image_location: "",
            self.registers.trigger: 0,
        }
        self.timeline = {}
        self.calls = []
        self.fail_on_get = {}
        self.fail_on_set = {}

    def schedule(self, key: int, at: float, value) -> None:
        """From time `at` onwards, reads of `key` return `value`."""
        self.timeline.setdefault(key, []).append((at, value))
        self.timeline[key].sort(key=lambda item: item[0])

    def state_at(self, at: float, code: int) -> None:
        self.schedule(self.registers.element_state, at, code)

    def version_at(self, at: float, version: str) -> None:
        self.schedule(self.registers.version, at, version)

    async def get(self, key: int):
        self.calls.append(("get", key, None, self.clock()))
        if key in self.fail_on_get:
            raise self.fail_on_get[key]
        value = self.values[key]
        for at, scheduled in self.timeline.get(key, []):
            if self.clock() >= at:
                value = scheduled
        return value

    async def set(self, key: int, value) -> None:
        if key in self.fail_on_set:
            raise self.fail_on_set[key]
        self.calls.append(("set", key, value, self.clock()))
        self.values[key] = value

    def writes(self):
        return [(key, value) for op, key, value, _ in self.calls if op == "set"]


class RecordingNotifier:
    """ProcessNotifier that keeps every report in order."""

    def __init__(self):
        self.events = []

    async def notify_started(self) -> None:
        self.events.append(("started", None))

    async def notify_success(self) -> None:
        self.events.append(("success", None))

    async def notify_failure(self, message: str) -> None:
        self.events.append(("failed", message))

    @property
    def failures(self):
        return [message for event, message in self.events if event == "failed"]


@pytest.fixture
def fake_clock():
    """Fake monotonic clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def registers():
    """Default register map."""
    return RegisterMap()


@pytest.fixture
def settings():
    """Default settings (5 min / 5 min / 15 min / 10 s, 100 ms interval)."""
    return UpgradeSettings()


@pytest.fixture
def element(fake_clock, registers):
    """Element reporting version 1.0 and state code 0."""
    return FakeElement(fake_clock, version="1.0", state=0, registers=registers)


@pytest.fixture
def notifier():
    """Recording process notifier."""
    return RecordingNotifier()
