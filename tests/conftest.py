import os

import pytest

from deferred.config.environment import Environment


class FakeClock:
    """Deterministic monotonic clock whose sleeps advance time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []
        self.attempt_times: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    async def async_sleep(self, seconds: float) -> None:
        self.sleep(seconds)

    def record_attempt(self, attempt, outcome) -> None:
        self.attempt_times.append(self.now)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep user settings and DEFERRED_* variables out of every test."""
    for key in list(os.environ):
        if key.startswith("DEFERRED_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DEFERRED_SETTINGS_FILE", str(tmp_path / "settings.yaml"))
    Environment.clear_settings()
    yield
    Environment.clear_settings()
