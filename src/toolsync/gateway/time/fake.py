"""Fake time provider for testing."""

import threading
from datetime import UTC, datetime, timedelta

from toolsync.gateway.time.abc import Time


class FakeTime(Time):
    """Controllable clock. It only moves when advance() is called."""

    def __init__(self, current_time: datetime | None = None) -> None:
        if current_time is None:
            current_time = datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC)
        elif current_time.tzinfo is None:
            current_time = current_time.replace(tzinfo=UTC)
        self._current_time = current_time
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current_time

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._current_time += timedelta(seconds=seconds)
