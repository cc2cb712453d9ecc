"""Production time provider."""

from datetime import UTC, datetime

from toolsync.gateway.time.abc import Time


class RealTime(Time):
    """Real implementation backed by the system clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)
