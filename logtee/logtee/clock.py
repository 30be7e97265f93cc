"""
Clock - source of Record timestamps.

Real UTC time by default; can be frozen so emitted records (and the
console lines rendered from them) are reproducible.

Environment Variables:
    LOGTEE_FROZEN_TIME: ISO-8601 time or Unix timestamp to freeze at
"""

import os
import threading
from datetime import datetime, timezone
from typing import Optional


class Clock:
    """
    A UTC clock that can be frozen.

    Usage:
        clock = Clock()
        clock.freeze(datetime(2024, 1, 1, 12, 0, 0))
        assert clock.now() == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        clock.unfreeze()
    """

    def __init__(self, frozen_time: Optional[datetime] = None):
        self._frozen_time: Optional[datetime] = None
        self._lock = threading.Lock()
        if frozen_time is not None:
            self.freeze(frozen_time)

    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime (frozen or real)."""
        with self._lock:
            if self._frozen_time is not None:
                return self._frozen_time
        return datetime.now(timezone.utc)

    def timestamp(self) -> float:
        """Seconds since epoch."""
        return self.now().timestamp()

    def freeze(self, dt: datetime) -> None:
        """
        Freeze the clock at a specific time.

        Naive datetimes are taken to be UTC.
        """
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        with self._lock:
            self._frozen_time = dt.astimezone(timezone.utc)

    def unfreeze(self) -> None:
        """Return to real time."""
        with self._lock:
            self._frozen_time = None

    @property
    def is_frozen(self) -> bool:
        with self._lock:
            return self._frozen_time is not None

    def __enter__(self) -> "Clock":
        return self

    def __exit__(self, *args) -> None:
        self.unfreeze()


def clock_from_env() -> Clock:
    """Create a Clock, frozen if LOGTEE_FROZEN_TIME is set and parseable."""
    raw = os.environ.get("LOGTEE_FROZEN_TIME")
    if not raw:
        return Clock()

    try:
        frozen_time = datetime.fromisoformat(raw)
    except ValueError:
        try:
            frozen_time = datetime.fromtimestamp(float(raw), tz=timezone.utc)
        except ValueError:
            return Clock()

    return Clock(frozen_time=frozen_time)
