"""Time sources.

Everything that depends on "now" takes the instant explicitly; the clock is the only
place where the current time is read, so tests can inject arbitrary instants instead of
patching system time globally.
"""

import threading
import typing as t
from datetime import datetime, timedelta

from django.utils import timezone


class Clock(t.Protocol):
    def now(self) -> datetime:
        """Return the current, timezone-aware instant."""
        ...


class SystemClock:
    """Wall clock backed by ``django.utils.timezone.now``."""

    def now(self) -> datetime:
        """Return the current time."""
        return timezone.now()


class FrozenClock:
    """A clock that only moves when told to.

    Safe to share between threads.
    """

    def __init__(self, instant: datetime) -> None:
        if timezone.is_naive(instant):
            raise ValueError("FrozenClock requires a timezone-aware datetime.")
        self._instant = instant
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Return the frozen instant."""
        with self._lock:
            return self._instant

    def set(self, instant: datetime) -> None:
        """Move the clock to ``instant``."""
        if timezone.is_naive(instant):
            raise ValueError("FrozenClock requires a timezone-aware datetime.")
        with self._lock:
            self._instant = instant

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """Move the clock forward by ``delta`` (or by ``timedelta(**kwargs)``) and return the new instant."""
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._instant += step
            return self._instant
