"""Clock abstraction injected wherever the core reads the current time."""

from datetime import datetime, timedelta
from typing import Protocol

from identity_core.entities._base import as_utc, utc_now


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return utc_now()


class FrozenClock:
    """Clock that only moves when told to. Used by tests and batch replays."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = as_utc(start) if start is not None else utc_now()

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = as_utc(value)

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now
