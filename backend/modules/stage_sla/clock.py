"""Injectable sources for the current instant"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional


class Clock(ABC):
    """A zero-argument source of the current instant (aware, UTC)"""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def __call__(self) -> datetime:
        return self.now()


class SystemClock(Clock):
    """Reads the real wall clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant; can be moved forward explicitly"""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs) -> None:
        """Moves the clock forward, e.g. advance(hours=3)"""
        self._instant = self._instant + timedelta(**kwargs)


system_clock = SystemClock()


def resolve_clock(clock: Optional[Callable[[], datetime]]) -> Callable[[], datetime]:
    """Returns the given clock, or the system clock when none is injected"""
    return clock if clock is not None else system_clock
