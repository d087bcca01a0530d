"""
Clock -- source of the as-of date.

Responsibility:
    Every open-ended range in the costing core (a running sub-task, an
    unfinished pause, an in-progress item) is closed at an as-of date.
    Services obtain that date from an injected Clock so recomputes are
    reproducible; engines receive it as a plain ``date`` argument.

Architecture position:
    Kernel > Domain.  SystemClock is the only place the wall clock is read.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta


class Clock(ABC):
    """Injected time source; ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()

    def resolve_as_of(self, as_of: date | None) -> date:
        """An explicit as-of date wins; otherwise today."""
        return as_of if as_of is not None else self.today()


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Defaults to 2024-01-01 12:00 UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, tzinfo=UTC)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)
