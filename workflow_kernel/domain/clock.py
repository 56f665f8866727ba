"""
Clock -- Time source for history timestamps.

Responsibility:
    The workflow engine stamps ``created_at``, ``updated_at``,
    ``published_at`` and every ``WorkflowComment.timestamp`` from an injected
    clock, never from ``datetime.now()``.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place that reads wall
    time.

Invariants enforced:
    - Every returned datetime is timezone-aware UTC.

Failure modes:
    - DeterministicClock raises ValueError for a naive start time or a
      negative step.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Injected into ``WorkflowEngine``; ``now()`` is always UTC-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Scripted clock for tests.

    With ``step_seconds=0`` every read returns the same instant until
    ``advance()`` is called.  With a positive step, each read returns the
    current instant and then moves forward, so consecutive history records
    get strictly increasing timestamps.
    """

    def __init__(self, start: datetime = DEFAULT_START, step_seconds: int = 0):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware start")
        if step_seconds < 0:
            raise ValueError("step_seconds must not be negative")
        self._current = start.astimezone(timezone.utc)
        self._step = timedelta(seconds=step_seconds)

    def now(self) -> datetime:
        current = self._current
        self._current += self._step
        return current

    def advance(self, seconds: int) -> None:
        self._current += timedelta(seconds=seconds)
