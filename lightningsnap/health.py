"""A small registry of periodic health checks with warnings and metadata."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Union

Check = Callable[[], None]
Interval = Union[timedelta, float, int]

_MICROSECOND = timedelta(microseconds=1)


class HealthWarning(Exception):
    """Raised by a check whose subject is degraded but not failing."""


def _decimal(value: int, unit: int) -> str:
    whole, frac = divmod(value, unit)
    if not frac:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{frac:0{digits}d}".rstrip("0")


def format_duration(value: timedelta) -> str:
    """Format a duration as hours, minutes and seconds, e.g. ``1m5s``."""
    micros = value // _MICROSECOND
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{_decimal(micros, 1000)}ms"
    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    seconds = _decimal(micros, 1_000_000) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


def round_to_second(value: timedelta) -> timedelta:
    """Round a duration to whole seconds, halves away from zero."""
    micros = value // _MICROSECOND
    if micros >= 0:
        seconds = (micros + 500_000) // 1_000_000
    else:
        seconds = -((-micros + 500_000) // 1_000_000)
    return timedelta(seconds=seconds)


def _seconds(interval: Interval) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


@dataclass
class _Entry:
    interval: float
    check: Check
    next_run: Optional[float] = None
    result: Optional[Exception] = None


class HealthRegistry:
    """Named health checks, each run at most once per its interval.

    A check returns normally when healthy, raises HealthWarning when
    degraded, and raises any other exception when failing.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self.clock: Callable[[], float] = clock or time.monotonic
        self._lock = threading.RLock()
        self._checks: Dict[str, _Entry] = {}
        self._meta: Dict[str, Any] = {}

    def register(self, name: str, interval: Interval, check: Check) -> None:
        """Register ``check`` under ``name``, replacing any earlier one."""
        with self._lock:
            self._checks[name] = _Entry(_seconds(interval), check)

    def deregister(self, name: str) -> None:
        """Remove the check registered under ``name``, if any."""
        with self._lock:
            self._checks.pop(name, None)

    def set_meta(self, key: str, value: Any) -> None:
        """Set a metadata value reported alongside the checks."""
        with self._lock:
            self._meta[key] = value

    @property
    def meta(self) -> Dict[str, Any]:
        """A copy of the current metadata."""
        with self._lock:
            return dict(self._meta)

    def evaluate(self) -> Dict[str, Optional[Exception]]:
        """Run the checks that are due; return each registered check's last result.

        A result is None for a healthy check, otherwise the exception it raised.
        """
        with self._lock:
            now = self.clock()
            for entry in list(self._checks.values()):
                if entry.next_run is not None and now < entry.next_run:
                    continue
                try:
                    entry.check()
                except Exception as exc:  # a failing check reports through its exception
                    entry.result = exc
                else:
                    entry.result = None
                entry.next_run = now + entry.interval
            return {name: entry.result for name, entry in self._checks.items()}


DEFAULT_REGISTRY = HealthRegistry()