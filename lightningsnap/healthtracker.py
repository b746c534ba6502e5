"""Tracking how long a repeated activity has been failing."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Optional

from .health import (
    DEFAULT_REGISTRY,
    HealthRegistry,
    HealthWarning,
    format_duration,
    round_to_second,
)

# Minimum interval between evaluations.
MIN_EVALUATION_INTERVAL = timedelta(seconds=1)
# Minimum failure duration before the tracker reports an error.
MIN_ERROR_DURATION = timedelta(0)
# Minimum failure duration before the tracker reports a warning.
MIN_WARN_DURATION = timedelta(0)


@dataclass(frozen=True)
class HealthConfig:
    """Evaluation interval and thresholds for a HealthTracker."""

    evaluation_interval: timedelta = timedelta(0)
    error_duration: timedelta = timedelta(0)
    warn_duration: timedelta = timedelta(0)

    def validated(self) -> "HealthConfig":
        """Return a copy with every value raised to at least its minimum."""
        return replace(
            self,
            evaluation_interval=max(self.evaluation_interval, MIN_EVALUATION_INTERVAL),
            error_duration=max(self.error_duration, MIN_ERROR_DURATION),
            warn_duration=max(self.warn_duration, MIN_WARN_DURATION),
        )


class HealthTracker:
    """Counts consecutive failures and reports how long they have lasted."""

    def __init__(
        self,
        config: HealthConfig,
        prefix: str,
        activity: str,
        registry: Optional[HealthRegistry] = None,
    ) -> None:
        self.config = config.validated()
        self.prefix = prefix
        self.activity = activity
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self._lock = threading.Lock()
        self._sequence = 0
        self._since = self.registry.clock()
        self._last_error = ""
        self._logger = logging.LoggerAdapter(
            logging.getLogger(__name__), {"healthtracker": prefix}
        )
        self.register_duration()

    @property
    def check_name(self) -> str:
        return f"{self.prefix}_failed_duration"

    def register_duration(self) -> None:
        """Register the failure-duration check with the registry."""
        self.registry.register(self.check_name, self.config.evaluation_interval, self.check)
        self._logger.info("registered tracker for failure duration")

    def check(self) -> None:
        """Raise if the activity has been failing past a threshold."""
        with self._lock:
            failures = self._sequence
            since = self._since
            last_error = self._last_error
        if failures == 0:
            return
        failing_for = timedelta(seconds=self.registry.clock() - since)
        shown = format_duration(round_to_second(failing_for))
        message = f"failed to {self.activity} for {shown} - last error: '{last_error}'"
        if failing_for >= self.config.error_duration:
            self._logger.warning(
                "failure for %s is violating the error threshold (%s)",
                shown, format_duration(self.config.error_duration),
            )
            raise RuntimeError(message)
        if failing_for >= self.config.warn_duration:
            self._logger.warning(
                "failure for %s is violating the warning threshold (%s)",
                shown, format_duration(self.config.warn_duration),
            )
            raise HealthWarning(message)

    def add_failure(self, err: BaseException) -> None:
        """Record a failed attempt."""
        with self._lock:
            self._last_error = str(err)
            if self._sequence == 0:
                self._since = self.registry.clock()
            self._sequence += 1
        self._logger.debug("tracked failed attempt")

    def add_success(self) -> None:
        """Record a successful attempt, clearing the failure streak."""
        with self._lock:
            self._sequence = 0
            self._last_error = ""
        self._logger.debug("tracked successful attempt")