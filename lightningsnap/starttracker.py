"""Tracking whether the startup phase has completed."""

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
# Minimum pending duration before the tracker reports an error.
MIN_ERROR_DURATION = timedelta(0)
# Minimum pending duration before the tracker reports a warning.
MIN_WARN_DURATION = timedelta(0)


@dataclass(frozen=True)
class StartConfig:
    """Evaluation interval, thresholds and reporting options for a StartTracker."""

    evaluation_interval: timedelta = timedelta(0)
    error_duration: timedelta = timedelta(0)
    warn_duration: timedelta = timedelta(0)
    report_healthz: bool = False
    report_metadata: bool = False

    def validated(self) -> "StartConfig":
        """Return a copy with every duration raised to at least its minimum."""
        return replace(
            self,
            evaluation_interval=max(self.evaluation_interval, MIN_EVALUATION_INTERVAL),
            error_duration=max(self.error_duration, MIN_ERROR_DURATION),
            warn_duration=max(self.warn_duration, MIN_WARN_DURATION),
        )


class StartTracker:
    """Reports until the initial listing, store and first full pass are done."""

    def __init__(
        self,
        config: StartConfig,
        prefix: str,
        registry: Optional[HealthRegistry] = None,
    ) -> None:
        self.config = config.validated()
        self.prefix = prefix
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.meta_field_startup = f"startup_{prefix}"
        self.tracker_name = f"{prefix}_startup_in_progress"
        self._lock = threading.Lock()
        self._initial_listing = False
        self._initial_store = False
        self._initial_receive_and_load = False
        self._since = self.registry.clock()
        self._logger = logging.LoggerAdapter(
            logging.getLogger(__name__), {"starttracker": prefix}
        )
        self.register_tracker()

    def register_tracker(self) -> None:
        """Register the startup check with the registry."""
        if self.config.report_metadata:
            self.registry.set_meta(self.meta_field_startup, False)
        self.registry.register(self.tracker_name, self.config.evaluation_interval, self.check)
        self._logger.info("registered tracker for startup phase")

    def check(self) -> None:
        """Raise while startup is pending past a threshold; deregister once done."""
        with self._lock:
            done = (
                self._initial_listing
                and self._initial_store
                and self._initial_receive_and_load
            )
        if not done:
            if self.config.report_healthz:
                failing_for = timedelta(seconds=self.registry.clock() - self._since)
                shown = format_duration(round_to_second(failing_for))
                message = f"successful startup pending after {shown}"
                if failing_for >= self.config.error_duration:
                    self._logger.debug(
                        "%s is violating the error threshold (%s)",
                        message, format_duration(self.config.error_duration),
                    )
                    raise RuntimeError(message)
                if failing_for >= self.config.warn_duration:
                    self._logger.debug(
                        "%s is violating the warning threshold (%s)",
                        message, format_duration(self.config.warn_duration),
                    )
                    raise HealthWarning(message)
            return

        if self.config.report_metadata:
            self.registry.set_meta(self.meta_field_startup, True)
        self._logger.info("startup phase completed successfully")
        # The startup phase is irrelevant once it has passed.
        self.registry.deregister(self.tracker_name)

    def set_passed_initial_listing(self) -> None:
        """Mark the initial storage listing as obtained."""
        with self._lock:
            self._initial_listing = True
        self._logger.debug("tracked successful initial listing")

    def set_passed_initial_store(self) -> None:
        """Mark the initial snapshot as stored or skipped."""
        with self._lock:
            self._initial_store = True
        self._logger.debug("tracked successful initial snapshot store")

    def set_pass_completed(self) -> None:
        """Mark a completed sync pass; only the first one matters."""
        with self._lock:
            first = not self._initial_receive_and_load
            self._initial_receive_and_load = True
        if first:
            self._logger.debug("tracked successful initial receive & load")