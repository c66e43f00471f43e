"""
Simulation callback protocol and implementations.

Callbacks provide structured progress reporting for ``run_sim()``:

* **NullCallback** — does nothing (default for standalone use).
* **LoggingCallback** — logs progress via Python logging (CLI mode).

Statuses reported by the run loop are ``initialising``, ``running``,
``finished`` and ``error``.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class SimulationCallback(Protocol):
    """Protocol for simulation progress reporting."""

    def on_status(self, status: str, **kwargs: Any) -> None:
        """Called when the run status changes (e.g. 'running', 'finished', 'error')."""
        ...

    def on_metric(self, key: str, value: Any) -> None:
        """Called to report a metric (e.g. cell_count, max_time, wall_time_s)."""
        ...

    def on_file(self, key: str, filepath: str) -> None:
        """Called for every output file written (e.g. interface, plate_output)."""
        ...


class NullCallback:
    """Callback that silently discards all events.  Default for standalone use."""

    def on_status(self, status: str, **kwargs: Any) -> None:
        pass

    def on_metric(self, key: str, value: Any) -> None:
        pass

    def on_file(self, key: str, filepath: str) -> None:
        pass


class LoggingCallback:
    """Callback that logs events via Python logging.  Useful for CLI runs."""

    def __init__(self, logger_instance: logging.Logger | None = None):
        self._logger = logger_instance or logger

    def on_status(self, status: str, **kwargs: Any) -> None:
        self._logger.info("status: %s %s", status, kwargs if kwargs else "")

    def on_metric(self, key: str, value: Any) -> None:
        self._logger.info("metric: %s = %s", key, value)

    def on_file(self, key: str, filepath: str) -> None:
        # One file per output trigger; keep these out of the INFO stream.
        self._logger.debug("file: %s -> %s", key, filepath)
