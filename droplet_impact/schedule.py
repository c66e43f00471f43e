"""
Ordered per-step and per-time actions.

Every action of the step loop is a ``ScheduledTask``: a name, a trigger
deciding whether it is due, the action itself and the phase it belongs to.
``pre`` tasks run before the solver advances, ``post`` tasks after.  Within
a phase tasks run in registration order.

Time-triggered tasks fire at ``k * interval`` for ``k = 0, 1, ...``.  The
loop uses ``Scheduler.next_time`` and ``clamp_timestep`` so that simulated
time lands exactly on every trigger time instead of stepping over it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from droplet_impact import defaults

logger = logging.getLogger(__name__)

PHASES = ("pre", "post")


class EveryStep:
    """Trigger that is due on every step."""

    def due(self, t: float) -> bool:
        return True

    def fired(self, t: float) -> None:
        pass

    def next_time(self, t: float) -> Optional[float]:
        return None

    def __repr__(self):
        return "EveryStep()"


class EveryInterval:
    """
    Trigger that is due at ``0, interval, 2 * interval, ...`` of simulated time.

    The trigger counts the occurrences it has fired, so each multiple of the
    interval fires once even if time overshoots it.
    """

    def __init__(self, interval: float, eps: float = defaults.TIME_EPSILON):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = float(interval)
        self.eps = eps
        self.k = 0

    def _time(self, k: int) -> float:
        return k * self.interval

    def due(self, t: float) -> bool:
        return t >= self._time(self.k) - self.eps

    def fired(self, t: float) -> None:
        while self._time(self.k) <= t + self.eps:
            self.k += 1

    def next_time(self, t: float) -> Optional[float]:
        return self._time(self.k)

    def __repr__(self):
        return f"EveryInterval({self.interval:g})"


@dataclass
class ScheduledTask:
    name: str
    trigger: object
    action: Callable
    phase: str = "post"

    def __post_init__(self):
        if self.phase not in PHASES:
            raise ValueError(f"Unknown phase {self.phase!r}; expected one of {PHASES}")


class Scheduler:
    """Registry of scheduled tasks run phase by phase."""

    def __init__(self):
        self.tasks: list[ScheduledTask] = []

    def add(self, name, trigger, action, phase="post") -> ScheduledTask:
        task = ScheduledTask(name, trigger, action, phase)
        self.tasks.append(task)
        return task

    def run_phase(self, phase, state, solver) -> list[str]:
        """Run the due tasks of ``phase``; return their names in the order run."""
        ran = []
        for task in self.tasks:
            if task.phase != phase or not task.trigger.due(state.t):
                continue
            task.action(state, solver)
            task.trigger.fired(state.t)
            ran.append(task.name)
        return ran

    def next_time(self, t: float) -> Optional[float]:
        """Earliest pending trigger time of any time-triggered task."""
        times = [task.trigger.next_time(t) for task in self.tasks]
        times = [tn for tn in times if tn is not None]
        return min(times) if times else None


def clamp_timestep(t, dt, tnext, eps=defaults.TIME_EPSILON) -> float:
    """
    Shorten ``dt`` so that a whole number of equal steps reaches ``tnext``.

    The remaining interval is split into ``ceil((tnext - t) / dt)`` equal
    steps and one such step returned, so time never steps over ``tnext``
    and no sliver step is left just before it.
    """
    if dt <= 0:
        raise ValueError(f"timestep must be positive, got {dt}")
    if tnext is None:
        return dt
    remaining = tnext - t
    if remaining <= eps:
        return dt
    n = math.ceil(remaining / dt - eps)
    return remaining / max(n, 1)
