"""Run horizon check and the final diagnostic line."""

from __future__ import annotations

import logging
import sys

from droplet_impact import defaults

logger = logging.getLogger(__name__)


class TerminationController:
    """
    Stop the run once simulated time reaches the horizon.

    On the first step at or past the horizon the end wall-clock stamp is
    recorded, ``Finished after <seconds> seconds`` is written to the
    diagnostic stream and ``state.finished`` is set.  Later calls do nothing.
    """

    def __init__(self, horizon: float, stream=None, eps: float = defaults.TIME_EPSILON):
        self.horizon = horizon
        self.stream = stream if stream is not None else sys.stderr
        self.eps = eps

    def reached(self, t: float) -> bool:
        return t >= self.horizon - self.eps

    def __call__(self, state, solver) -> bool:
        if state.finished or not self.reached(state.t):
            return False
        state.mark_end()
        state.finished = True
        self.stream.write(f"Finished after {state.elapsed:g} seconds\n")
        self.stream.flush()
        logger.info("Reached t = %g after %d steps", state.t, state.i)
        return True
