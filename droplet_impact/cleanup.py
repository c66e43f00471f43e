"""
Removal of sub-resolution liquid droplets and gas bubbles.

Each step, connected liquid regions and then connected gas regions spanning
no more than ``min_size`` cells across are absorbed into the surrounding
phase.  The removal is not volume conserving; the volume log shows the
resulting drift.
"""

from __future__ import annotations

import logging

from droplet_impact import defaults

logger = logging.getLogger(__name__)


class InterfaceCleanup:
    def __init__(
        self,
        min_size: int = defaults.REMOVE_DROPLET_MIN_SIZE,
        droplet_threshold: float = defaults.REMOVE_DROPLET_THRESHOLD,
        bubble_threshold: float = defaults.REMOVE_BUBBLE_THRESHOLD,
    ):
        self.min_size = min_size
        self.droplet_threshold = droplet_threshold
        self.bubble_threshold = bubble_threshold

    def __call__(self, state, solver) -> int:
        droplets = solver.remove_droplets(self.min_size, self.droplet_threshold)
        bubbles = solver.remove_droplets(self.min_size, self.bubble_threshold, bubbles=True)
        removed = droplets + bubbles
        if removed:
            logger.debug(
                "t = %g: removed %d droplets and %d bubbles", state.t, droplets, bubbles
            )
        state.removed_regions += removed
        return removed
