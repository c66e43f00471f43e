"""Mutable per-run state threaded through the step loop."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional


@dataclass
class SimulationState:
    """
    Simulated time, step counter, output sequence numbers and wall-clock stamps.

    ``t`` and ``i`` are advanced by the step loop only.  Each output counter
    names the next file of its sink and is advanced by that sink after a
    successful write.
    """

    t: float = 0.0
    i: int = 0
    dt: float = 0.0
    interface_counter: int = 1
    plate_counter: int = 1
    snapshot_counter: int = 1
    start_wall: Optional[float] = None
    end_wall: Optional[float] = None
    finished: bool = False
    removed_regions: int = 0

    def mark_start(self) -> None:
        self.start_wall = time.time()

    def mark_end(self) -> None:
        self.end_wall = time.time()

    @property
    def elapsed(self) -> float:
        """Wall-clock seconds since ``mark_start`` (until ``mark_end`` once set)."""
        if self.start_wall is None:
            return 0.0
        end = self.end_wall if self.end_wall is not None else time.time()
        return end - self.start_wall
