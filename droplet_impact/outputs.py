"""
Output sinks.

* ``VolumeLog`` writes ``t = %g, volume = %g`` lines to the diagnostic
  stream on every trigger.
* ``InterfaceDump`` writes ``interface_<n>.txt`` (interface facets).
* ``PlatePressureProfile`` writes ``plate_output_<n>.txt`` (pressure along
  the plate).
* ``SnapshotWriter`` writes ``gfs_output_<n>.gfs`` (full solver state).

The three file sinks are gated by a shared ``OutputWindow``: a trigger
outside it is skipped and the sequence number is not advanced.  Files are
written under a temporary name and renamed into place, so a file either
exists complete or not at all.  Write failures propagate.
"""

from __future__ import annotations

import logging
import math
import os
import sys
from contextlib import contextmanager

from droplet_impact import defaults
from droplet_impact.callbacks import NullCallback

logger = logging.getLogger(__name__)

INTERFACE_PATTERN = "interface_{}.txt"
PLATE_PATTERN = "plate_output_{}.txt"
SNAPSHOT_PATTERN = "gfs_output_{}.gfs"


@contextmanager
def atomic_path(path):
    """Yield a temporary path that is renamed to ``path`` on success."""
    tmp_path = f"{path}.part"
    try:
        yield tmp_path
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    os.replace(tmp_path, path)


class OutputWindow:
    """Closed interval ``[start, end]`` of simulated time."""

    def __init__(self, start: float, end: float, eps: float = defaults.TIME_EPSILON):
        if end < start:
            raise ValueError(f"output window end ({end}) is before its start ({start})")
        self.start = start
        self.end = end
        self.eps = eps

    def contains(self, t: float) -> bool:
        return self.start - self.eps <= t <= self.end + self.eps

    def __repr__(self):
        return f"OutputWindow({self.start:g}, {self.end:g})"


class VolumeLog:
    """Total liquid volume ``2 * pi * sum(f dV)`` written to the diagnostic stream."""

    def __init__(self, stream=None, monitor=None):
        self.stream = stream if stream is not None else sys.stderr
        self.monitor = monitor

    def __call__(self, state, solver) -> float:
        volume = 2 * math.pi * solver.liquid_volume()
        self.stream.write(f"t = {state.t:g}, volume = {volume:g}\n")
        self.stream.flush()
        if self.monitor is not None:
            self.monitor.record(state, solver, volume)
        return volume


class WindowedFileSink:
    """
    Base for sinks writing one numbered file per trigger inside the window.

    Subclasses set ``pattern``, ``counter`` (the ``SimulationState``
    attribute holding the next sequence number) and ``key`` (the name
    reported to the callback), and implement ``write(path, state, solver)``.
    """

    pattern = ""
    counter = ""
    key = ""

    def __init__(self, output_dir, window, callback=None):
        self.output_dir = output_dir
        self.window = window
        self.callback = callback or NullCallback()

    def write(self, path, state, solver):
        raise NotImplementedError

    def __call__(self, state, solver):
        if not self.window.contains(state.t):
            logger.debug("%s: t = %g outside %r, skipped", self.key, state.t, self.window)
            return None
        n = getattr(state, self.counter)
        path = os.path.join(self.output_dir, self.pattern.format(n))
        with atomic_path(path) as tmp_path:
            self.write(tmp_path, state, solver)
        setattr(state, self.counter, n + 1)
        logger.debug("t = %g: wrote %s", state.t, path)
        self.callback.on_file(self.key, path)
        return path


class InterfaceDump(WindowedFileSink):
    pattern = INTERFACE_PATTERN
    counter = "interface_counter"
    key = "interface"

    def write(self, path, state, solver):
        with open(path, "w") as fp:
            solver.output_facets(fp)


class PlatePressureProfile(WindowedFileSink):
    """
    Pressure along the plate.

    One line per leaf cell on the plate boundary whose radial coordinate is
    inside the plate, in the solver's traversal order.  The pressure is
    sampled ``offset`` away from the wall, into the fluid.
    """

    pattern = PLATE_PATTERN
    counter = "plate_counter"
    key = "plate_output"

    def __init__(self, output_dir, window, plate_width, offset, callback=None):
        super().__init__(output_dir, window, callback)
        self.plate_width = plate_width
        self.offset = offset

    def write(self, path, state, solver):
        with open(path, "w") as fp:
            fp.write(f"t = {state.t:g}\n")
            for cell in solver.boundary_cells("left"):
                if cell.y >= self.plate_width:
                    continue
                p = solver.interpolate("p", cell.x + self.offset, cell.y)
                fp.write(f"y = {cell.y:g}, x = {cell.x:g}, p = {p:g}\n")


class SnapshotWriter(WindowedFileSink):
    pattern = SNAPSHOT_PATTERN
    counter = "snapshot_counter"
    key = "snapshot"

    def write(self, path, state, solver):
        solver.output_snapshot(path)
