"""
Run orchestration.

``run_sim()`` loads a case, derives the run constants, builds the initial
droplet and drives the step loop::

    build (t = 0) -> post tasks at t = 0
    repeat:
        pre tasks   (refinement, gravity)
        advance     (one solver step, clamped onto the next trigger time)
        post tasks  (cleanup, volume log, interface, plate, snapshot, termination)

until the termination task fires at the run horizon.
"""

from __future__ import annotations

import logging
import os
import sys
import traceback

from droplet_impact import defaults
from droplet_impact.callbacks import NullCallback
from droplet_impact.cleanup import InterfaceCleanup
from droplet_impact.config import OUTPUTS_PREFIX, ImpactConfig
from droplet_impact.diagnostics import RunMonitor
from droplet_impact.forcing import GravityForcing
from droplet_impact.initial import build_domain
from droplet_impact.kinematic import KinematicSolver
from droplet_impact.logging_setup import configure_simulation_logging, teardown_simulation_logging
from droplet_impact.outputs import (
    InterfaceDump,
    OutputWindow,
    PlatePressureProfile,
    SnapshotWriter,
    VolumeLog,
)
from droplet_impact.parameters import derive_constants
from droplet_impact.refinement import RefinementController
from droplet_impact.schedule import EveryInterval, EveryStep, Scheduler, clamp_timestep
from droplet_impact.solver import FlowSolver
from droplet_impact.state import SimulationState
from droplet_impact.termination import TerminationController

logger = logging.getLogger(__name__)


def output_directory(case_dir, config) -> str:
    return os.path.join(case_dir, OUTPUTS_PREFIX + config.run_label)


def build_scheduler(config, derived, output_dir, stream, callback, monitor=None):
    """
    Register every per-step and per-time task in execution order.

    Returns
    -------
    tuple of (Scheduler, TerminationController)
    """
    window = OutputWindow(config.start_output_time, config.end_output_time)
    termination = TerminationController(derived.max_time, stream)

    scheduler = Scheduler()
    scheduler.add("refinement", EveryStep(), RefinementController(config, derived), phase="pre")
    scheduler.add("gravity", EveryStep(), GravityForcing(config.froude), phase="pre")
    scheduler.add("cleanup", EveryStep(), InterfaceCleanup())
    scheduler.add(
        "volume",
        EveryInterval(config.volume_output_timestep),
        VolumeLog(stream, monitor=monitor),
    )
    scheduler.add(
        "interface",
        EveryInterval(config.interface_output_timestep),
        InterfaceDump(output_dir, window, callback),
    )
    scheduler.add(
        "plate",
        EveryInterval(config.plate_output_timestep),
        PlatePressureProfile(
            output_dir, window, config.plate_width, derived.interpolate_distance, callback
        ),
    )
    scheduler.add(
        "snapshot",
        EveryInterval(config.gfs_output_timestep),
        SnapshotWriter(output_dir, window, callback),
    )
    scheduler.add("termination", EveryStep(), termination)
    return scheduler, termination


def step_loop(solver, scheduler, termination, state, max_steps=None) -> SimulationState:
    """
    Advance until the termination task fires (or ``max_steps`` is exhausted).

    Pre tasks run ahead of the post tasks at every time, including t = 0, so
    each output sees the tree as the next step will advance it.
    """
    while True:
        scheduler.run_phase("pre", state, solver)
        scheduler.run_phase("post", state, solver)
        if state.finished:
            break
        if max_steps is not None and state.i >= max_steps:
            logger.warning("Stopped after %d steps at t = %g", state.i, state.t)
            break
        tnext = scheduler.next_time(state.t)
        if tnext is None or tnext > termination.horizon:
            tnext = termination.horizon
        dt = clamp_timestep(state.t, solver.stable_timestep(), tnext)
        solver.advance(dt)
        state.t += dt
        state.i += 1
        state.dt = dt
    return state


def run_sim(case_dir, callback=None, solver=None, diagnostic_stream=None,
            max_steps=None, console_level=logging.INFO) -> SimulationState:
    """
    Run one droplet impact case.

    Parameters
    ----------
    case_dir : str
        Directory containing ``case.json``.  Outputs are written to
        ``<case_dir>/outputs_<run_label>``.
    callback : SimulationCallback, optional
        Progress reporting; defaults to ``NullCallback``.
    solver : FlowSolver, optional
        Defaults to a ``KinematicSolver``.
    diagnostic_stream : file-like, optional
        Receives the volume log and the ``Finished after`` line; defaults to
        ``sys.stderr``.
    max_steps : int, optional
        Safety limit on the number of steps.
    console_level : int or None
        Console logging level, ``None`` to log to the file only.

    Returns
    -------
    SimulationState
        The final state of the run.
    """
    callback = callback or NullCallback()
    stream = diagnostic_stream if diagnostic_stream is not None else sys.stderr
    config = ImpactConfig.from_case(case_dir)
    output_dir = output_directory(case_dir, config)
    configure_simulation_logging(output_dir, console_level=console_level)
    logger.info("run_sim started: %s", config.run_label)
    monitor = None
    try:
        callback.on_status("initialising")
        derived = derive_constants(config)
        logger.info(
            "Derived constants: min cell %g, impact time %g, run horizon %g",
            derived.min_cell_size, derived.impact_time, derived.max_time,
        )
        callback.on_metric("max_time", derived.max_time)

        if solver is None:
            solver = KinematicSolver(defaults.CFL, defaults.MAX_TIMESTEP)
        if not isinstance(solver, FlowSolver):
            raise TypeError(f"{type(solver).__name__} does not implement FlowSolver")

        monitor = RunMonitor(
            output_dir,
            run_label=config.run_label,
            max_time=derived.max_time,
            config=config.model_dump(),
        )
        scheduler, termination = build_scheduler(
            config, derived, output_dir, stream, callback, monitor
        )
        state = SimulationState()
        build_domain(solver, config, derived, state)
        callback.on_metric("cell_count", solver.cell_count)

        callback.on_status("running")
        step_loop(solver, scheduler, termination, state, max_steps=max_steps)

        summary = monitor.finalize(state)
        callback.on_metric("wall_time_s", round(state.elapsed, 3))
        callback.on_metric("volume_drift", summary["volume"]["final_drift"])
        callback.on_status("finished" if state.finished else "incomplete")
        logger.info("finished run: %s", config.run_label)
    except Exception:
        if monitor is not None:
            monitor.close()
        callback.on_status("error")
        logger.error(traceback.format_exc())
        raise
    finally:
        teardown_simulation_logging()
    return state
