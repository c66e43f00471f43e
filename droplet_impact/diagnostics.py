"""
Run diagnostics — per-volume-log metrics and run summary.

Produces two output files:

``run_diagnostics.csv``
    One row per volume-log trigger: simulated time, step, last timestep,
    cell count, deepest level, liquid volume, its drift from the initial
    volume, wall time and process memory.  Useful for spotting where the
    droplet cleanup or the impact itself removes liquid.

``run_summary.json``
    Single-record structured summary of the complete run, for comparing
    runs across parameter sweeps and machines.

Usage (inside run.py)::

    monitor = RunMonitor(output_dir, run_label=config.run_label, max_time=horizon)
    volume_log = VolumeLog(stream, monitor=monitor)
    ...
    monitor.finalize(state)
"""

import csv
import importlib.metadata
import json
import logging
import os
import platform
import time
from datetime import datetime, timezone

import numpy as np
import psutil

logger = logging.getLogger(__name__)

DIAGNOSTICS_FILENAME = "run_diagnostics.csv"
SUMMARY_FILENAME = "run_summary.json"

#: Schema version for the run_summary JSON — bump when fields are added/removed.
SUMMARY_SCHEMA_VERSION = "1"


class RunMonitor:
    """
    Metrics collection for a droplet impact run.

    Parameters
    ----------
    output_dir : str
        Directory for output files.
    run_label : str, optional
        Written to the JSON summary.
    max_time : float, optional
        Run horizon; used to decide whether the run completed.
    config : dict, optional
        Case parameters, copied into the summary.
    """

    CSV_FIELDS = [
        "sim_time",
        "step",
        "dt",
        "cells",
        "max_level",
        "volume",
        "volume_drift",
        "wall_time_s",
        "mem_mb",
    ]

    def __init__(self, output_dir, run_label=None, max_time=None, config=None):
        self.output_dir = output_dir
        self.run_label = run_label or ""
        self.max_time = float(max_time) if max_time is not None else None
        self.config = config or {}

        self._csv_path = os.path.join(output_dir, DIAGNOSTICS_FILENAME)
        self._json_path = os.path.join(output_dir, SUMMARY_FILENAME)
        self._records = []
        self._initial_volume = None
        self._process = psutil.Process()

        self._start_wall_time = time.time()
        self._started_at = datetime.now(tz=timezone.utc)

        self._csv_file = open(self._csv_path, "w", newline="")
        self._writer = csv.DictWriter(self._csv_file, fieldnames=self.CSV_FIELDS)
        self._writer.writeheader()
        self._csv_file.flush()

    @property
    def records(self) -> list:
        return list(self._records)

    def record(self, state, solver, volume: float) -> dict:
        """
        Record one row.

        Parameters
        ----------
        state : SimulationState
        solver : FlowSolver
        volume : float
            Total liquid volume, as written to the volume log.

        Returns
        -------
        dict
            The recorded metrics row (also written to the CSV).
        """
        if self._initial_volume is None:
            self._initial_volume = volume
        drift = (volume - self._initial_volume) / self._initial_volume if self._initial_volume else 0.0

        rec = {
            "sim_time": state.t,
            "step": state.i,
            "dt": state.dt,
            "cells": solver.cell_count,
            "max_level": solver.levels[1],
            "volume": volume,
            "volume_drift": drift,
            "wall_time_s": round(time.time() - self._start_wall_time, 3),
            "mem_mb": round(self._process.memory_info().rss / (1024 ** 2), 1),
        }
        self._records.append(rec)
        self._writer.writerow(rec)
        self._csv_file.flush()
        logger.debug("t = %g | %s", state.t, self.format_log_suffix(rec))
        return rec

    def format_log_suffix(self, rec: dict) -> str:
        """
        Compact progress string.

        Example output::

            step=120 dt=0.00049 cells=5821 lvl=10 drift=-0.12%
        """
        return (
            f"step={rec['step']} "
            f"dt={rec['dt']:.2g} "
            f"cells={rec['cells']} "
            f"lvl={rec['max_level']} "
            f"drift={rec['volume_drift'] * 100:.2f}%"
        )

    def _collect_environment(self) -> dict:
        """Collect hardware and software environment metadata."""
        env = {
            "hostname": platform.node(),
            "os": f"{platform.system()}-{platform.release()}-{platform.machine()}",
            "python_version": platform.python_version(),
            "cpu_model": platform.processor() or "unknown",
            "cpu_count_logical": psutil.cpu_count(logical=True),
            "cpu_count_physical": psutil.cpu_count(logical=False),
            "total_ram_gb": round(psutil.virtual_memory().total / (1024 ** 3), 2),
            "droplet_impact_version": "unknown",
            "numpy_version": np.__version__,
        }
        try:
            env["droplet_impact_version"] = importlib.metadata.version("droplet_impact")
        except importlib.metadata.PackageNotFoundError:
            pass
        return env

    def _build_summary(self, state, finished_at: datetime) -> dict:
        """Assemble the complete run summary dict from accumulated records."""
        drifts = [r["volume_drift"] for r in self._records]
        final = self._records[-1] if self._records else {}
        worst_drift = max(drifts, key=abs, default=0.0)
        completed = bool(state is not None and state.finished)

        return {
            "schema_version": SUMMARY_SCHEMA_VERSION,
            "run": {
                "run_label": self.run_label,
                "started_at": self._started_at.isoformat(),
                "finished_at": finished_at.isoformat(),
                "total_wall_time_s": round(time.time() - self._start_wall_time, 3),
                "outcome": "completed" if completed else "incomplete",
            },
            "model": {
                "max_time": self.max_time,
                "final_sim_time": state.t if state is not None else 0.0,
                "steps": state.i if state is not None else 0,
                "removed_regions": state.removed_regions if state is not None else 0,
                "parameters": self.config,
            },
            "volume": {
                "initial": self._initial_volume,
                "final": final.get("volume"),
                "final_drift": final.get("volume_drift", 0.0),
                "worst_drift": worst_drift,
            },
            "performance": {
                "records": len(self._records),
                "peak_cells": max((r["cells"] for r in self._records), default=0),
                "peak_mem_mb": max((r["mem_mb"] for r in self._records), default=0.0),
            },
            "environment": self._collect_environment(),
        }

    def finalize(self, state=None) -> dict:
        """Write the JSON run summary, log a brief recap, and close the CSV."""
        summary = self._build_summary(state, datetime.now(tz=timezone.utc))
        if self._records:
            logger.info(
                "Diagnostics summary: peak_cells=%d final_drift=%.3f%% worst_drift=%.3f%%",
                summary["performance"]["peak_cells"],
                summary["volume"]["final_drift"] * 100,
                summary["volume"]["worst_drift"] * 100,
            )
        with open(self._json_path, "w") as f:
            json.dump(summary, f, indent=2)
        self._csv_file.close()
        logger.info("Diagnostics written to: %s", self._csv_path)
        return summary

    def close(self) -> None:
        """Close the CSV without writing a summary (used on error)."""
        if not self._csv_file.closed:
            self._csv_file.close()
