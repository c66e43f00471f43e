"""
Post-processing of plate pressure output.

Reads the ``plate_output_<n>.txt`` files of a run, integrates the
axisymmetric force on the plate for each one, shifts time so that ``t = 0``
is the theoretical moment of impact and sets the result beside the Wagner
composite force::

    history = force_history(output_dir, impact_time=0.2)
    history = compare_with_wagner(history)
    write_force_csv(history, os.path.join(output_dir, "force.csv"))
"""

from __future__ import annotations

import logging
import os
import re

import numpy as np
import pandas as pd

from droplet_impact._imports import import_optional
from droplet_impact.wagner import composite_force

logger = logging.getLogger(__name__)

PLATE_FILE_RE = re.compile(r"^plate_output_(\d+)\.txt$")
FORCE_FILENAME = "force.csv"
PLOT_FILENAME = "force_comparison.png"
COLUMNS = ["y", "x", "p"]


def read_plate_output(path):
    """
    Read one plate pressure file.

    Returns
    -------
    tuple of (float, pandas.DataFrame)
        Output time and a frame with columns ``y``, ``x`` and ``p``.
    """
    with open(path) as f:
        header = f.readline()
    if not header.startswith("t = "):
        raise ValueError(f"{path}: expected a 't = <time>' header, got {header!r}")
    t = float(header[len("t = "):])
    try:
        raw = pd.read_csv(path, skiprows=1, header=None, names=COLUMNS, dtype=str)
    except pd.errors.EmptyDataError:
        return t, pd.DataFrame({name: pd.Series(dtype=float) for name in COLUMNS})
    frame = pd.DataFrame(
        {name: raw[name].str.split("=").str[1].str.strip().astype(float) for name in COLUMNS}
    )
    return t, frame


def plate_force(frame) -> float:
    """Force ``2 pi * integral(p r dr)`` over the sampled plate radius."""
    if len(frame) < 2:
        return 0.0
    ordered = frame.sort_values("y")
    r = ordered["y"].to_numpy()
    p = ordered["p"].to_numpy()
    return float(2 * np.pi * np.trapezoid(p * r, r))


def plate_files(output_dir) -> list:
    """Plate output files of a run, ordered by sequence number."""
    found = []
    for name in os.listdir(output_dir):
        match = PLATE_FILE_RE.match(name)
        if match:
            found.append((int(match.group(1)), os.path.join(output_dir, name)))
    return sorted(found)


def force_history(output_dir, impact_time=0.0):
    """
    Plate force for every plate output file of a run.

    Returns
    -------
    pandas.DataFrame
        Columns ``n``, ``t``, ``t_impact`` (time since the theoretical
        impact) and ``force``, ordered by time.
    """
    rows = []
    for n, path in plate_files(output_dir):
        t, frame = read_plate_output(path)
        rows.append({"n": n, "t": t, "t_impact": t - impact_time, "force": plate_force(frame)})
    if not rows:
        raise FileNotFoundError(f"No plate_output files found in {output_dir}")
    logger.info("Read %d plate output files from %s", len(rows), output_dir)
    return pd.DataFrame(rows).sort_values("t", ignore_index=True)


def compare_with_wagner(history, eps=1.0):
    """Add the Wagner composite force at each shifted time as ``wagner_force``."""
    history = history.copy()
    history["wagner_force"] = composite_force(history["t_impact"].to_numpy(), eps=eps)
    return history


def write_force_csv(history, path) -> str:
    history.to_csv(path, index=False)
    logger.info("Force history written to: %s", path)
    return path


def plot_force(history, path) -> str:
    """Plot the computed force against the Wagner force (needs the ``viz`` extra)."""
    matplotlib = import_optional("matplotlib")
    matplotlib.use("Agg")
    plt = import_optional("matplotlib.pyplot")

    fig, ax = plt.subplots(figsize=(6, 8))
    ax.plot(history["t_impact"], history["force"], color="black", linewidth=2, label="Computed")
    if "wagner_force" in history:
        ax.plot(
            history["t_impact"], history["wagner_force"],
            color="black", linewidth=2, linestyle="--", label="Wagner",
        )
    ax.set_xlabel("t")
    ax.set_ylabel("F(t)")
    ax.grid(True)
    ax.legend()
    fig.savefig(path, dpi=300)
    plt.close(fig)
    logger.info("Force plot written to: %s", path)
    return path
