"""Shared fixtures for the droplet_impact test suite."""

import json
import os
import shutil

import pytest

FIXTURE_DIR = os.path.join(os.path.dirname(__file__), "data", "minimal_case")
EXAMPLE_DIR = os.path.join(os.path.dirname(__file__), "..", "examples", "stationary_plate")


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: takes > 30s")


# ── Fixtures ──────────────────────────────────────────────────────────

def write_case(directory, **overrides):
    """Write a small, fast case.json into ``directory`` and return it."""
    case = {
        "format_version": "1.0",
        "name": "test_case",
        "drop_radius": 1.0,
        "initial_drop_height": 0.1,
        "min_level": 3,
        "max_level": 6,
        "box_width": 4.0,
        "volume_output_timestep": 0.01,
        "interface_output_timestep": 0.05,
        "plate_output_timestep": 0.05,
        "gfs_output_timestep": 0.1,
        "hard_max_time": 0.2,
    }
    case.update(overrides)
    (directory / "case.json").write_text(json.dumps(case))
    return directory


@pytest.fixture
def case_dir(tmp_path):
    """A minimal case directory: levels 3..6, horizon 0.2, impact at 0.1."""
    return write_case(tmp_path)


@pytest.fixture
def minimal_case_copy(tmp_path):
    """Copy of tests/data/minimal_case (avoids writing outputs into the repo)."""
    dst = tmp_path / "minimal_case"
    shutil.copytree(FIXTURE_DIR, str(dst))
    return dst


@pytest.fixture
def config():
    from droplet_impact.config import ImpactConfig

    return ImpactConfig(
        min_level=3, max_level=6, box_width=4.0, initial_drop_height=0.1, hard_max_time=0.2
    )


@pytest.fixture
def derived(config):
    from droplet_impact.parameters import derive_constants

    return derive_constants(config)


@pytest.fixture
def solver():
    from droplet_impact.kinematic import KinematicSolver

    return KinematicSolver()


@pytest.fixture
def built(solver, config, derived):
    """A solver initialised with the droplet of ``config``."""
    from droplet_impact.initial import build_domain
    from droplet_impact.state import SimulationState

    state = SimulationState()
    build_domain(solver, config, derived, state)
    return solver, state
