"""
Domain and initial-state construction.

``build_domain()`` runs once, at ``t = 0``: it creates the tree at the
minimum level, hands the fluid properties and wall boundary conditions to
the solver, pre-refines a thin annulus around the droplet surface and sets
the volume fraction and axial velocity of the droplet.
"""

from __future__ import annotations

import logging

import numpy as np

from droplet_impact.solver import WALL_BOUNDARY_CONDITIONS

logger = logging.getLogger(__name__)


def fluid_properties(config) -> dict:
    """Dimensionless densities, viscosities and surface tension for the solver."""
    mu1 = 1.0 / config.reynolds
    return {
        "rho1": 1.0,
        "rho2": config.rho_ratio,
        "mu1": mu1,
        "mu2": mu1 * config.mu_ratio,
        "sigma": 1.0 / config.weber,
    }


def droplet_surface(config):
    """Implicit sphere ``R^2 - (x - x_c)^2 - y^2``, positive inside the droplet."""
    radius = config.drop_radius
    centre = config.drop_centre

    def phi(x, y):
        return radius ** 2 - (x - centre) ** 2 - y ** 2

    return phi


def surface_band(config, band_width):
    """
    Refinement predicate for the annulus ``R - band < r < R + band``.

    A cell is flagged when any part of it may lie in the annulus, so the
    band is found even while cells are much wider than it.
    """
    radius = config.drop_radius
    centre = config.drop_centre
    box_width = config.box_width

    def predicate(x, y, level):
        half_diagonal = np.sqrt(2.0) / 2.0 * box_width / 2.0 ** level
        distance = np.sqrt((x - centre) ** 2 + y ** 2)
        return np.abs(distance - radius) < band_width + half_diagonal

    return predicate


def build_domain(solver, config, derived, state) -> int:
    """
    Initialise the solver for a new run.

    Parameters
    ----------
    solver : FlowSolver
    config : ImpactConfig
    derived : DerivedConstants
    state : SimulationState
        Its start wall-clock stamp is recorded.

    Returns
    -------
    int
        Number of cells refined around the droplet surface.
    """
    state.mark_start()
    solver.init_grid(config.min_level, config.box_width)
    solver.set_fluid_properties(**fluid_properties(config))
    solver.set_boundary_conditions(WALL_BOUNDARY_CONDITIONS)

    refined = solver.refine(surface_band(config, derived.drop_refined_width), config.max_level)
    solver.fraction(droplet_surface(config))
    drop_vel = config.drop_vel
    solver.set_field("u.x", lambda x, y, f: drop_vel * f)

    logger.info(
        "Initial droplet: radius %g centred at x = %g, velocity %g, %d cells (%d refined)",
        config.drop_radius, config.drop_centre, drop_vel, solver.cell_count, refined,
    )
    return refined
