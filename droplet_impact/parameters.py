"""
Derived run constants.

``derive_constants()`` turns an ``ImpactConfig`` into the fixed quantities
the rest of the run consumes: the finest cell size, the refinement band
widths, the theoretical impact time and the run horizon.  It is called
exactly once, before the domain is built.
"""

from __future__ import annotations

from dataclasses import dataclass

from droplet_impact import defaults
from droplet_impact.wagner import wagner_max_time


class ConfigurationError(ValueError):
    """Raised when the parameters cannot describe a valid run."""


@dataclass(frozen=True)
class DerivedConstants:
    """Constants computed once from the case parameters."""

    min_cell_size: float
    drop_refined_width: float
    plate_refined_width: float
    impact_time: float
    max_time: float
    interpolate_distance: float


def derive_constants(config) -> DerivedConstants:
    """
    Compute the derived constants for a run.

    Parameters
    ----------
    config : ImpactConfig
        Validated case parameters.

    Returns
    -------
    DerivedConstants

    Raises
    ------
    ConfigurationError
        If the box width or refinement levels are non-positive, the level
        bounds are inverted, or the droplet has no initial velocity.
    """
    if config.box_width <= 0:
        raise ConfigurationError(f"box_width must be positive, got {config.box_width}")
    if config.min_level <= 0 or config.max_level <= 0:
        raise ConfigurationError(
            f"refinement levels must be positive, got "
            f"min_level={config.min_level}, max_level={config.max_level}"
        )
    if config.min_level > config.max_level:
        raise ConfigurationError(
            f"min_level ({config.min_level}) exceeds max_level ({config.max_level})"
        )
    if config.drop_vel == 0:
        raise ConfigurationError("drop_vel must be non-zero: the impact time is undefined")

    min_cell_size = config.box_width / 2 ** config.max_level
    impact_time = (config.drop_centre - config.drop_radius) / abs(config.drop_vel)
    max_time = min(config.hard_max_time, wagner_max_time(impact_time))
    if max_time <= 0:
        raise ConfigurationError(f"run horizon must be positive, got {max_time}")

    return DerivedConstants(
        min_cell_size=min_cell_size,
        drop_refined_width=defaults.DROP_REFINED_WIDTH,
        plate_refined_width=defaults.PLATE_REFINED_FACTOR * config.plate_thickness,
        impact_time=impact_time,
        max_time=max_time,
        interpolate_distance=min_cell_size,
    )
