"""Per-step mesh adaptation: wavelet pass followed by the plate band."""

from __future__ import annotations

import logging

from droplet_impact import defaults

logger = logging.getLogger(__name__)


class RefinementController:
    """
    Adapt the tree on the wavelet error of the flow fields, then force the
    finest level in the band above the plate.

    The plate band covers axial positions below half the plate refinement
    width and radial positions inside the plate.  It runs after the wavelet
    pass, so the band is at ``max_level`` whatever the error estimate says.
    """

    def __init__(self, config, derived, fields=defaults.ADAPT_FIELDS,
                 tolerance=defaults.WAVELET_TOLERANCE):
        self.fields = tuple(fields)
        self.tolerances = tuple(tolerance for _ in self.fields)
        self.min_level = config.min_level
        self.max_level = config.max_level
        self.box_width = config.box_width
        self.band_height = 0.5 * derived.plate_refined_width
        self.plate_width = config.plate_width

    def plate_band(self, x, y, level):
        """Cells overlapping the band ``x < band_height, y < plate_width``."""
        half = 0.5 * self.box_width / 2.0 ** level
        return (x - half < self.band_height) & (y - half < self.plate_width)

    def __call__(self, state, solver):
        refined, coarsened = solver.adapt_wavelet(
            self.fields, self.tolerances, self.min_level, self.max_level
        )
        forced = solver.refine(self.plate_band, self.max_level)
        logger.debug(
            "Step %d: wavelet refined %d, coarsened %d; plate band refined %d; %d cells",
            state.i, refined, coarsened, forced, solver.cell_count,
        )
        return refined, coarsened, forced
