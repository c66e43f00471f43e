"""
Default constants for droplet impact runs.

Physical and computational parameters that a case may override live on
``ImpactConfig``; the values here are the fixed numerical choices of the
control layer.
"""

# Adaptive refinement
WAVELET_TOLERANCE = 1e-2
"""Wavelet error tolerance applied to each of u.x, u.y and f."""

ADAPT_FIELDS = ("u.x", "u.y", "f")
"""Fields fed to the wavelet error estimator, in tolerance order."""

DROP_REFINED_WIDTH = 0.05
"""Half-width of the annulus pre-refined around the initial droplet surface."""

PLATE_REFINED_FACTOR = 0.3
"""Plate refinement band width as a fraction of the plate thickness."""

# Small structure removal
REMOVE_DROPLET_MIN_SIZE = 5
"""Regions spanning this many cells (per direction) or fewer are removed."""

REMOVE_DROPLET_THRESHOLD = 1e-4
"""Volume fraction above which a cell counts as liquid when tagging droplets."""

REMOVE_BUBBLE_THRESHOLD = 1e-4
"""Gas fraction (1 - f) above which a cell counts as gas when tagging bubbles."""

# Output cadence
VOLUME_OUTPUT_INTERVAL = 1e-3
"""Simulated-time interval between volume log lines."""

# Termination
WAGNER_TURNOVER_TIME = 1.0 / 3.0
"""Time after impact at which the Wagner turnover point reaches the droplet radius."""

WAGNER_SAFETY_FACTOR = 1.5
"""Multiplier on (impact time + turnover time) giving the run horizon."""

# Time stepping
CFL = 0.5
"""Courant number used by the stand-in solver's stable timestep."""

MAX_TIMESTEP = 1e-2
"""Upper bound on any single timestep."""

TIME_EPSILON = 1e-9
"""Absolute tolerance, in simulated time, when comparing against trigger times
and the run horizon."""
