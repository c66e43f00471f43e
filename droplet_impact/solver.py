"""
Flow solver boundary.

The control layer never touches the field storage of the two-phase solver.
Everything it needs goes through ``FlowSolver``: building the tree, setting
the initial fields, issuing refinement predicates and tolerances, adding the
body force, removing small structures, reading back volumes, boundary cells
and point samples, and asking for one synchronous advance per step.

Coordinates follow the axisymmetric convention of the host solver: ``x`` is
the axial distance from the plate (the plate is the ``left`` boundary at
``x = 0``) and ``y`` is the radial distance from the axis (``bottom``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Protocol, Sequence, TextIO, runtime_checkable

import numpy as np

#: Predicate over cell centres and levels, vectorised over numpy arrays.
CellPredicate = Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray]

#: Implicit function over points; positive inside the liquid.
ImplicitFunction = Callable[[np.ndarray, np.ndarray], np.ndarray]


@dataclass(frozen=True)
class BoundaryCondition:
    """A Dirichlet or Neumann condition on one field component at one side."""

    kind: str
    value: float = 0.0

    def __post_init__(self):
        if self.kind not in ("dirichlet", "neumann"):
            raise ValueError(f"Unknown boundary condition kind: {self.kind!r}")


def dirichlet(value: float = 0.0) -> BoundaryCondition:
    return BoundaryCondition("dirichlet", value)


def neumann(value: float = 0.0) -> BoundaryCondition:
    return BoundaryCondition("neumann", value)


#: Outflow far from the droplet, no-slip and no-penetration on the plate.
WALL_BOUNDARY_CONDITIONS = {
    ("u.n", "right"): neumann(0.0),
    ("p", "right"): dirichlet(0.0),
    ("u.n", "top"): neumann(0.0),
    ("p", "top"): dirichlet(0.0),
    ("u.n", "left"): dirichlet(0.0),
    ("u.t", "left"): dirichlet(0.0),
}


@dataclass(frozen=True)
class BoundaryCell:
    """A leaf cell touching a domain boundary."""

    x: float
    y: float
    delta: float


@runtime_checkable
class FlowSolver(Protocol):
    """Operations the control layer requires from a two-phase flow solver."""

    time: float

    def init_grid(self, level: int, box_width: float) -> None:
        """Create a uniform tree at ``level`` covering a square of side ``box_width``."""
        ...

    def set_fluid_properties(
        self, rho1: float, rho2: float, mu1: float, mu2: float, sigma: float
    ) -> None:
        """Densities and viscosities of liquid (1) and gas (2), surface tension."""
        ...

    def set_boundary_conditions(
        self, conditions: Mapping[tuple[str, str], BoundaryCondition]
    ) -> None:
        ...

    def refine(self, predicate: CellPredicate, max_level: int) -> int:
        """Split leaves where ``predicate`` holds until it fails or ``max_level``.

        Returns the number of cells refined.
        """
        ...

    def fraction(self, phi: ImplicitFunction) -> None:
        """Set the volume fraction from an implicit function (positive inside)."""
        ...

    def set_field(self, name: str, values: Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray]) -> None:
        """Set a field from ``values(x, y, f)`` evaluated on every leaf."""
        ...

    def adapt_wavelet(
        self,
        fields: Sequence[str],
        tolerances: Sequence[float],
        min_level: int,
        max_level: int,
    ) -> tuple[int, int]:
        """Refine/coarsen on the wavelet error of ``fields``.

        Returns ``(refined, coarsened)`` cell counts.
        """
        ...

    def add_face_acceleration(self, axis: int, value: float) -> None:
        """Add a uniform acceleration to the face field used by the next advance."""
        ...

    def remove_droplets(self, min_size: int, threshold: float, bubbles: bool = False) -> int:
        """Remove connected liquid (or gas) regions at most ``min_size`` cells across.

        Returns the number of regions removed.
        """
        ...

    def liquid_volume(self) -> float:
        """Sum of the volume fraction weighted by the cell measure (per radian)."""
        ...

    def output_facets(self, fp: TextIO) -> None:
        """Write interface segments in the solver's native text format."""
        ...

    def boundary_cells(self, side: str) -> Iterable[BoundaryCell]:
        """Leaves adjacent to ``side`` in the solver's traversal order."""
        ...

    def interpolate(self, name: str, x: float, y: float) -> float:
        """Value of field ``name`` at the point ``(x, y)``."""
        ...

    def output_snapshot(self, path: str) -> None:
        """Write the full state in the solver's native format."""
        ...

    def stable_timestep(self) -> float:
        ...

    def advance(self, dt: float) -> None:
        """Advance all fields by ``dt``, consuming the face acceleration."""
        ...

    @property
    def cell_count(self) -> int:
        ...

    @property
    def levels(self) -> tuple[int, int]:
        """Smallest and largest leaf level currently present."""
        ...
