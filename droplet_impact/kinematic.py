"""
Kinematic stand-in for the two-phase flow solver.

``KinematicSolver`` implements ``FlowSolver`` on an axisymmetric quadtree
held as flat numpy arrays of leaf cells.  The tree operations are real
(refinement predicates, Haar-wavelet adaptation, sub-sampled volume
fractions, connected-component tagging, PLIC facets) but the flow is not:
the liquid is carried rigidly with its mean axial velocity, accelerated by
the face acceleration the control layer adds, and the pressure is the
Wagner composite plate pressure once the liquid touches the wall.  This is
the truncated-sphere geometry of leading-order Wagner theory, so liquid that
reaches the plate leaves the domain and the logged volume drops after
impact.

It exists so the control layer can be run end to end, and tested, without
an external Navier-Stokes solver.
"""

from __future__ import annotations

import logging
from typing import Iterator, Mapping

import numpy as np
from scipy import ndimage

from droplet_impact import defaults, wagner
from droplet_impact.solver import BoundaryCell, BoundaryCondition

logger = logging.getLogger(__name__)

#: Sub-samples per direction when computing volume fractions.
FRACTION_SAMPLES = 8

#: Sub-samples per direction when remapping the volume fraction.
TRANSPORT_SAMPLES = 4

#: Volume fraction above which a wall cell counts as wetted.
CONTACT_THRESHOLD = 0.5

#: Cells with ``EPS < f < 1 - EPS`` carry an interface facet.
INTERFACE_EPS = 1e-6

#: Deepest level the leaf key encoding supports.
MAX_SUPPORTED_LEVEL = 20

FIELDS = ("f", "u.x", "u.y", "p")


def line_alpha(c, nx, ny):
    """
    Line constant for a PLIC reconstruction in the unit cell ``[-0.5, 0.5]^2``.

    The liquid occupies ``nx * x + ny * y < alpha`` with area ``c``; the
    normal must satisfy ``|nx| + |ny| = 1``.
    """
    c = np.clip(c, 0.0, 1.0)
    n1 = np.minimum(np.abs(nx), np.abs(ny))
    n2 = np.maximum(np.abs(nx), np.abs(ny))
    v1 = n1 / 2.0
    with np.errstate(divide="ignore", invalid="ignore"):
        lower = c <= np.where(n2 > 0, v1 / n2, 0.0)
        upper = c <= 1.0 - np.where(n2 > 0, v1 / n2, 0.0)
        alpha = np.where(
            lower,
            np.sqrt(2.0 * c * n1 * n2),
            np.where(upper, c * n2 + v1, n1 + n2 - np.sqrt(2.0 * n1 * n2 * (1.0 - c))),
        )
    alpha = alpha + np.where(nx < 0, nx, 0.0) + np.where(ny < 0, ny, 0.0)
    return alpha - (nx + ny) / 2.0


def facet_points(nx, ny, alpha):
    """Intersections of ``nx * x + ny * y = alpha`` with the unit cell edges."""
    points = []
    for s in (-0.5, 0.5):
        if abs(ny) > 1e-4 and len(points) < 2:
            a = (alpha - s * nx) / ny
            if -0.5 <= a <= 0.5:
                points.append((s, a))
    for s in (-0.5, 0.5):
        if abs(nx) > 1e-4 and len(points) < 2:
            a = (alpha - s * ny) / nx
            if -0.5 <= a <= 0.5:
                points.append((a, s))
    return points


class KinematicSolver:
    """
    Quadtree-backed stand-in for an axisymmetric two-phase solver.

    Parameters
    ----------
    cfl : float
        Courant number for ``stable_timestep``.
    max_timestep : float
        Upper bound on ``stable_timestep``.
    """

    def __init__(self, cfl=defaults.CFL, max_timestep=defaults.MAX_TIMESTEP):
        self.cfl = float(cfl)
        self.max_timestep = float(max_timestep)
        self.time = 0.0
        self.box_width = 1.0
        self.properties = {}
        self.boundary_conditions = {}
        self.contact_time = None
        self._level = np.zeros(0, dtype=np.int64)
        self._ix = np.zeros(0, dtype=np.int64)
        self._iy = np.zeros(0, dtype=np.int64)
        self._fields = {name: np.zeros(0) for name in FIELDS}
        self._acceleration = np.zeros(2)
        self._image = None

    # ------------------------------------------------------------------
    # Tree construction and geometry
    # ------------------------------------------------------------------

    def init_grid(self, level: int, box_width: float) -> None:
        if not 0 < level <= MAX_SUPPORTED_LEVEL:
            raise ValueError(f"level must be in 1..{MAX_SUPPORTED_LEVEL}, got {level}")
        n = 2 ** level
        ix, iy = np.meshgrid(np.arange(n), np.arange(n), indexing="ij")
        self._level = np.full(n * n, level, dtype=np.int64)
        self._ix = ix.ravel().astype(np.int64)
        self._iy = iy.ravel().astype(np.int64)
        self._fields = {name: np.zeros(n * n) for name in FIELDS}
        self.box_width = float(box_width)
        self.time = 0.0
        self.contact_time = None
        self._image = None
        logger.debug("Initial grid: %d cells at level %d", n * n, level)

    @property
    def cell_count(self) -> int:
        return int(self._level.size)

    @property
    def levels(self) -> tuple[int, int]:
        """Shallowest and deepest leaf level; ``(0, 0)`` before ``init_grid``."""
        if self._level.size == 0:
            return 0, 0
        return int(self._level.min()), int(self._level.max())

    def _delta(self) -> np.ndarray:
        return self.box_width / 2.0 ** self._level

    def _centres(self):
        delta = self._delta()
        return (self._ix + 0.5) * delta, (self._iy + 0.5) * delta

    def field(self, name: str) -> np.ndarray:
        """Leaf values of a field (read-only view)."""
        values = self._fields[name].view()
        values.flags.writeable = False
        return values

    def _replace(self, keep, level, ix, iy, fields) -> None:
        self._level = np.concatenate([self._level[keep], level])
        self._ix = np.concatenate([self._ix[keep], ix])
        self._iy = np.concatenate([self._iy[keep], iy])
        for name in FIELDS:
            self._fields[name] = np.concatenate([self._fields[name][keep], fields[name]])
        self._image = None

    def _children(self, mask):
        """Level and indices of the four children of each flagged leaf, fields injected."""
        level = np.repeat(self._level[mask] + 1, 4)
        dx = np.tile([0, 1, 0, 1], int(mask.sum()))
        dy = np.tile([0, 0, 1, 1], int(mask.sum()))
        ix = np.repeat(self._ix[mask] * 2, 4) + dx
        iy = np.repeat(self._iy[mask] * 2, 4) + dy
        fields = {name: np.repeat(self._fields[name][mask], 4) for name in FIELDS}
        return level, ix, iy, fields

    def refine(self, predicate, max_level: int) -> int:
        refined = 0
        while True:
            x, y = self._centres()
            mask = np.asarray(predicate(x, y, self._level), dtype=bool)
            mask &= self._level < max_level
            count = int(mask.sum())
            if count == 0:
                return refined
            self._replace(~mask, *self._children(mask))
            refined += count

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def set_fluid_properties(self, rho1, rho2, mu1, mu2, sigma) -> None:
        self.properties = {"rho1": rho1, "rho2": rho2, "mu1": mu1, "mu2": mu2, "sigma": sigma}

    def set_boundary_conditions(self, conditions: Mapping[tuple[str, str], BoundaryCondition]) -> None:
        self.boundary_conditions = dict(conditions)

    def _subsample(self, phi, x, y, delta, samples):
        offsets = (np.arange(samples) + 0.5) / samples - 0.5
        ox, oy = np.meshgrid(offsets, offsets, indexing="ij")
        px = x[:, None] + ox.ravel()[None, :] * delta[:, None]
        py = y[:, None] + oy.ravel()[None, :] * delta[:, None]
        return np.asarray(phi(px, py), dtype=float).mean(axis=1)

    def fraction(self, phi) -> None:
        x, y = self._centres()
        inside = lambda px, py: np.asarray(phi(px, py)) > 0  # noqa: E731
        self._fields["f"] = self._subsample(inside, x, y, self._delta(), FRACTION_SAMPLES)

    def set_field(self, name, values) -> None:
        x, y = self._centres()
        result = np.broadcast_to(values(x, y, self._fields["f"]), x.shape)
        self._fields[name] = np.array(result, dtype=float)

    def liquid_volume(self) -> float:
        _, y = self._centres()
        return float(np.sum(self._fields["f"] * y * self._delta() ** 2))

    # ------------------------------------------------------------------
    # Adaptation
    # ------------------------------------------------------------------

    def _sibling_groups(self):
        parent_key = (
            ((self._level - 1) << 42) | ((self._ix >> 1) << 21) | (self._iy >> 1)
        )
        _, inverse, counts = np.unique(parent_key, return_inverse=True, return_counts=True)
        return inverse.ravel(), counts

    def adapt_wavelet(self, fields, tolerances, min_level, max_level):
        if len(fields) != len(tolerances):
            raise ValueError("fields and tolerances must have the same length")
        inverse, counts = self._sibling_groups()
        _, y = self._centres()
        weight_sum = np.bincount(inverse, weights=y)

        # Haar detail: departure of each leaf from the mean over its siblings.
        error = np.zeros(self.cell_count)
        for name, tolerance in zip(fields, tolerances):
            values = self._fields[name]
            mean = np.bincount(inverse, weights=y * values) / weight_sum
            error = np.maximum(error, np.abs(values - mean[inverse]) / tolerance)

        refine = ((error > 1.0) & (self._level < max_level)) | (self._level < min_level)
        candidate = (
            (counts[inverse] == 4)
            & (error < 2.0 / 3.0)
            & (self._level > min_level)
            & ~refine
        )
        whole_group = np.bincount(inverse, weights=candidate, minlength=counts.size) == 4
        coarsen = whole_group[inverse]

        n_refined = int(refine.sum())
        n_coarsened = int(whole_group.sum())
        if n_refined == 0 and n_coarsened == 0:
            return 0, 0

        level, ix, iy, fields_new = self._children(refine)
        if n_coarsened:
            groups = np.flatnonzero(whole_group)
            first = np.zeros(counts.size, dtype=np.int64)
            first[inverse[::-1]] = np.arange(self.cell_count)[::-1]
            lead = first[groups]
            level = np.concatenate([level, self._level[lead] - 1])
            ix = np.concatenate([ix, self._ix[lead] >> 1])
            iy = np.concatenate([iy, self._iy[lead] >> 1])
            for name in FIELDS:
                restricted = np.bincount(inverse, weights=y * self._fields[name])
                fields_new[name] = np.concatenate(
                    [fields_new[name], restricted[groups] / weight_sum[groups]]
                )
        self._replace(~(refine | coarsen), level, ix, iy, fields_new)
        return n_refined, 4 * n_coarsened

    # ------------------------------------------------------------------
    # Rasterisation and point location
    # ------------------------------------------------------------------

    def _leaf_image(self) -> np.ndarray:
        """Leaf index of every cell of a uniform grid at the finest present level."""
        if self._image is not None:
            return self._image
        finest = int(self._level.max())
        n = 2 ** finest
        image = np.empty((n, n), dtype=np.int64)
        indices = np.arange(self.cell_count)
        for level in np.unique(self._level):
            block = 2 ** (finest - int(level))
            at_level = self._level == level
            span = np.arange(block)
            rows = (self._ix[at_level] * block)[:, None] + span[None, :]
            cols = (self._iy[at_level] * block)[:, None] + span[None, :]
            image[rows[:, :, None], cols[:, None, :]] = indices[at_level][:, None, None]
        self._image = image
        return image

    def _locate(self, x, y) -> np.ndarray:
        """Leaf index containing each point, or -1 outside the domain."""
        image = self._leaf_image()
        n = image.shape[0]
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        i = np.floor(x / self.box_width * n).astype(np.int64)
        j = np.floor(y / self.box_width * n).astype(np.int64)
        inside = (i >= 0) & (i < n) & (j >= 0) & (j < n)
        found = np.full(x.shape, -1, dtype=np.int64)
        found[inside] = image[i[inside], j[inside]]
        return found

    def interpolate(self, name: str, x: float, y: float) -> float:
        index = int(self._locate(np.array([x]), np.array([y]))[0])
        if index < 0:
            raise ValueError(f"Point ({x}, {y}) lies outside the domain")
        return float(self._fields[name][index])

    # ------------------------------------------------------------------
    # Small structure removal
    # ------------------------------------------------------------------

    def remove_droplets(self, min_size: int, threshold: float, bubbles: bool = False) -> int:
        f = self._fields["f"]
        phase = f < 1.0 - threshold if bubbles else f > threshold
        image = self._leaf_image()
        labels, n_regions = ndimage.label(phase[image])
        if n_regions == 0:
            return 0
        finest = image.shape[0].bit_length() - 1
        scale = 2 ** (finest - self._level)
        leaf_labels = labels[self._ix * scale, self._iy * scale]
        sizes = np.bincount(leaf_labels, minlength=n_regions + 1)
        # Equivalent diameter: a region of n leaves spans sqrt(n) cells
        small = sizes <= min_size ** 2
        small[0] = False
        remove = small[leaf_labels]
        if remove.any():
            f[remove] = 1.0 if bubbles else 0.0
            logger.debug(
                "Removed %d %s (%d cells)",
                int(small.sum()), "bubbles" if bubbles else "droplets", int(remove.sum()),
            )
        return int(small.sum())

    # ------------------------------------------------------------------
    # Time stepping
    # ------------------------------------------------------------------

    def add_face_acceleration(self, axis: int, value: float) -> None:
        self._acceleration[axis] += value

    def _liquid_velocity(self) -> float:
        f = self._fields["f"]
        _, y = self._centres()
        weight = f * f * y
        total = weight.sum()
        if total <= 0:
            return 0.0
        return float(np.sum(self._fields["u.x"] * f * y) / total)

    def stable_timestep(self) -> float:
        speed = abs(self._liquid_velocity())
        if speed == 0:
            return self.max_timestep
        return min(self.max_timestep, self.cfl * float(self._delta().min()) / speed)

    def advance(self, dt: float) -> None:
        if dt <= 0:
            raise ValueError(f"timestep must be positive, got {dt}")
        velocity = self._liquid_velocity()
        new_velocity = velocity + self._acceleration[0] * dt
        shift = 0.5 * (velocity + new_velocity) * dt

        x, y = self._centres()
        old_f = self._fields["f"]

        def departure(px, py):
            index = self._locate(px - shift, py)
            return np.where(index >= 0, old_f[np.maximum(index, 0)], 0.0)

        f = self._subsample(departure, x, y, self._delta(), TRANSPORT_SAMPLES)
        self._fields["f"] = f
        self._fields["u.x"] = new_velocity * f
        self._fields["u.y"] = np.zeros_like(f)
        self._acceleration[:] = 0.0
        self.time += dt

        wall = self._ix == 0
        if self.contact_time is None and np.any(f[wall] > CONTACT_THRESHOLD):
            self.contact_time = self.time
            logger.debug("Liquid reached the plate at t = %g", self.time)
        if self.contact_time is not None:
            profile = wagner.pressure_profile(y, self.time - self.contact_time)
            self._fields["p"] = profile * f

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def boundary_cells(self, side: str) -> Iterator[BoundaryCell]:
        last = 2 ** self._level - 1
        masks = {
            "left": self._ix == 0,
            "right": self._ix == last,
            "bottom": self._iy == 0,
            "top": self._iy == last,
        }
        if side not in masks:
            raise ValueError(f"Unknown boundary: {side!r}")
        x, y = self._centres()
        delta = self._delta()
        selected = np.flatnonzero(masks[side])
        along = y if side in ("left", "right") else x
        for k in selected[np.argsort(along[selected], kind="stable")]:
            yield BoundaryCell(float(x[k]), float(y[k]), float(delta[k]))

    def output_facets(self, fp) -> None:
        f = self._fields["f"]
        image = self._leaf_image()
        gx, gy = np.gradient(f[image])
        finest = image.shape[0].bit_length() - 1
        scale = 2 ** (finest - self._level)
        centre_i = self._ix * scale + scale // 2
        centre_j = self._iy * scale + scale // 2
        x, y = self._centres()
        delta = self._delta()
        for k in np.flatnonzero((f > INTERFACE_EPS) & (f < 1.0 - INTERFACE_EPS)):
            nx = -gx[centre_i[k], centre_j[k]]
            ny = -gy[centre_i[k], centre_j[k]]
            norm = abs(nx) + abs(ny)
            if norm == 0:
                continue
            nx, ny = nx / norm, ny / norm
            alpha = float(line_alpha(f[k], nx, ny))
            points = facet_points(nx, ny, alpha)
            if len(points) < 2:
                continue
            for px, py in points:
                fp.write(f"{x[k] + px * delta[k]:g} {y[k] + py * delta[k]:g}\n")
            fp.write("\n")

    def output_snapshot(self, path: str) -> None:
        x, y = self._centres()
        columns = np.column_stack(
            [self._level, self._ix, self._iy, x, y] + [self._fields[name] for name in FIELDS]
        )
        header = (
            f"t = {self.time:g}, box_width = {self.box_width:g}, cells = {self.cell_count}\n"
            + " ".join(["level", "ix", "iy", "x", "y", *FIELDS])
        )
        np.savetxt(path, columns, fmt=["%d", "%d", "%d"] + ["%.10g"] * (2 + len(FIELDS)), header=header)
