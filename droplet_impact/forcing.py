"""Gravity body force."""

from __future__ import annotations

#: Axis of the face acceleration that points away from the plate.
AXIAL = 0


class GravityForcing:
    """Add ``-1 / Fr^2`` to the axial face acceleration on every step."""

    def __init__(self, froude: float):
        self.acceleration = -1.0 / froude ** 2

    def __call__(self, state, solver):
        solver.add_face_acceleration(AXIAL, self.acceleration)
