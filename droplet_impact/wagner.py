"""
Wagner theory for the early stage of droplet impact.

The wetted region of a droplet striking a plate grows with the turnover
point ``d(t) = sqrt(3 (t - s))`` where ``s`` is the plate displacement.  The
composite pressure combines the outer solution, the inner jet-root solution
and their overlap.  All quantities are dimensionless (droplet radius and
impact speed are 1) and ``t`` is measured from the moment of impact.

The turnover point reaches the droplet radius at ``t = 1/3``, which bounds
how long a run needs to resolve the impact (see ``wagner_max_time``).
"""

from __future__ import annotations

import numpy as np
from scipy.optimize import brentq

from droplet_impact import defaults

#: Parameter values of the inner solution used when sampling a full profile.
DEFAULT_SIGMAS = np.logspace(-8, 4, 2000)


def wagner_max_time(impact_time: float) -> float:
    """Run horizon shortly after the turnover point reaches the droplet radius."""
    return defaults.WAGNER_SAFETY_FACTOR * (impact_time + defaults.WAGNER_TURNOVER_TIME)


def turnover_point(t, s=0.0, sdot=0.0, sddot=0.0):
    """
    Turnover point and its first two time derivatives.

    Returns
    -------
    tuple of (d, ddot, dddot)
    """
    t = np.asarray(t, dtype=float)
    tau = t - s
    d = np.sqrt(3 * tau)
    ddot = (np.sqrt(3) / 2) * (1 - sdot) / np.sqrt(tau)
    dddot = -(np.sqrt(3) / 4) * ((1 - sdot) ** 2 + 2 * tau * sddot) / tau ** 1.5
    return d, ddot, dddot


def jet_thickness(t, s=0.0):
    """Thickness of the jet at the turnover point."""
    tau = np.asarray(t, dtype=float) - s
    return 2 * tau ** 1.5 / (np.sqrt(3) * np.pi)


def _sigma_polynomial(sigma):
    return sigma + 4 * np.sqrt(sigma) + np.log(sigma) + 1


def _solution_terms(t, s, sdot, sddot, eps):
    """Outer, inner and overlap pieces of the composite solution at time ``t``."""
    d, ddot, dddot = turnover_point(t, s, sdot, sddot)
    J = jet_thickness(t, s)

    def outer_p(rhat):
        root = np.emath.sqrt(d ** 2 - rhat ** 2)
        return (1 / eps) * (
            4 * (2 * d ** 2 - rhat ** 2) * ddot ** 2 / (3 * np.pi * root)
            + 4 * d * dddot * root / (3 * np.pi)
        )

    def inner_r(sigma):
        tilde_r = -(J / np.pi) * _sigma_polynomial(sigma)
        return eps * d + eps ** 3 * tilde_r

    def inner_p(sigma):
        return (1 / eps ** 2) * 2 * ddot ** 2 * np.sqrt(sigma) / (1 + np.sqrt(sigma)) ** 2

    def overlap(r):
        return (
            2 * np.sqrt(2) * d ** 1.5 * ddot ** 2
            / (3 * np.pi * eps ** 2 * np.emath.sqrt(d / eps ** 2 - r / eps ** 3))
        )

    return outer_p, inner_r, inner_p, overlap


def _composite(sigmas, t, s, sdot, sddot, eps):
    """Radial positions and composite pressure parametrised by ``sigmas``."""
    outer_p, inner_r, inner_p, overlap = _solution_terms(t, s, sdot, sddot, eps)
    sigmas = np.asarray(sigmas, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        all_rs = inner_r(sigmas)
        positive = all_rs > 0
        rs = all_rs[positive]
        ps = np.real(inner_p(sigmas[positive]) + outer_p(rs / eps) - overlap(rs))
    return rs, ps


def max_pressure(t, s=0.0, sdot=0.0, sddot=0.0, eps=1.0) -> float:
    """Composite pressure at the turnover point ``r = d``."""
    _, _, inner_p, _ = _solution_terms(t, s, sdot, sddot, eps)
    # tilde_r vanishes at the single positive root of the sigma polynomial,
    # i.e. at r = d, where the outer solution and the overlap cancel exactly.
    sigma_max = brentq(_sigma_polynomial, 1e-8, 1.0)
    return float(inner_p(sigma_max))


def wagner_pressure(sigmas, t, s=0.0, sdot=0.0, sddot=0.0, eps=1.0):
    """
    Composite Wagner pressure along the plate at time ``t`` after impact.

    Parameters
    ----------
    sigmas : array_like
        Inner-solution parameter values; each maps to one radial position.
    t : float
        Time since impact.
    s, sdot, sddot : float
        Plate displacement and its derivatives (zero for a rigid plate).
    eps : float
        Small-time scaling parameter.

    Returns
    -------
    rs : ndarray
        Radial positions (only those with ``r > 0``).
    ps : ndarray
        Composite pressure at ``rs``.
    pmax : float
        Pressure at the turnover point.
    """
    rs, ps = _composite(sigmas, t, s, sdot, sddot, eps)
    return rs, ps, max_pressure(t, s, sdot, sddot, eps)


def pressure_profile(r, t, eps=1.0):
    """
    Composite pressure interpolated onto radial positions ``r``.

    Zero before impact and beyond the sampled wetted region.
    """
    r = np.asarray(r, dtype=float)
    if t <= 0:
        return np.zeros_like(r)
    rs, ps = _composite(DEFAULT_SIGMAS, t, 0.0, 0.0, 0.0, eps)
    finite = np.isfinite(ps)
    rs, ps = rs[finite], ps[finite]
    order = np.argsort(rs)
    return np.interp(r, rs[order], ps[order], right=0.0)


def composite_force(ts, eps=1.0, sigmas=DEFAULT_SIGMAS):
    """
    Axisymmetric plate force ``2 pi * integral(p r dr)`` of the composite pressure.

    Zero for ``t <= 0`` (before impact).
    """
    ts = np.atleast_1d(np.asarray(ts, dtype=float))
    forces = np.zeros_like(ts)
    for k, t in enumerate(ts):
        if t <= 0:
            continue
        rs, ps = _composite(sigmas, t, 0.0, 0.0, 0.0, eps)
        finite = np.isfinite(ps)
        order = np.argsort(rs[finite])
        r, p = rs[finite][order], ps[finite][order]
        forces[k] = 2 * np.pi * np.trapezoid(p * r, r)
    return forces
