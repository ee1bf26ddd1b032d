"""
Lambert problem solver using the exponential-sinusoid time-of-flight formulation.

Given two position vectors and a time of flight, compute the velocities at both
ends of the connecting two-body transfer. The free parameter x (x < 1 ellipse,
x >= 1 hyperbola) is found by a secant iteration on a monotone transform of x.

References:
    Izzo, D. "Lambert's problem for exponential sinusoids", Journal of Guidance,
    Control and Dynamics 29(5), 2006.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Union

import numpy as np

from mgadsm.constants import LAMBERT_MAX_ITER, TOLERANCE, TWO_PI

logger = logging.getLogger(__name__)

# Secant iteration starting points for the free parameter x
_X_START = (-0.5233, 0.5233)


class Direction(str, Enum):
    """Sense of the transfer relative to the +z axis of the inertial frame."""
    PROGRADE = 'prograde'
    RETROGRADE = 'retrograde'


def lambert_time_of_flight(x: float, s: float, c: float, longway: int,
                           max_revolutions: int = 0) -> float:
    """
    Non-dimensional time of flight for the free parameter x.

    Args:
        x: Free parameter (x < 1 ellipse, x >= 1 hyperbola)
        s: Semi-perimeter of the transfer triangle
        c: Chord length
        longway: +1 for transfers below pi, -1 above
        max_revolutions: Number of complete revolutions (ellipse only)

    Returns:
        Time of flight in canonical time units
    """
    a = 0.5 * s / (1.0 - x * x)
    if x < 1.0:
        alpha = 2.0 * np.arccos(x)
        beta = 2.0 * longway * np.arcsin(np.sqrt(0.5 * (s - c) / a))
        return a * np.sqrt(a) * ((alpha - np.sin(alpha)) - (beta - np.sin(beta))
                                 + TWO_PI * max_revolutions)

    alpha = 2.0 * np.arccosh(x)
    beta = 2.0 * longway * np.arcsinh(np.sqrt(-0.5 * (s - c) / a))
    return -a * np.sqrt(-a) * ((np.sinh(alpha) - alpha) - (np.sinh(beta) - beta))


def lambert_exponential_sinusoid(r1, r2, tof: float, mu: float,
                                 direction: Union[str, Direction] = Direction.PROGRADE,
                                 max_revolutions: int = 0,
                                 tol: float = TOLERANCE,
                                 max_iter: int = LAMBERT_MAX_ITER) -> tuple[np.ndarray, np.ndarray, bool]:
    """
    Solve Lambert's problem.

    Args:
        r1: Initial position vector (km)
        r2: Final position vector (km)
        tof: Time of flight (s), must be non-negative
        mu: Gravitational parameter (km^3/s^2)
        direction: Prograde or retrograde transfer
        max_revolutions: Number of complete revolutions (0 for direct transfers)
        tol: Convergence tolerance on the transformed free parameter
        max_iter: Iteration cap

    Returns:
        v1: Initial velocity vector (km/s)
        v2: Final velocity vector (km/s)
        converged: False when the iteration cap was reached; the velocities are
            then the last estimate and a warning has been logged. A zero time
            of flight returns NaN velocities and False

    Raises:
        ValueError: If tof is negative, mu is not positive or max_revolutions is negative
    """
    if tof < 0.0:
        raise ValueError(f"Time of flight must be non-negative, got {tof}")
    if mu <= 0.0:
        raise ValueError(f"mu must be positive, got {mu}")
    if max_revolutions < 0:
        raise ValueError(f"max_revolutions must be non-negative, got {max_revolutions}")
    direction = Direction(direction)

    r1 = np.asarray(r1, dtype=float)
    r2 = np.asarray(r2, dtype=float)

    if tof == 0.0:
        logger.warning("Lambert solver called with zero time of flight; no transfer exists")
        return np.full(3, np.nan), np.full(3, np.nan), False

    # Canonical units based on the initial radius
    du = np.linalg.norm(r1)
    vu = np.sqrt(mu / du)
    tu = du / vu

    R1 = r1 / du
    R2 = r2 / du
    r2_mag = np.linalg.norm(R2)
    t = tof / tu

    cross_r1r2 = np.cross(R1, R2)
    cross_mag = np.linalg.norm(cross_r1r2)
    theta = np.arccos(np.clip(np.dot(R1, R2) / r2_mag, -1.0, 1.0))

    if direction is Direction.PROGRADE and cross_r1r2[2] <= 0.0:
        theta = TWO_PI - theta
    elif direction is Direction.RETROGRADE and cross_r1r2[2] >= 0.0:
        theta = TWO_PI - theta

    longway = -1 if theta > np.pi else 1

    c = np.sqrt(1.0 + r2_mag**2 - 2.0 * r2_mag * np.cos(theta))
    s = 0.5 * (1.0 + r2_mag + c)
    a_min = 0.5 * s
    lam = np.sqrt(r2_mag) * np.cos(0.5 * theta) / s

    if max_revolutions == 0:
        # log(1 + x) transform, residual in log time
        log_t = np.log(t)
        x1, x2 = (np.log(1.0 + x0) for x0 in _X_START)
        y1, y2 = (np.log(lambert_time_of_flight(x0, s, c, longway)) - log_t for x0 in _X_START)
    else:
        # tan(pi*x/2) transform, residual in time
        x1, x2 = (np.tan(0.5 * np.pi * x0) for x0 in _X_START)
        y1, y2 = (lambert_time_of_flight(x0, s, c, longway, max_revolutions) - t for x0 in _X_START)

    x = _X_START[1]
    error = np.inf
    iteration = 0
    while error > tol and iteration < max_iter:
        if y2 == y1:
            error = abs(x2 - x1)
            break
        x_new = (x1 * y2 - y1 * x2) / (y2 - y1)
        if max_revolutions == 0:
            x = np.exp(x_new) - 1.0
            y_new = np.log(lambert_time_of_flight(x, s, c, longway)) - log_t
        else:
            x = 2.0 / np.pi * np.arctan(x_new)
            y_new = lambert_time_of_flight(x, s, c, longway, max_revolutions) - t
        x1, x2 = x2, x_new
        y1, y2 = y2, y_new
        error = abs(x1 - x_new)
        iteration += 1

    converged = bool(error <= tol)
    if not converged:
        logger.warning("Lambert solver did not converge after %d iterations (error %.3e, "
                       "tof=%g s, revolutions=%d); returning last estimate",
                       iteration, error, tof, max_revolutions)

    # Velocity recovery
    a = a_min / (1.0 - x * x)
    if x < 1.0:
        alpha = 2.0 * np.arccos(x)
        beta = 2.0 * longway * np.arcsin(np.sqrt(0.5 * (s - c) / a))
        eta2 = 2.0 * a * np.sin(0.5 * (alpha - beta))**2 / s
    else:
        alpha = 2.0 * np.arccosh(x)
        beta = 2.0 * longway * np.arcsinh(np.sqrt(0.5 * (c - s) / a))
        eta2 = -2.0 * a * np.sinh(0.5 * (alpha - beta))**2 / s
    eta = np.sqrt(eta2)

    ih = (longway / cross_mag) * cross_r1r2
    r2_unit = R2 / r2_mag
    sin_half_theta = np.sin(0.5 * theta)

    vr1 = (1.0 / eta / np.sqrt(a_min)) * (2.0 * lam * a_min - lam - x * eta)
    vt1 = np.sqrt(r2_mag / a_min / eta2 * sin_half_theta**2)
    vt2 = vt1 / r2_mag
    vr2 = (vt1 - vt2) / np.tan(0.5 * theta) - vr1

    v1 = (vr1 * R1 + vt1 * np.cross(ih, R1)) * vu
    v2 = (vr2 * r2_unit + vt2 * np.cross(ih, r2_unit)) * vu

    return v1, v2, converged


# ---------------------------------------------------------------------------
# Lambert capability
# ---------------------------------------------------------------------------


class LambertType(str, Enum):
    EXPONENTIAL_SINUSOID = 'exponential_sinusoid'


class LambertSolver(ABC):
    """Lambert capability: ``evaluate`` returns the terminal velocities (v1, v2)."""

    kind: LambertType

    @abstractmethod
    def evaluate(self, r1, r2, tof: float, direction: Union[str, Direction], max_revolutions: int,
                 mu: float) -> tuple[np.ndarray, np.ndarray]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ExponentialSinusoidLambert(LambertSolver):
    """Exponential-sinusoid Lambert solver; non-convergence returns the last estimate."""

    kind = LambertType.EXPONENTIAL_SINUSOID

    def evaluate(self, r1, r2, tof, direction=Direction.PROGRADE, max_revolutions=0, mu=1.0):
        v1, v2, _ = lambert_exponential_sinusoid(r1, r2, tof, mu, direction, max_revolutions)
        return v1, v2


_LAMBERT_SOLVERS = {
    LambertType.EXPONENTIAL_SINUSOID: ExponentialSinusoidLambert,
}


def make_lambert_solver(kind: Union[str, LambertType, LambertSolver] = LambertType.EXPONENTIAL_SINUSOID) -> LambertSolver:
    """Return a Lambert solver for ``kind`` (type, string value or instance)."""
    if isinstance(kind, LambertSolver):
        return kind
    try:
        return _LAMBERT_SOLVERS[LambertType(kind)]()
    except ValueError:
        valid = ", ".join(t.value for t in LambertType)
        raise ValueError(f"Unknown Lambert solver type '{kind}'. Must be one of: {valid}") from None
