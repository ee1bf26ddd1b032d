"""
Analytic two-body propagation.

The universal-variable formulation handles circular, elliptical, parabolic and
hyperbolic orbits with a single iteration, forward or backward in time. Two
interchangeable propagators are provided:

* ``LagrangianPropagator`` - universal variable with Lagrange coefficients
  (default).
* ``KeplerianPropagator`` - mean-anomaly propagation through Kepler's equation.

References:
    Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.).
    Algorithm 8 (KEPLER) and Section 2.3.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import NamedTuple, Union

import numpy as np

from mgadsm.cartesian_state import CartesianState
from mgadsm.constants import (
    MU_EARTH,
    STUMPFF_THRESHOLD,
    TOLERANCE,
    TWO_PI,
    UNIVERSAL_VARIABLE_MAX_ITER,
)
from mgadsm.conversion import (
    anomaly_to_true,
    cartesian_to_elements,
    elements_to_cartesian,
    mean_to_true_anomaly,
    true_to_anomaly,
    true_to_mean_anomaly,
)
from mgadsm.orbital_elements import OrbitalElements, is_elliptical, is_hyperbolic

logger = logging.getLogger(__name__)

OrbitState = Union[CartesianState, OrbitalElements]


class UniversalVariableSolution(NamedTuple):
    """Converged (or best available) universal-variable iteration result."""
    x: float  # universal variable (km^0.5)
    psi: float  # x^2 * alpha
    c2: float
    c3: float
    r: float  # radius at the final time (km)
    converged: bool


def stumpff_c2_c3(psi: float) -> tuple[float, float]:
    """
    Generalized Stumpff functions c2(psi) and c3(psi).

    c2 = (1 - cos(sqrt(psi))) / psi,  c3 = (sqrt(psi) - sin(sqrt(psi))) / psi^1.5   for psi > 0
    c2 = (1 - cosh(sqrt(-psi))) / psi, c3 = (sinh(sqrt(-psi)) - sqrt(-psi)) / (-psi)^1.5  for psi < 0
    c2 = 1/2, c3 = 1/6 near zero

    Args:
        psi: Argument x^2 * alpha (unitless)

    Returns:
        (c2, c3)
    """
    if psi > STUMPFF_THRESHOLD:
        sqrt_psi = np.sqrt(psi)
        c2 = (1.0 - np.cos(sqrt_psi)) / psi
        c3 = (sqrt_psi - np.sin(sqrt_psi)) / psi**1.5
    elif psi < -STUMPFF_THRESHOLD:
        sqrt_psi = np.sqrt(-psi)
        c2 = (1.0 - np.cosh(sqrt_psi)) / psi
        c3 = (np.sinh(sqrt_psi) - sqrt_psi) / (-psi)**1.5
    else:
        c2 = 0.5
        c3 = 1.0 / 6.0
    return c2, c3


def universal_variable_guess(r0: float, rdotv: float, alpha: float, h: float,
                             dt: float, mu: float) -> float:
    """
    Closed-form initial guess for the universal variable.

    Args:
        r0: Initial radius (km)
        rdotv: Dot product of the initial position and velocity (km^2/s)
        alpha: Reciprocal semi-major axis 2/r0 - v0^2/mu (1/km)
        h: Specific angular momentum magnitude (km^2/s)
        dt: Time of flight (s), any sign
        mu: Gravitational parameter (km^3/s^2)

    Returns:
        Initial universal variable estimate (km^0.5)
    """
    if dt == 0.0:
        return 0.0

    sqrt_mu = np.sqrt(mu)
    threshold = STUMPFF_THRESHOLD * (MU_EARTH / mu)

    if alpha > threshold:
        # circle or ellipse
        return sqrt_mu * dt * alpha

    if alpha < -threshold:
        # hyperbola
        a = 1.0 / alpha
        sign = np.sign(dt)
        denominator = rdotv + sign * np.sqrt(-mu * a) * (1.0 - r0 * alpha)
        ratio = (-2.0 * mu * alpha * dt) / denominator if denominator != 0.0 else -1.0
        if ratio > 0.0:
            return sign * np.sqrt(-a) * np.log(ratio)
        return sqrt_mu * dt / r0

    # parabola
    p = h**2 / mu
    s = 0.5 * np.arctan(1.0 / (3.0 * np.sqrt(mu / p**3) * dt))
    w = np.cbrt(np.tan(s))
    return 2.0 * np.sqrt(p) / np.tan(2.0 * w)


def solve_universal_variable(r0: float, rdotv: float, alpha: float, h: float, dt: float,
                             mu: float, tol: float = TOLERANCE,
                             max_iter: int = UNIVERSAL_VARIABLE_MAX_ITER) -> UniversalVariableSolution:
    """
    Solve the universal Kepler equation by Newton-Raphson iteration.

    Args:
        r0: Initial radius (km)
        rdotv: Dot product of the initial position and velocity (km^2/s)
        alpha: Reciprocal semi-major axis (1/km)
        h: Specific angular momentum magnitude (km^2/s), used by the parabolic guess
        dt: Time of flight (s)
        mu: Gravitational parameter (km^3/s^2)
        tol: Absolute convergence tolerance on the Newton step
        max_iter: Iteration cap

    Returns:
        UniversalVariableSolution evaluated at the final x. When the cap is
        reached a warning is logged and the last estimate is returned with
        ``converged=False``.
    """
    sqrt_mu = np.sqrt(mu)
    rdotv_sqrt_mu = rdotv / sqrt_mu

    x = universal_variable_guess(r0, rdotv, alpha, h, dt, mu)

    converged = False
    delta = np.inf
    for _ in range(max_iter):
        x2 = x * x
        psi = x2 * alpha
        c2, c3 = stumpff_c2_c3(psi)
        r = x2 * c2 + rdotv_sqrt_mu * x * (1.0 - psi * c3) + r0 * (1.0 - psi * c2)
        delta = (sqrt_mu * dt - x2 * x * c3 - rdotv_sqrt_mu * x2 * c2
                 - r0 * x * (1.0 - psi * c3)) / r
        x += delta
        if abs(delta) < tol:
            converged = True
            break

    if not converged:
        logger.warning("Universal variable iteration reached %d iterations with error %.3e "
                       "(r0=%g, alpha=%g, dt=%g)", max_iter, abs(delta), r0, alpha, dt)

    x2 = x * x
    psi = x2 * alpha
    c2, c3 = stumpff_c2_c3(psi)
    r = x2 * c2 + rdotv_sqrt_mu * x * (1.0 - psi * c3) + r0 * (1.0 - psi * c2)

    return UniversalVariableSolution(x=x, psi=psi, c2=c2, c3=c3, r=r, converged=converged)


def lagrange_coefficients(solution: UniversalVariableSolution, r0: float, dt: float,
                          mu: float) -> tuple[float, float, float, float]:
    """
    Lagrange coefficients f, g, fdot, gdot from a universal-variable solution.

    Logs a warning when the identity f*gdot - fdot*g = 1 is violated by more
    than TOLERANCE.
    """
    sqrt_mu = np.sqrt(mu)
    x, psi, c2, c3, r = solution.x, solution.psi, solution.c2, solution.c3, solution.r

    f = 1.0 - x**2 / r0 * c2
    g = dt - x**3 / sqrt_mu * c3
    fdot = sqrt_mu / (r * r0) * x * (psi * c3 - 1.0)
    gdot = 1.0 - x**2 / r * c2

    identity_error = (f * gdot - fdot * g) - 1.0
    if abs(identity_error) > TOLERANCE:
        logger.warning("Lagrange coefficient identity check failed: |f*gdot - fdot*g - 1| = %.3e",
                       abs(identity_error))

    return f, g, fdot, gdot


def propagate_state(state: CartesianState, mu: float, dt: float) -> CartesianState:
    """
    Propagate a Cartesian state by dt using the universal variable.

    Args:
        state: Initial Cartesian state (km, km/s)
        mu: Gravitational parameter (km^3/s^2)
        dt: Time of flight (s); negative values propagate backward

    Returns:
        CartesianState at t0 + dt
    """
    if mu <= 0.0:
        raise ValueError(f"mu must be positive, got {mu}")

    r_vec = np.asarray(state.r, dtype=float)
    v_vec = np.asarray(state.v, dtype=float)
    if dt == 0.0:
        return CartesianState(r=r_vec.copy(), v=v_vec.copy())

    r0 = np.linalg.norm(r_vec)
    v0 = np.linalg.norm(v_vec)
    rdotv = np.dot(r_vec, v_vec)
    alpha = 2.0 / r0 - v0**2 / mu
    h = np.linalg.norm(np.cross(r_vec, v_vec))

    solution = solve_universal_variable(r0, rdotv, alpha, h, dt, mu)
    f, g, fdot, gdot = lagrange_coefficients(solution, r0, dt, mu)

    return CartesianState(r=f * r_vec + g * v_vec, v=fdot * r_vec + gdot * v_vec)


def propagate_elements(elements: OrbitalElements, mu: float, dt: float) -> OrbitalElements:
    """
    Advance the true anomaly of a set of orbital elements by dt.

    The universal variable x relates directly to the change in anomaly:
    E = E0 + x/sqrt(a), H = H0 + x/sqrt(-a) and D = D0 + x/sqrt(p) for
    elliptical, hyperbolic and parabolic orbits. All other elements are
    returned unchanged.

    Args:
        elements: Initial orbital elements
        mu: Gravitational parameter (km^3/s^2)
        dt: Time of flight (s)

    Returns:
        OrbitalElements with the propagated true anomaly. Elliptical anomalies
        are wrapped to [0, 2*pi); hyperbolic and parabolic anomalies lie in
        (-pi, pi).
    """
    if mu <= 0.0:
        raise ValueError(f"mu must be positive, got {mu}")
    if dt == 0.0:
        return elements

    e = elements.e
    nu0 = elements.nu
    p = elements.semi_latus_rectum

    r0 = p / (1.0 + e * np.cos(nu0))
    vr0 = np.sqrt(mu / p) * e * np.sin(nu0)
    alpha = 1.0 / elements.a if (is_elliptical(e) or is_hyperbolic(e)) else 0.0
    h = np.sqrt(mu * p)

    x = solve_universal_variable(r0, r0 * vr0, alpha, h, dt, mu).x

    anomaly0 = true_to_anomaly(e, nu0)
    if is_elliptical(e):
        nu = np.mod(anomaly_to_true(e, anomaly0 + x / np.sqrt(elements.a)), TWO_PI)
    elif is_hyperbolic(e):
        nu = anomaly_to_true(e, anomaly0 + x / np.sqrt(-elements.a))
    else:
        nu = anomaly_to_true(e, anomaly0 + x / np.sqrt(p))

    return elements._replace(nu=float(nu))


def propagate_kepler(elements: OrbitalElements, mu: float, dt: float) -> OrbitalElements:
    """
    Advance the true anomaly through the mean anomaly and Kepler's equation.

    Parabolic orbits use Barker's equation with mean motion 2*sqrt(mu/p^3).
    """
    if mu <= 0.0:
        raise ValueError(f"mu must be positive, got {mu}")

    e = elements.e
    if is_elliptical(e):
        n = np.sqrt(mu / elements.a**3)
    elif is_hyperbolic(e):
        n = np.sqrt(mu / (-elements.a)**3)
    else:
        n = 2.0 * np.sqrt(mu / elements.a**3)

    M = true_to_mean_anomaly(e, elements.nu) + n * dt
    nu = mean_to_true_anomaly(e, M)
    if is_elliptical(e):
        nu = np.mod(nu, TWO_PI)

    return elements._replace(nu=float(nu))


# ---------------------------------------------------------------------------
# Propagator capability
# ---------------------------------------------------------------------------


class PropagatorType(str, Enum):
    LAGRANGIAN = 'lagrangian'
    KEPLERIAN = 'keplerian'


class Propagator(ABC):
    """
    Two-body propagation capability.

    ``propagate`` accepts either representation and returns the same one.
    Implementations are stateless and safe to share between threads.
    """

    kind: PropagatorType

    def propagate(self, state: OrbitState, mu: float, dt: float) -> OrbitState:
        if isinstance(state, OrbitalElements):
            return self.propagate_elements(state, mu, dt)
        return self.propagate_state(state, mu, dt)

    @abstractmethod
    def propagate_state(self, state: CartesianState, mu: float, dt: float) -> CartesianState:
        ...

    @abstractmethod
    def propagate_elements(self, elements: OrbitalElements, mu: float, dt: float) -> OrbitalElements:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LagrangianPropagator(Propagator):
    """Universal-variable propagation with Lagrange coefficients."""

    kind = PropagatorType.LAGRANGIAN

    def propagate_state(self, state: CartesianState, mu: float, dt: float) -> CartesianState:
        return propagate_state(state, mu, dt)

    def propagate_elements(self, elements: OrbitalElements, mu: float, dt: float) -> OrbitalElements:
        return propagate_elements(elements, mu, dt)


class KeplerianPropagator(Propagator):
    """Mean-anomaly propagation; Cartesian states round-trip through orbital elements."""

    kind = PropagatorType.KEPLERIAN

    def propagate_state(self, state: CartesianState, mu: float, dt: float) -> CartesianState:
        elements = cartesian_to_elements(state, mu)
        return elements_to_cartesian(propagate_kepler(elements, mu, dt), mu)

    def propagate_elements(self, elements: OrbitalElements, mu: float, dt: float) -> OrbitalElements:
        return propagate_kepler(elements, mu, dt)


_PROPAGATORS = {
    PropagatorType.LAGRANGIAN: LagrangianPropagator,
    PropagatorType.KEPLERIAN: KeplerianPropagator,
}


def make_propagator(kind: Union[str, PropagatorType, Propagator] = PropagatorType.LAGRANGIAN) -> Propagator:
    """
    Return a propagator for ``kind``.

    Accepts a PropagatorType, its string value or an existing Propagator
    instance (returned as-is).
    """
    if isinstance(kind, Propagator):
        return kind
    try:
        return _PROPAGATORS[PropagatorType(kind)]()
    except ValueError:
        valid = ", ".join(t.value for t in PropagatorType)
        raise ValueError(f"Unknown propagator type '{kind}'. Must be one of: {valid}") from None
