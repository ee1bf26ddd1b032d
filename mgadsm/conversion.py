"""
Conversions between orbit state representations, anomalies and epochs.

Provides the pure functions that map classical orbital elements to Cartesian
states and back, the anomaly conversions for each orbit type, Kepler's
equation solvers and a few unit/epoch helpers.

References:
    Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.).
    Algorithms 2 (KepEqtnE), 4 (KepEqtnH), 9 (RV2COE) and 10 (COE2RV).
"""
import logging

import numpy as np

from mgadsm.cartesian_state import CartesianState
from mgadsm.constants import (
    DAY,
    JD_J2000,
    JD_MJD2000,
    KEPLER_MAX_ITER,
    TOLERANCE,
    TWO_PI,
    YEAR,
)
from mgadsm.orbital_elements import (
    OrbitalElements,
    is_circular,
    is_elliptical,
    is_hyperbolic,
    is_parabolic,
)

logger = logging.getLogger(__name__)

K_HAT = np.array([0.0, 0.0, 1.0])


# ---------------------------------------------------------------------------
# Anomaly conversions
# ---------------------------------------------------------------------------


def true_to_eccentric_anomaly(e: float, nu: float) -> float:
    """Eccentric anomaly E (rad) for an elliptical orbit, in (-pi, pi]."""
    half = 0.5 * nu
    return 2.0 * np.arctan2(np.sqrt(1.0 - e) * np.sin(half), np.sqrt(1.0 + e) * np.cos(half))


def eccentric_to_true_anomaly(e: float, E: float) -> float:
    """True anomaly (rad) from eccentric anomaly, in (-pi, pi]."""
    half = 0.5 * E
    return 2.0 * np.arctan2(np.sqrt(1.0 + e) * np.sin(half), np.sqrt(1.0 - e) * np.cos(half))


def true_to_hyperbolic_anomaly(e: float, nu: float) -> float:
    """
    Hyperbolic anomaly H from true anomaly.

    The true anomaly must lie inside the asymptote limits |nu| < acos(-1/e).
    """
    return 2.0 * np.arctanh(np.sqrt((e - 1.0) / (e + 1.0)) * np.tan(0.5 * nu))


def hyperbolic_to_true_anomaly(e: float, H: float) -> float:
    return 2.0 * np.arctan(np.sqrt((e + 1.0) / (e - 1.0)) * np.tanh(0.5 * H))


def true_to_parabolic_anomaly(nu: float) -> float:
    """Parabolic anomaly D = tan(nu/2)."""
    return np.tan(0.5 * nu)


def parabolic_to_true_anomaly(D: float) -> float:
    return 2.0 * np.arctan(D)


def eccentric_to_mean_anomaly(e: float, E: float) -> float:
    return E - e * np.sin(E)


def hyperbolic_to_mean_anomaly(e: float, H: float) -> float:
    return e * np.sinh(H) - H


def parabolic_to_mean_anomaly(D: float) -> float:
    """Barker's equation, M = D + D^3/3."""
    return D + D**3 / 3.0


def mean_to_parabolic_anomaly(M: float) -> float:
    """Closed-form inverse of Barker's equation."""
    u = np.cbrt(0.5 * (3.0 * M + np.sqrt(9.0 * M**2 + 4.0)))
    return u - 1.0 / u


def true_to_anomaly(e: float, nu: float) -> float:
    """Eccentric, hyperbolic or parabolic anomaly depending on the orbit type."""
    if is_elliptical(e):
        return true_to_eccentric_anomaly(e, nu)
    elif is_hyperbolic(e):
        return true_to_hyperbolic_anomaly(e, nu)
    return true_to_parabolic_anomaly(nu)


def anomaly_to_true(e: float, anomaly: float) -> float:
    """Inverse of :func:`true_to_anomaly`."""
    if is_elliptical(e):
        return eccentric_to_true_anomaly(e, anomaly)
    elif is_hyperbolic(e):
        return hyperbolic_to_true_anomaly(e, anomaly)
    return parabolic_to_true_anomaly(anomaly)


def true_to_mean_anomaly(e: float, nu: float) -> float:
    """
    Mean anomaly for any orbit type.

    Args:
        e: Eccentricity
        nu: True anomaly (rad)

    Returns:
        Mean anomaly (rad). For parabolic orbits this is the Barker mean
        anomaly D + D^3/3.
    """
    if is_elliptical(e):
        return eccentric_to_mean_anomaly(e, true_to_eccentric_anomaly(e, nu))
    elif is_hyperbolic(e):
        return hyperbolic_to_mean_anomaly(e, true_to_hyperbolic_anomaly(e, nu))
    return parabolic_to_mean_anomaly(true_to_parabolic_anomaly(nu))


def mean_to_true_anomaly(e: float, M: float) -> float:
    """
    True anomaly for any orbit type, solving Kepler's equation as needed.

    Args:
        e: Eccentricity
        M: Mean anomaly (rad)

    Returns:
        True anomaly (rad)
    """
    if is_elliptical(e):
        return eccentric_to_true_anomaly(e, solve_kepler_elliptical(e, M))
    elif is_hyperbolic(e):
        return hyperbolic_to_true_anomaly(e, solve_kepler_hyperbolic(e, M))
    return parabolic_to_true_anomaly(mean_to_parabolic_anomaly(M))


# ---------------------------------------------------------------------------
# Kepler's equation
# ---------------------------------------------------------------------------


def solve_kepler_elliptical(e: float, M: float, tol: float = TOLERANCE,
                            max_iter: int = KEPLER_MAX_ITER) -> float:
    """
    Solve Kepler's equation M = E - e*sin(E) for the eccentric anomaly.

    Newton-Raphson iteration on the mean anomaly reduced to [0, 2*pi); the
    whole revolutions removed by the reduction are added back to the result.

    Args:
        e: Eccentricity (0 <= e < 1)
        M: Mean anomaly (rad)
        tol: Convergence tolerance on the Newton step (rad)
        max_iter: Maximum number of iterations

    Returns:
        E: Eccentric anomaly (rad). If the iteration cap is reached a warning
        is logged and the last estimate is returned.
    """
    M_reduced = np.mod(M, TWO_PI)
    E = M_reduced + 0.5 * e if M_reduced < np.pi else M_reduced - 0.5 * e

    delta = np.inf
    for _ in range(max_iter):
        delta = (M_reduced - (E - e * np.sin(E))) / (1.0 - e * np.cos(E))
        E += delta
        if abs(delta) < tol:
            break
    else:
        logger.warning("Kepler's equation (elliptical) did not converge: e=%g, M=%g, last step=%.3e",
                       e, M, abs(delta))

    return E + (M - M_reduced)


def solve_kepler_hyperbolic(e: float, M: float, tol: float = TOLERANCE,
                            max_iter: int = KEPLER_MAX_ITER) -> float:
    """
    Solve the hyperbolic Kepler equation M = e*sinh(H) - H.

    Args:
        e: Eccentricity (e > 1)
        M: Hyperbolic mean anomaly
        tol: Convergence tolerance on the Newton step
        max_iter: Maximum number of iterations

    Returns:
        H: Hyperbolic anomaly
    """
    H = np.arcsinh(M / e)

    delta = np.inf
    for _ in range(max_iter):
        delta = (M - (e * np.sinh(H) - H)) / (e * np.cosh(H) - 1.0)
        H += delta
        if abs(delta) < tol:
            break
    else:
        logger.warning("Kepler's equation (hyperbolic) did not converge: e=%g, M=%g, last step=%.3e",
                       e, M, abs(delta))

    return H


# ---------------------------------------------------------------------------
# Elements <-> Cartesian
# ---------------------------------------------------------------------------


def perifocal_to_inertial(r_pqw: np.ndarray, v_pqw: np.ndarray, i: float, omega: float,
                          Omega: float) -> CartesianState:
    """
    Rotate a perifocal (PQW) state into the inertial frame.

    Args:
        r_pqw: Position in the perifocal frame
        v_pqw: Velocity in the perifocal frame
        i: Inclination (rad)
        omega: Argument of periapsis (rad)
        Omega: Longitude of the ascending node (rad)

    Returns:
        CartesianState in the inertial frame
    """
    cO, sO = np.cos(Omega), np.sin(Omega)
    cw, sw = np.cos(omega), np.sin(omega)
    ci, si = np.cos(i), np.sin(i)

    rotation = np.array([
        [cO * cw - sO * sw * ci, -cO * sw - sO * cw * ci, sO * si],
        [sO * cw + cO * sw * ci, -sO * sw + cO * cw * ci, -cO * si],
        [sw * si, cw * si, ci],
    ])

    return CartesianState(r=rotation @ np.asarray(r_pqw, dtype=float),
                          v=rotation @ np.asarray(v_pqw, dtype=float))


def elements_to_cartesian(elements: OrbitalElements, mu: float) -> CartesianState:
    """
    Convert classical orbital elements to a Cartesian state.

    Args:
        elements: Orbital elements (a holds p for parabolic orbits)
        mu: Gravitational parameter (km^3/s^2)

    Returns:
        CartesianState with position (km) and velocity (km/s)

    Raises:
        ValueError: If mu is not positive or the semi-latus rectum is not positive.
    """
    if mu <= 0.0:
        raise ValueError(f"mu must be positive, got {mu}")

    p = elements.semi_latus_rectum
    if p <= 0.0:
        raise ValueError(
            f"Inconsistent orbital elements: a={elements.a}, e={elements.e} give a "
            f"non-positive semi-latus rectum p={p}"
        )

    e = elements.e
    cos_nu = np.cos(elements.nu)
    sin_nu = np.sin(elements.nu)
    radius = p / (1.0 + e * cos_nu)

    r_pqw = np.array([radius * cos_nu, radius * sin_nu, 0.0])
    v_pqw = np.sqrt(mu / p) * np.array([-sin_nu, e + cos_nu, 0.0])

    return perifocal_to_inertial(r_pqw, v_pqw, elements.i, elements.omega, elements.Omega)


def cartesian_to_elements(state: CartesianState, mu: float) -> OrbitalElements:
    """
    Convert a Cartesian state to classical orbital elements.

    Special cases follow Vallado's RV2COE: for circular inclined orbits the
    true anomaly holds the argument of latitude, for elliptical equatorial
    orbits the argument of periapsis holds the longitude of periapsis and for
    circular equatorial orbits the true anomaly holds the true longitude.
    Undefined angles are set to zero.

    Args:
        state: Cartesian state (km, km/s)
        mu: Gravitational parameter (km^3/s^2)

    Returns:
        OrbitalElements with angles in [0, 2*pi)
    """
    if mu <= 0.0:
        raise ValueError(f"mu must be positive, got {mu}")

    r_vec = np.asarray(state.r, dtype=float)
    v_vec = np.asarray(state.v, dtype=float)

    r = np.linalg.norm(r_vec)
    v = np.linalg.norm(v_vec)
    rdotv = np.dot(r_vec, v_vec)

    h_vec = np.cross(r_vec, v_vec)
    h = np.linalg.norm(h_vec)
    n_vec = np.cross(K_HAT, h_vec)
    n = np.linalg.norm(n_vec)

    e_vec = (v**2 / mu - 1.0 / r) * r_vec - (rdotv / mu) * v_vec
    e = np.linalg.norm(e_vec)

    if is_parabolic(e):
        a = h**2 / mu
    else:
        energy = 0.5 * v**2 - mu / r
        a = -0.5 * mu / energy

    i = np.arccos(np.clip(h_vec[2] / h, -1.0, 1.0)) if h > 0.0 else 0.0
    equatorial = i < TOLERANCE or abs(i - np.pi) < TOLERANCE
    circular = is_circular(e)
    retrograde = h_vec[2] < 0.0

    Omega = 0.0
    if not equatorial:
        Omega = np.arccos(np.clip(n_vec[0] / n, -1.0, 1.0))
        if n_vec[1] < 0.0:
            Omega = TWO_PI - Omega

    omega = 0.0
    if not circular and not equatorial:
        omega = np.arccos(np.clip(np.dot(n_vec, e_vec) / (n * e), -1.0, 1.0))
        if e_vec[2] < 0.0:
            omega = TWO_PI - omega
    elif not circular:
        # longitude of periapsis
        omega = np.mod(np.arctan2(e_vec[1], e_vec[0]), TWO_PI)
        if retrograde:
            omega = np.mod(TWO_PI - omega, TWO_PI)

    if not circular:
        nu = np.arccos(np.clip(np.dot(e_vec, r_vec) / (e * r), -1.0, 1.0))
        if rdotv < 0.0:
            nu = TWO_PI - nu
    elif not equatorial:
        # argument of latitude
        nu = np.arccos(np.clip(np.dot(n_vec, r_vec) / (n * r), -1.0, 1.0))
        if r_vec[2] < 0.0:
            nu = TWO_PI - nu
    else:
        # true longitude
        nu = np.mod(np.arctan2(r_vec[1], r_vec[0]), TWO_PI)
        if retrograde:
            nu = np.mod(TWO_PI - nu, TWO_PI)

    return OrbitalElements(a=float(a), e=float(e), i=float(i), Omega=float(Omega),
                           omega=float(omega), nu=float(nu))


# ---------------------------------------------------------------------------
# Vectors, units and epochs
# ---------------------------------------------------------------------------


def normalized_spherical_to_cartesian(magnitude: float, n_theta: float, n_phi: float) -> np.ndarray:
    """
    Convert a (magnitude, normalized azimuth, normalized polar) triple to a vector.

    Both normalized angles live in [0, 1], which gives a uniform distribution
    of directions over the sphere when sampled uniformly:
    theta = 2*pi*n_theta and phi = acos(2*n_phi - 1).

    Args:
        magnitude: Vector magnitude
        n_theta: Normalized azimuth in [0, 1]
        n_phi: Normalized polar angle in [0, 1]

    Returns:
        Cartesian vector of length |magnitude|
    """
    theta = TWO_PI * n_theta
    phi = np.arccos(np.clip(2.0 * n_phi - 1.0, -1.0, 1.0))
    return magnitude * np.array([
        -np.sin(phi) * np.cos(theta),
        np.sin(phi) * np.sin(theta),
        -np.cos(phi),
    ])


def canonical_units(radius: float, mu: float) -> tuple[float, float, float]:
    """
    Canonical distance, time and velocity units for a reference radius.

    Returns:
        (DU, TU, VU) in km, s and km/s
    """
    du = radius
    tu = np.sqrt(du**3 / mu)
    vu = du / tu
    return du, tu, vu


def mjd2000_to_jd(mjd2000: float) -> float:
    return mjd2000 + JD_MJD2000


def jd_to_mjd2000(jd: float) -> float:
    return jd - JD_MJD2000


def mjd2000_to_year(mjd2000: float) -> float:
    """Approximate (Julian) calendar year of an MJD2000 epoch."""
    return 2000.0 + (mjd2000_to_jd(mjd2000) - JD_J2000) * DAY / YEAR
