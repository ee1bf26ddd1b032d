"""
Classical orbital elements representation.
"""
from typing import NamedTuple

from mgadsm.constants import TOLERANCE


class OrbitalElements(NamedTuple):
    """
    Classical (Keplerian) orbital elements of a two-body orbit.

    All angular quantities are in radians. The true anomaly is the only element
    that changes with time for unperturbed motion.

    Attributes:
        a: Semi-major axis (km). Negative for hyperbolic orbits. For parabolic
            orbits the semi-major axis is infinite, so this field holds the
            semi-latus rectum p instead.
        e: Eccentricity (dimensionless)
        i: Inclination (radians)
        Omega: Longitude of the ascending node (radians)
        omega: Argument of periapsis (radians)
        nu: True anomaly (radians)

    Note:
        - For circular orbits: e = 0
        - For elliptical orbits: 0 < e < 1
        - For parabolic orbits: e = 1 (within TOLERANCE)
        - For hyperbolic orbits: e > 1 and a < 0
    """
    a: float  # semi-major axis (km), semi-latus rectum for parabolic orbits
    e: float  # eccentricity
    i: float  # inclination (rad)
    Omega: float  # longitude of ascending node (rad)
    omega: float  # argument of periapsis (rad)
    nu: float  # true anomaly (rad)

    @property
    def semi_latus_rectum(self) -> float:
        """Semi-latus rectum p (km)."""
        if is_parabolic(self.e):
            return self.a
        return self.a * (1.0 - self.e**2)


def is_circular(e: float, tol: float = TOLERANCE) -> bool:
    return e < tol


def is_elliptical(e: float, tol: float = TOLERANCE) -> bool:
    """True for circular and elliptical orbits."""
    return e < 1.0 - tol


def is_parabolic(e: float, tol: float = TOLERANCE) -> bool:
    return abs(e - 1.0) <= tol


def is_hyperbolic(e: float, tol: float = TOLERANCE) -> bool:
    return e > 1.0 + tol
