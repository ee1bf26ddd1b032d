"""
Gravity-assist (flyby) models.

A flyby model maps the heliocentric approach velocity at a body to the
heliocentric departure velocity, given the periapsis altitude of the flyby
hyperbola and the orientation of its plane in the B-frame.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np

from mgadsm.bodies import Body
from mgadsm.cartesian_state import CartesianState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlanetEncounter:
    """Body and its heliocentric state at an encounter epoch."""

    body: Body
    epoch: float  # MJD2000 (days)
    state: CartesianState  # heliocentric state of the body (km, km/s)


def _unit_vector(vec: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vec)
    if norm == 0.0:
        raise ValueError("Cannot normalise a zero-length vector")
    return vec / norm


def turn_angle(v_inf: float, rp: float, mu: float) -> float:
    """
    Turn angle of a flyby hyperbola.

    Args:
        v_inf: Hyperbolic excess speed (km/s)
        rp: Periapsis radius (km)
        mu: Gravitational parameter of the flyby body (km^3/s^2)

    Returns:
        delta = 2*asin(1/e) with e = 1 + rp*v_inf^2/mu (rad)
    """
    e = 1.0 + rp * v_inf**2 / mu
    return 2.0 * np.arcsin(1.0 / e)


def unpowered_flyby(v_approach, v_planet, mu: float, rp: float, b_angle: float) -> np.ndarray:
    """
    Rotate the incoming hyperbolic excess velocity through an unpowered flyby.

    The B-frame is B1 along v_inf_in, B2 = B1 x v_planet_hat and B3 = B1 x B2.
    The outgoing excess velocity has the same magnitude as the incoming one.

    Args:
        v_approach: Heliocentric approach velocity (km/s)
        v_planet: Heliocentric velocity of the body (km/s)
        mu: Gravitational parameter of the body (km^3/s^2)
        rp: Periapsis radius (km)
        b_angle: B-plane inclination angle (rad)

    Returns:
        Heliocentric departure velocity (km/s)
    """
    v_approach = np.asarray(v_approach, dtype=float)
    v_planet = np.asarray(v_planet, dtype=float)

    v_inf_in = v_approach - v_planet
    v_inf = np.linalg.norm(v_inf_in)
    if v_inf == 0.0:
        return v_approach.copy()

    b1 = _unit_vector(v_inf_in)
    b2 = _unit_vector(np.cross(b1, _unit_vector(v_planet)))
    b3 = _unit_vector(np.cross(b1, b2))

    delta = turn_angle(v_inf, rp, mu)
    v_inf_out = v_inf * (b1 * np.cos(delta)
                         + b2 * np.cos(b_angle) * np.sin(delta)
                         + b3 * np.sin(b_angle) * np.sin(delta))

    return v_planet + v_inf_out


class FlybyType(str, Enum):
    UNPOWERED = 'unpowered'


class FlybyModel(ABC):
    """Flyby capability."""

    kind: FlybyType

    @abstractmethod
    def evaluate(self, approach_velocity, encounter: PlanetEncounter, altitude: float,
                 b_inclination_angle: float) -> np.ndarray:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UnpoweredFlyby(FlybyModel):
    """
    Free (propellant-less) turn of the hyperbolic excess velocity.

    A periapsis below the body's safe radius is still evaluated but logged
    as a warning.
    """

    kind = FlybyType.UNPOWERED

    def evaluate(self, approach_velocity, encounter, altitude, b_inclination_angle):
        rp = encounter.body.radius + altitude
        if rp < encounter.body.safe_radius:
            logger.warning("Flyby of %s at MJD2000 %.3f passes %.1f km from the centre, inside "
                           "the safe radius of %.1f km", encounter.body.name, encounter.epoch, rp,
                           encounter.body.safe_radius)
        return unpowered_flyby(approach_velocity, encounter.state.v, encounter.body.mu, rp,
                               b_inclination_angle)


_FLYBY_MODELS = {
    FlybyType.UNPOWERED: UnpoweredFlyby,
}


def make_flyby_model(kind: Union[str, FlybyType, FlybyModel] = FlybyType.UNPOWERED) -> FlybyModel:
    """Return a flyby model for ``kind`` (type, string value or instance)."""
    if isinstance(kind, FlybyModel):
        return kind
    try:
        return _FLYBY_MODELS[FlybyType(kind)]()
    except ValueError:
        valid = ", ".join(t.value for t in FlybyType)
        raise ValueError(f"Unknown flyby model type '{kind}'. Must be one of: {valid}") from None
