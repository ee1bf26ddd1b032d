"""
Cartesian state representation.
"""
from typing import NamedTuple

import numpy as np


class CartesianState(NamedTuple):
    """
    Cartesian state of a spacecraft or celestial body.

    Position and velocity in a common inertial frame (heliocentric ecliptic
    J2000 for planetary ephemerides). Both vectors use the same unit system
    throughout a computation, either dimensional (km, km/s) or canonical.

    Attributes:
        r: Position vector [x, y, z] (km)
        v: Velocity vector [vx, vy, vz] (km/s)

    Examples:
        >>> import numpy as np
        >>> state = CartesianState(
        ...     r=np.array([1.496e8, 0.0, 0.0]),  # ~1 AU from the sun
        ...     v=np.array([0.0, 29.78, 0.0])      # ~circular speed at 1 AU
        ... )
        >>> state.speed
        29.78
    """
    r: np.ndarray  # position [x, y, z] (km)
    v: np.ndarray  # velocity [vx, vy, vz] (km/s)

    @classmethod
    def create(cls, r, v) -> 'CartesianState':
        """Build a state from any array-like position and velocity."""
        return cls(r=np.array(r, dtype=float), v=np.array(v, dtype=float))

    @property
    def radius(self) -> float:
        return float(np.linalg.norm(self.r))

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.v))

    def copy(self) -> 'CartesianState':
        return CartesianState(r=np.array(self.r, dtype=float), v=np.array(self.v, dtype=float))
