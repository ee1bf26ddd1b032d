# Configure JAX to use double precision (64-bit floats) throughout the package
import jax
jax.config.update("jax_enable_x64", True)

from .orbital_elements import OrbitalElements
from .cartesian_state import CartesianState

from .constants import (
    # Constants
    AU,
    KMPAU,
    DAY,
    YEAR,
    TOLERANCE,
    MU_SUN,
    MU_EARTH,
)

from .exceptions import (
    MGADSMError,
    TrajectoryStructureError,
    EphemerisError,
    UnknownBodyError,
    UnsupportedEpochError,
)

from .conversion import (
    elements_to_cartesian,
    cartesian_to_elements,
    normalized_spherical_to_cartesian,
)

from .propagate import (
    # Propagators
    Propagator,
    PropagatorType,
    LagrangianPropagator,
    KeplerianPropagator,
    make_propagator,
)

from .lambert import (
    # Lambert solver
    Direction,
    LambertSolver,
    LambertType,
    ExponentialSinusoidLambert,
    lambert_exponential_sinusoid,
    make_lambert_solver,
)

from .flyby import (
    FlybyModel,
    FlybyType,
    PlanetEncounter,
    UnpoweredFlyby,
    make_flyby_model,
)

from .bodies import (
    # Body class
    Body,
    get_body,
    PHYSICAL_PROPERTIES,
)

from .ephemeris import (
    Ephemeris,
    JplApproximateEphemeris,
)

from .nodes import (
    # Nodes
    DepartureNode,
    DSMNode,
    FlybyNode,
    RendezvousNode,
    InsertionNode,
    TrajectoryLeg,
    build_legs,
)

from .trajectory import MGADSMTrajectory
from .report import TrajectoryReport
from .itinerary import Itinerary

__all__ = [
    # Constants
    "AU",
    "KMPAU",
    "DAY",
    "YEAR",
    "TOLERANCE",
    "MU_SUN",
    "MU_EARTH",

    # Named tuples
    "OrbitalElements",
    "CartesianState",

    # Exceptions
    "MGADSMError",
    "TrajectoryStructureError",
    "EphemerisError",
    "UnknownBodyError",
    "UnsupportedEpochError",

    # Conversions
    "elements_to_cartesian",
    "cartesian_to_elements",
    "normalized_spherical_to_cartesian",

    # Propagators
    "Propagator",
    "PropagatorType",
    "LagrangianPropagator",
    "KeplerianPropagator",
    "make_propagator",

    # Lambert solver
    "Direction",
    "LambertSolver",
    "LambertType",
    "ExponentialSinusoidLambert",
    "lambert_exponential_sinusoid",
    "make_lambert_solver",

    # Flyby
    "FlybyModel",
    "FlybyType",
    "PlanetEncounter",
    "UnpoweredFlyby",
    "make_flyby_model",

    # Bodies and ephemerides
    "Body",
    "get_body",
    "PHYSICAL_PROPERTIES",
    "Ephemeris",
    "JplApproximateEphemeris",

    # Trajectory
    "DepartureNode",
    "DSMNode",
    "FlybyNode",
    "RendezvousNode",
    "InsertionNode",
    "TrajectoryLeg",
    "build_legs",
    "MGADSMTrajectory",
    "TrajectoryReport",
    "Itinerary",
]
