"""
Exception hierarchy for mgadsm.

Numerical non-convergence is never an exception: the solvers log a warning and
return their best estimate. Everything here signals a caller error or a domain
error from a collaborator.
"""


class MGADSMError(Exception):
    """Base class for all mgadsm errors."""


class TrajectoryStructureError(MGADSMError, ValueError):
    """Raised when an itinerary or design vector violates the node layout contract."""


class EphemerisError(MGADSMError, LookupError):
    """Raised when an ephemeris cannot provide a state for the requested body and epoch."""


class UnknownBodyError(EphemerisError):
    """Raised when a body name is not known to the ephemeris or the physical properties table."""


class UnsupportedEpochError(EphemerisError):
    """Raised when an epoch lies outside the validity range of an ephemeris."""
