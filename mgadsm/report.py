"""
Detailed trajectory evaluation results using Pydantic models.

A report lists, per leg, the coast arcs flown and the events (departure,
maneuvers, arrival) with their epochs, states and delta-V costs.
"""
from pathlib import Path
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

Vector = Tuple[float, float, float]


def _as_vector(v) -> Vector:
    return tuple(float(x) for x in v)


class TrajectoryEvent(BaseModel):
    """
    An impulsive event along the trajectory.
    """
    kind: Literal['departure', 'maneuver', 'dsm', 'flyby', 'rendezvous', 'insertion', 'escape', 'arrival'] = Field(
        ...,
        description="Event type"
    )
    body: Optional[str] = Field(
        default=None,
        description="Body at which the event happens, None for deep-space events"
    )
    epoch: float = Field(
        ...,
        description="Epoch, MJD2000 (days)"
    )
    position: Vector = Field(
        ...,
        description="Heliocentric position [x, y, z] in km"
    )
    velocity_before: Vector = Field(
        ...,
        description="Heliocentric velocity before the event in km/s"
    )
    velocity_after: Vector = Field(
        ...,
        description="Heliocentric velocity after the event in km/s"
    )
    delta_v: float = Field(
        default=0.0,
        description="Recorded delta-V magnitude in km/s (0 for unpowered events)"
    )

    @staticmethod
    def create(kind: str, epoch: float, position, velocity_before, velocity_after,
               delta_v: float = 0.0, body: Optional[str] = None) -> 'TrajectoryEvent':
        """Create an event from numpy vectors."""
        return TrajectoryEvent(
            kind=kind,
            body=body,
            epoch=float(epoch),
            position=_as_vector(position),
            velocity_before=_as_vector(velocity_before),
            velocity_after=_as_vector(velocity_after),
            delta_v=float(delta_v),
        )


class ConicArc(BaseModel):
    """
    A ballistic two-body arc starting at a known state.
    """
    epoch: float = Field(..., description="Start epoch, MJD2000 (days)")
    position: Vector = Field(..., description="Initial heliocentric position in km")
    velocity: Vector = Field(..., description="Initial heliocentric velocity in km/s")
    duration: float = Field(..., description="Arc duration in seconds")

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, v):
        if v < 0.0:
            raise ValueError(f"duration must be non-negative, got {v}")
        return v

    @staticmethod
    def create(epoch: float, position, velocity, duration: float) -> 'ConicArc':
        return ConicArc(epoch=float(epoch), position=_as_vector(position),
                        velocity=_as_vector(velocity), duration=float(duration))


class LegReport(BaseModel):
    """
    Evaluation details of a single leg.
    """
    index: int = Field(..., ge=0, description="Leg index")
    initial_body: str
    final_body: str
    departure_epoch: float = Field(..., description="Leg start epoch, MJD2000 (days)")
    arrival_epoch: float = Field(..., description="Leg arrival epoch, MJD2000 (days)")
    arcs: List[ConicArc] = Field(default_factory=list)
    events: List[TrajectoryEvent] = Field(default_factory=list)
    delta_vs: List[float] = Field(default_factory=list, description="Delta-V magnitudes recorded in this leg (km/s)")

    @property
    def time_of_flight(self) -> float:
        """Leg time of flight in days."""
        return self.arrival_epoch - self.departure_epoch


class TrajectoryReport(BaseModel):
    """
    Full evaluation of a design vector.

    Attributes:
        design_vector: The evaluated design vector
        delta_vs: Ordered delta-V magnitudes (km/s), identical to ``evaluate``
        total_delta_v: Sum of delta_vs (km/s)
        legs: Per-leg details
    """
    design_vector: List[float]
    delta_vs: List[float]
    total_delta_v: float
    legs: List[LegReport]

    @staticmethod
    def create(design_vector, legs: List[LegReport]) -> 'TrajectoryReport':
        delta_vs = [dv for leg in legs for dv in leg.delta_vs]
        return TrajectoryReport(
            design_vector=[float(x) for x in design_vector],
            delta_vs=delta_vs,
            total_delta_v=float(sum(delta_vs)),
            legs=legs,
        )

    @property
    def events(self) -> List[TrajectoryEvent]:
        return [event for leg in self.legs for event in leg.events]

    def save(self, filepath: str | Path) -> None:
        """Write the report as JSON."""
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, filepath: str | Path) -> 'TrajectoryReport':
        with open(Path(filepath), 'r') as f:
            return cls.model_validate_json(f.read())
