"""
Trajectory nodes, legs and the design-vector layout.

An itinerary is an ordered list of nodes. Legs are derived from it by
``build_legs``: a leg starts at the Departure node or at the previous arrival
node and ends at the next Flyby, Rendezvous or Insertion node. The same pass
fixes the positional layout of the flat design vector:

=============  =================================================================
Node           Slots
=============  =================================================================
Departure      epoch (MJD2000 days), [dv magnitude, n_theta, n_phi if next is a DSM]
DSM            alpha, [dv magnitude, n_theta, n_phi if 2nd or later DSM of the leg]
Flyby          time of flight (s), periapsis altitude (km), B-plane angle (rad)
Rendezvous     time of flight (s)
Insertion      time of flight (s), time in orbit (s), [escape dv triple if next is a DSM]
=============  =================================================================
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Iterable, Literal, NamedTuple, Optional, Tuple, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from mgadsm.constants import DAY
from mgadsm.exceptions import TrajectoryStructureError
from mgadsm.orbital_elements import OrbitalElements


def _validate_delta_v(v: Tuple[float, float, float]) -> Tuple[float, float, float]:
    magnitude, n_theta, n_phi = v
    if magnitude < 0.0:
        raise ValueError(f"delta_v magnitude must be non-negative, got {magnitude}")
    for label, value in (("n_theta", n_theta), ("n_phi", n_phi)):
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"delta_v {label} must be between 0.0 and 1.0, got {value}")
    return v


# (magnitude km/s, normalized azimuth, normalized polar angle)
DeltaV = Annotated[Tuple[float, float, float], AfterValidator(_validate_delta_v)]
ZERO_DELTA_V = (0.0, 0.0, 0.0)


class _NodeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        body = getattr(self, 'body', None)
        return f"{self.kind}[{body}]" if body else self.kind


class DepartureNode(_NodeBase):
    """
    Start of the trajectory.

    Attributes
    ----------
    body : str
        Departure body name
    epoch : float
        Departure epoch, MJD2000 (days)
    delta_v : DeltaV
        Launch excess velocity as (magnitude km/s, n_theta, n_phi); only part
        of the design vector when the next node is a DSM
    """
    kind: Literal['departure'] = 'departure'
    body: str = Field(..., description="Departure body")
    epoch: float = Field(..., description="Departure epoch, MJD2000 (days)")
    delta_v: DeltaV = Field(default=ZERO_DELTA_V, description="Departure dv (magnitude, n_theta, n_phi)")


class DSMNode(_NodeBase):
    """
    Deep-space maneuver inside a leg.

    Attributes
    ----------
    alpha : float
        Fraction of the remaining leg time of flight elapsed before the DSM
    delta_v : DeltaV
        Impulse as (magnitude km/s, n_theta, n_phi); only part of the design
        vector for the second and later DSMs of a leg
    """
    kind: Literal['dsm'] = 'dsm'
    alpha: float = Field(default=0.5, ge=0.0, le=1.0, description="Time-of-flight fraction")
    delta_v: DeltaV = Field(default=ZERO_DELTA_V, description="DSM dv (magnitude, n_theta, n_phi)")


class FlybyNode(_NodeBase):
    """Unpowered gravity assist ending a leg."""
    kind: Literal['flyby'] = 'flyby'
    body: str = Field(..., description="Flyby body")
    time_of_flight: float = Field(..., gt=0.0, description="Leg time of flight (days)")
    altitude: float = Field(default=0.0, ge=0.0, description="Periapsis altitude (km)")
    b_inclination_angle: float = Field(default=0.0, description="B-plane inclination angle (rad)")


class RendezvousNode(_NodeBase):
    """Arrival matching the body's velocity."""
    kind: Literal['rendezvous'] = 'rendezvous'
    body: str = Field(..., description="Rendezvous body")
    time_of_flight: float = Field(..., gt=0.0, description="Leg time of flight (days)")


class InsertionNode(_NodeBase):
    """
    Capture into a closed orbit about the arrival body.

    Attributes
    ----------
    body : str
        Arrival body name
    orbit : OrbitalElements
        Target parking orbit about the body (km, rad); must be elliptical
    time_of_flight : float
        Leg time of flight (days)
    time_of_orbit : float
        Time spent in the parking orbit (days)
    delta_v : DeltaV
        Escape impulse (magnitude, n_theta, n_phi) when a DSM follows
    """
    kind: Literal['insertion'] = 'insertion'
    body: str = Field(..., description="Insertion body")
    orbit: OrbitalElements = Field(..., description="Target parking orbit")
    time_of_flight: float = Field(..., gt=0.0, description="Leg time of flight (days)")
    time_of_orbit: float = Field(default=0.0, ge=0.0, description="Time in orbit (days)")
    delta_v: DeltaV = Field(default=ZERO_DELTA_V, description="Escape dv (magnitude, n_theta, n_phi)")

    @field_validator('orbit')
    @classmethod
    def validate_orbit(cls, v: OrbitalElements) -> OrbitalElements:
        """The parking orbit must be a closed orbit with a positive periapsis radius."""
        if not (0.0 <= v.e < 1.0) or v.a <= 0.0:
            raise ValueError(
                f"Insertion orbit must be elliptical with a > 0, got a={v.a}, e={v.e}"
            )
        return v


TrajectoryNode = Annotated[
    Union[DepartureNode, DSMNode, FlybyNode, RendezvousNode, InsertionNode],
    Field(discriminator='kind'),
]

NODE_TYPES = (DepartureNode, DSMNode, FlybyNode, RendezvousNode, InsertionNode)
ARRIVAL_NODE_TYPES = (FlybyNode, RendezvousNode, InsertionNode)


@dataclass(frozen=True, slots=True)
class TrajectoryLeg:
    """One leg of the trajectory, from an anchor node to the next arrival node."""

    initial_body: str
    final_body: str
    time_of_flight_index: int  # design-vector slot holding the leg time of flight (s)
    num_dsm: int = 0
    departure: bool = False
    flyby: bool = False
    rendezvous: bool = False
    insertion: bool = False
    insertion_orbit: Optional[OrbitalElements] = None


class LegPlan(NamedTuple):
    """Legs derived from a node sequence plus the design-vector layout."""
    legs: tuple[TrajectoryLeg, ...]
    design_vector: tuple[float, ...]  # default values taken from the nodes
    labels: tuple[str, ...]  # one description per design-vector slot

    @property
    def num_states(self) -> int:
        return len(self.design_vector)


def validate_node_sequence(nodes: list) -> None:
    """
    Check the structural invariants of an itinerary.

    Raises:
        TrajectoryStructureError: If there are fewer than two nodes, the first
            node is not a Departure, a later node is a Departure or the last
            node is not a Flyby, Rendezvous or Insertion.
    """
    if len(nodes) < 2:
        raise TrajectoryStructureError(
            f"Invalid trajectory. Trajectory must consist of at least two nodes, got {len(nodes)}"
        )
    for index, node in enumerate(nodes):
        if not isinstance(node, NODE_TYPES):
            raise TrajectoryStructureError(
                f"Invalid trajectory. Node {index} has unsupported type {type(node).__name__}"
            )
    if not isinstance(nodes[0], DepartureNode):
        raise TrajectoryStructureError(
            f"Invalid trajectory. Trajectory must start with a Departure node, got {nodes[0].kind}"
        )
    for index, node in enumerate(nodes[1:], start=1):
        if isinstance(node, DepartureNode):
            raise TrajectoryStructureError(
                f"Invalid trajectory. Only one Departure node allowed, found another at index {index}"
            )
    if not isinstance(nodes[-1], ARRIVAL_NODE_TYPES):
        raise TrajectoryStructureError(
            "Invalid trajectory. Trajectory must end with a Flyby, Rendezvous, or Insertion node, "
            f"got {nodes[-1].kind}"
        )


def build_legs(nodes: Iterable) -> LegPlan:
    """
    Derive the legs and design-vector layout from a node sequence.

    A single pass over the nodes; the result depends only on the nodes, so the
    pass can be re-run whenever they change.

    Parameters
    ----------
    nodes : Iterable[TrajectoryNode]
        Itinerary nodes in order

    Returns
    -------
    LegPlan
        The legs, the default design vector assembled from the node values and
        a label for every slot

    Raises
    ------
    TrajectoryStructureError
        If the node sequence violates the structural invariants
    """
    nodes = list(nodes)
    validate_node_sequence(nodes)

    values: list[float] = []
    labels: list[str] = []
    legs: list[TrajectoryLeg] = []

    def add(value: float, label: str) -> None:
        values.append(float(value))
        labels.append(label)

    def add_delta_v(delta_v: DeltaV, prefix: str) -> None:
        add(delta_v[0], f"{prefix}.dv_magnitude (km/s)")
        add(delta_v[1], f"{prefix}.dv_n_theta")
        add(delta_v[2], f"{prefix}.dv_n_phi")

    initial_body = nodes[0].body
    departure = False
    num_dsm = 0
    dsm_ordinal = 0

    for index, node in enumerate(nodes):
        next_is_dsm = index + 1 < len(nodes) and isinstance(nodes[index + 1], DSMNode)
        prefix = f"{index}:{node.describe()}"

        if isinstance(node, DepartureNode):
            departure = True
            add(node.epoch, f"{prefix}.epoch (MJD2000)")
            if next_is_dsm:
                add_delta_v(node.delta_v, prefix)
            continue

        if isinstance(node, DSMNode):
            num_dsm += 1
            prefix = f"{index}:dsm[{dsm_ordinal}]"
            dsm_ordinal += 1
            add(node.alpha, f"{prefix}.alpha")
            if num_dsm > 1:
                add_delta_v(node.delta_v, prefix)
            continue

        time_of_flight_index = len(values)
        add(node.time_of_flight * DAY, f"{prefix}.time_of_flight (s)")
        if isinstance(node, FlybyNode):
            add(node.altitude, f"{prefix}.altitude (km)")
            add(node.b_inclination_angle, f"{prefix}.b_inclination_angle (rad)")
        elif isinstance(node, InsertionNode):
            add(node.time_of_orbit * DAY, f"{prefix}.time_of_orbit (s)")
            if next_is_dsm:
                add_delta_v(node.delta_v, prefix)

        legs.append(TrajectoryLeg(
            initial_body=initial_body,
            final_body=node.body,
            time_of_flight_index=time_of_flight_index,
            num_dsm=num_dsm,
            departure=departure,
            flyby=isinstance(node, FlybyNode),
            rendezvous=isinstance(node, RendezvousNode),
            insertion=isinstance(node, InsertionNode),
            insertion_orbit=node.orbit if isinstance(node, InsertionNode) else None,
        ))
        initial_body = node.body
        departure = False
        num_dsm = 0

    return LegPlan(legs=tuple(legs), design_vector=tuple(values), labels=tuple(labels))
