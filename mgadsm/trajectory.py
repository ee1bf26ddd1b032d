"""
Multi-gravity-assist trajectory with deep-space maneuvers (MGA-DSM).

The engine threads a running (epoch, state) pair through the legs derived
from the node sequence, reading the flat design vector slot by slot, and
returns the ordered list of delta-V magnitudes incurred along the way.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, NamedTuple, Optional, Sequence, Type, Union

import numpy as np

from mgadsm.cartesian_state import CartesianState
from mgadsm.constants import DAY, MU_SUN
from mgadsm.conversion import normalized_spherical_to_cartesian
from mgadsm.ephemeris import Ephemeris, JplApproximateEphemeris
from mgadsm.exceptions import TrajectoryStructureError
from mgadsm.flyby import FlybyModel, FlybyType, PlanetEncounter, make_flyby_model
from mgadsm.lambert import Direction, LambertSolver, LambertType, make_lambert_solver
from mgadsm.nodes import (
    NODE_TYPES,
    DepartureNode,
    DSMNode,
    FlybyNode,
    InsertionNode,
    LegPlan,
    RendezvousNode,
    TrajectoryLeg,
    TrajectoryNode,
    build_legs,
)
from mgadsm.orbital_elements import OrbitalElements
from mgadsm.propagate import Propagator, PropagatorType, make_propagator
from mgadsm.report import ConicArc, LegReport, TrajectoryEvent, TrajectoryReport

logger = logging.getLogger(__name__)


def insertion_delta_v(v_inf: float, mu: float, orbit: OrbitalElements) -> float:
    """
    Impulse to capture from a hyperbolic approach into a closed orbit.

    The burn happens at the periapsis of the target orbit, rp = a(1 - e).

    Args:
        v_inf: Hyperbolic excess speed on arrival (km/s)
        mu: Gravitational parameter of the arrival body (km^3/s^2)
        orbit: Target parking orbit about the arrival body

    Returns:
        |sqrt(v_inf^2 + 2 mu/rp) - sqrt(mu/rp (1 + e))| (km/s)
    """
    rp = orbit.a * (1.0 - orbit.e)
    v_hyperbola = np.sqrt(v_inf**2 + 2.0 * mu / rp)
    v_orbit = np.sqrt(mu / rp * (1.0 + orbit.e))
    return float(abs(v_hyperbola - v_orbit))


class LegState(NamedTuple):
    """Epoch (MJD2000 days) and heliocentric state carried from one leg to the next."""
    epoch: float
    state: CartesianState


class DesignVectorReader:
    """Sequential cursor over a design vector."""

    def __init__(self, x: Sequence[float]):
        self.x = np.asarray(x, dtype=float)
        self.index = 0

    def take(self) -> float:
        value = float(self.x[self.index])
        self.index += 1
        return value

    def take_delta_v(self) -> np.ndarray:
        """Read a (magnitude, n_theta, n_phi) triple as a Cartesian vector."""
        magnitude, n_theta, n_phi = self.x[self.index:self.index + 3]
        self.index += 3
        return normalized_spherical_to_cartesian(magnitude, n_theta, n_phi)

    def skip(self, n: int = 1) -> None:
        self.index += n

    @property
    def remaining(self) -> int:
        return len(self.x) - self.index


class _LegOutcome(NamedTuple):
    final: LegState
    delta_vs: List[float]
    events: List[TrajectoryEvent]
    arcs: List[ConicArc]


class MGADSMTrajectory:
    """
    An itinerary of nodes evaluated against a flat design vector.

    Args:
        nodes: Initial node sequence
        ephemeris: Source of body states (defaults to the JPL approximate ephemeris)
        propagator: Propagator kind or instance
        lambert: Lambert solver kind or instance
        flyby: Flyby model kind or instance
        mu: Gravitational parameter of the central body (km^3/s^2)

    Examples:
        >>> traj = MGADSMTrajectory()
        >>> traj.add_departure("Earth", 7000.0)
        >>> traj.add_dsm(0.4)
        >>> traj.add_rendezvous("Mars", 250.0)
        >>> len(traj.evaluate(traj.design_vector))
        3

    A trajectory instance threads state through a single evaluation and must not
    be shared between threads; use one instance per worker.
    """

    def __init__(self, nodes: Optional[Iterable[TrajectoryNode]] = None,
                 ephemeris: Optional[Ephemeris] = None,
                 propagator: Union[str, PropagatorType, Propagator] = PropagatorType.LAGRANGIAN,
                 lambert: Union[str, LambertType, LambertSolver] = LambertType.EXPONENTIAL_SINUSOID,
                 flyby: Union[str, FlybyType, FlybyModel] = FlybyType.UNPOWERED,
                 mu: float = MU_SUN):
        if mu <= 0.0:
            raise ValueError(f"mu must be positive, got {mu}")
        self.ephemeris = ephemeris if ephemeris is not None else JplApproximateEphemeris()
        self.propagator = make_propagator(propagator)
        self.lambert = make_lambert_solver(lambert)
        self.flyby = make_flyby_model(flyby)
        self.mu = mu

        self._nodes: List[TrajectoryNode] = []
        self._plan: Optional[LegPlan] = None
        self._dirty = True
        if nodes is not None:
            self.add_nodes(nodes)

    def __repr__(self) -> str:
        route = " -> ".join(node.describe() for node in self._nodes)
        return f"MGADSMTrajectory({route})"

    # ---------------------------------------------------------------------
    # Node editing
    # ---------------------------------------------------------------------

    def add_node(self, node: TrajectoryNode) -> None:
        if not isinstance(node, NODE_TYPES):
            raise TrajectoryStructureError(f"Unsupported node type {type(node).__name__}")
        self._nodes.append(node)
        self._dirty = True

    def add_nodes(self, nodes: Iterable[TrajectoryNode]) -> None:
        for node in nodes:
            self.add_node(node)

    def add_departure(self, body: str, epoch: float, delta_v=(0.0, 0.0, 0.0)) -> None:
        self.add_node(DepartureNode(body=body, epoch=epoch, delta_v=delta_v))

    def add_dsm(self, alpha: float = 0.5, delta_v=(0.0, 0.0, 0.0)) -> None:
        self.add_node(DSMNode(alpha=alpha, delta_v=delta_v))

    def add_flyby(self, body: str, time_of_flight: float, altitude: float = 0.0,
                  b_inclination_angle: float = 0.0) -> None:
        self.add_node(FlybyNode(body=body, time_of_flight=time_of_flight, altitude=altitude,
                                b_inclination_angle=b_inclination_angle))

    def add_rendezvous(self, body: str, time_of_flight: float) -> None:
        self.add_node(RendezvousNode(body=body, time_of_flight=time_of_flight))

    def add_insertion(self, body: str, orbit: OrbitalElements, time_of_flight: float,
                      time_of_orbit: float = 0.0, delta_v=(0.0, 0.0, 0.0)) -> None:
        self.add_node(InsertionNode(body=body, orbit=orbit, time_of_flight=time_of_flight,
                                    time_of_orbit=time_of_orbit, delta_v=delta_v))

    def set_node(self, index: int, node: TrajectoryNode) -> None:
        """
        Replace the node at ``index`` with a node of the same type.

        Raises:
            TrajectoryStructureError: If there is no node at ``index`` or the types differ
        """
        if not 0 <= index < len(self._nodes):
            raise TrajectoryStructureError(
                f"No node at index {index}; trajectory has {len(self._nodes)}"
            )
        current = self._nodes[index]
        if type(node) is not type(current):
            raise TrajectoryStructureError(
                f"Node {index} is a {type(current).__name__}, cannot replace it with a {type(node).__name__}"
            )
        self._nodes[index] = node
        self._dirty = True

    def _find(self, node_type: Type, n: int) -> int:
        """Index in the node list of the n-th (0-based) node of ``node_type``."""
        matches = [i for i, node in enumerate(self._nodes) if isinstance(node, node_type)]
        if not 0 <= n < len(matches):
            raise TrajectoryStructureError(
                f"No {node_type.__name__} with ordinal {n}; trajectory has {len(matches)}"
            )
        return matches[n]

    def get_departure(self) -> DepartureNode:
        return self._nodes[self._find(DepartureNode, 0)]

    def get_dsm(self, n: int) -> DSMNode:
        return self._nodes[self._find(DSMNode, n)]

    def get_flyby(self, n: int) -> FlybyNode:
        return self._nodes[self._find(FlybyNode, n)]

    def get_rendezvous(self, n: int) -> RendezvousNode:
        return self._nodes[self._find(RendezvousNode, n)]

    def get_insertion(self, n: int) -> InsertionNode:
        return self._nodes[self._find(InsertionNode, n)]

    def set_departure(self, node: DepartureNode) -> None:
        self.set_node(self._find(DepartureNode, 0), node)

    def set_dsm(self, n: int, node: DSMNode) -> None:
        self.set_node(self._find(DSMNode, n), node)

    def set_flyby(self, n: int, node: FlybyNode) -> None:
        self.set_node(self._find(FlybyNode, n), node)

    def set_rendezvous(self, n: int, node: RendezvousNode) -> None:
        self.set_node(self._find(RendezvousNode, n), node)

    def set_insertion(self, n: int, node: InsertionNode) -> None:
        self.set_node(self._find(InsertionNode, n), node)

    # ---------------------------------------------------------------------
    # Derived layout
    # ---------------------------------------------------------------------

    @property
    def nodes(self) -> tuple:
        return tuple(self._nodes)

    @property
    def num_nodes(self) -> int:
        return len(self._nodes)

    def _ensure_legs(self) -> LegPlan:
        if self._dirty or self._plan is None:
            self._plan = build_legs(self._nodes)
            self._dirty = False
            logger.debug("Rebuilt %d legs, %d design variables", len(self._plan.legs),
                         self._plan.num_states)
        return self._plan

    @property
    def legs(self) -> tuple[TrajectoryLeg, ...]:
        return self._ensure_legs().legs

    @property
    def num_states(self) -> int:
        """Required design-vector length."""
        return self._ensure_legs().num_states

    @property
    def design_vector(self) -> np.ndarray:
        """Design vector assembled from the values stored on the nodes."""
        return np.array(self._ensure_legs().design_vector)

    @property
    def design_vector_labels(self) -> tuple[str, ...]:
        return self._ensure_legs().labels

    # ---------------------------------------------------------------------
    # Evaluation
    # ---------------------------------------------------------------------

    def evaluate(self, x: Sequence[float]) -> List[float]:
        """
        Delta-V magnitudes (km/s) incurred by design vector ``x``, in order.

        The values are not summed.

        Raises:
            TrajectoryStructureError: If the itinerary is malformed or ``x`` has
                the wrong length
            EphemerisError: If a body or epoch is not covered by the ephemeris
        """
        return self._evaluate(x).delta_vs

    def evaluate_detailed(self, x: Sequence[float]) -> TrajectoryReport:
        """Evaluate ``x`` and return the events and coast arcs of every leg."""
        return self._evaluate(x)

    def _evaluate(self, x: Sequence[float]) -> TrajectoryReport:
        plan = self._ensure_legs()
        x = np.asarray(x, dtype=float).ravel()
        if x.size != plan.num_states:
            raise TrajectoryStructureError(
                f"Design vector has {x.size} entries, trajectory requires {plan.num_states}"
            )

        reader = DesignVectorReader(x)
        departure_body = plan.legs[0].initial_body
        epoch = reader.take()
        current = LegState(epoch, self.ephemeris.get_state(departure_body, epoch))

        leg_reports = []
        num_legs = len(plan.legs)
        for index, leg in enumerate(plan.legs):
            next_leg = plan.legs[index + 1] if index + 1 < num_legs else None
            outcome = self._evaluate_leg(leg, reader, current, is_last=next_leg is None,
                                         next_num_dsm=next_leg.num_dsm if next_leg else 0)
            logger.debug("Leg %d %s -> %s: %s", index, leg.initial_body, leg.final_body,
                         outcome.delta_vs)
            leg_reports.append(LegReport(
                index=index,
                initial_body=leg.initial_body,
                final_body=leg.final_body,
                departure_epoch=current.epoch,
                arrival_epoch=outcome.arcs[-1].epoch + outcome.arcs[-1].duration / DAY,
                arcs=outcome.arcs,
                events=outcome.events,
                delta_vs=outcome.delta_vs,
            ))
            current = outcome.final

        if reader.remaining != 0:
            raise TrajectoryStructureError(
                f"{reader.remaining} design-vector entries were not consumed by the trajectory"
            )
        return TrajectoryReport.create(x, leg_reports)

    def _evaluate_leg(self, leg: TrajectoryLeg, reader: DesignVectorReader, initial: LegState,
                      is_last: bool, next_num_dsm: int) -> _LegOutcome:
        delta_vs: List[float] = []
        events: List[TrajectoryEvent] = []
        arcs: List[ConicArc] = []

        tof = float(reader.x[leg.time_of_flight_index])
        if tof < 0.0:
            raise ValueError(f"Leg {leg.initial_body} -> {leg.final_body} has negative time of flight {tof}")
        arrival_epoch = initial.epoch + tof / DAY
        target = self.ephemeris.get_state(leg.final_body, arrival_epoch)

        state = initial.state
        if leg.departure:
            if leg.num_dsm > 0:
                dv = reader.take_delta_v()
                state = CartesianState.create(state.r, state.v + dv)
                delta_vs.append(float(np.linalg.norm(dv)))
            events.append(TrajectoryEvent.create('departure', initial.epoch, state.r, initial.state.v,
                                                 state.v, delta_vs[-1] if delta_vs else 0.0,
                                                 body=leg.initial_body))

        epoch = initial.epoch
        remaining = tof
        for j in range(leg.num_dsm):
            alpha = reader.take()
            dt = alpha * remaining
            remaining -= dt
            if j > 0:
                # the impulse of a later DSM is applied at the start of its coast
                dv = reader.take_delta_v()
                v_before = state.v
                state = CartesianState.create(state.r, state.v + dv)
                delta_vs.append(float(np.linalg.norm(dv)))
                events.append(TrajectoryEvent.create('dsm', epoch, state.r, v_before, state.v,
                                                     delta_vs[-1]))
            arcs.append(ConicArc.create(epoch, state.r, state.v, dt))
            state = self.propagator.propagate_state(state, self.mu, dt)
            epoch += dt / DAY

        v1, v2 = self.lambert.evaluate(state.r, target.r, remaining, Direction.PROGRADE, 0, self.mu)
        maneuver = float(np.linalg.norm(v1 - state.v))
        delta_vs.append(maneuver)
        events.append(TrajectoryEvent.create('maneuver', epoch, state.r, state.v, v1, maneuver))
        arcs.append(ConicArc.create(epoch, state.r, v1, remaining))

        if leg.flyby:
            reader.skip()
            altitude = reader.take()
            b_angle = reader.take()
            body = self.ephemeris.get_physical_properties(leg.final_body)
            encounter = PlanetEncounter(body=body, epoch=arrival_epoch, state=target)
            v_out = self.flyby.evaluate(v2, encounter, altitude, b_angle)
            events.append(TrajectoryEvent.create('flyby', arrival_epoch, target.r, v2, v_out,
                                                 body=leg.final_body))
            final = LegState(arrival_epoch, CartesianState.create(target.r, v_out))
        elif leg.insertion:
            reader.skip()
            time_of_orbit = reader.take()
            body = self.ephemeris.get_physical_properties(leg.final_body)
            v_inf = float(np.linalg.norm(v2 - target.v))
            dv = insertion_delta_v(v_inf, body.mu, leg.insertion_orbit)
            delta_vs.append(dv)
            events.append(TrajectoryEvent.create('insertion', arrival_epoch, target.r, v2, target.v,
                                                 dv, body=leg.final_body))
            leave_epoch = arrival_epoch + time_of_orbit / DAY
            final_state = self.ephemeris.get_state(leg.final_body, leave_epoch)
            if next_num_dsm > 0:
                escape = reader.take_delta_v()
                v_before = final_state.v
                final_state = CartesianState.create(final_state.r, final_state.v + escape)
                delta_vs.append(float(np.linalg.norm(escape)))
                events.append(TrajectoryEvent.create('escape', leave_epoch, final_state.r, v_before,
                                                     final_state.v, delta_vs[-1], body=leg.final_body))
            final = LegState(leave_epoch, final_state)
        else:
            reader.skip()
            v_after = v2
            mismatch = 0.0
            if is_last:
                mismatch = float(np.linalg.norm(v2 - target.v))
                delta_vs.append(mismatch)
                v_after = target.v
            events.append(TrajectoryEvent.create('rendezvous', arrival_epoch, target.r, v2, v_after,
                                                 mismatch, body=leg.final_body))
            final = LegState(arrival_epoch, CartesianState.create(target.r, v_after))

        return _LegOutcome(final=final, delta_vs=delta_vs, events=events, arcs=arcs)
