"""
Itinerary files: a node sequence and optional design vector stored as JSON.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from mgadsm.constants import MU_SUN
from mgadsm.ephemeris import Ephemeris
from mgadsm.nodes import TrajectoryNode, build_legs
from mgadsm.propagate import PropagatorType
from mgadsm.trajectory import MGADSMTrajectory


class Itinerary(BaseModel):
    """
    A named MGA-DSM itinerary.

    Attributes
    ----------
    name : str
        Human-readable name of the itinerary
    nodes : List[TrajectoryNode]
        Node sequence, Departure first and an arrival node last
    mu_central : float
        Gravitational parameter of the central body (km^3/s^2)
    propagator : str
        Propagator kind used by the trajectory engine
    design_vector : Optional[List[float]]
        Stored design vector; when omitted the defaults on the nodes are used
    """
    name: str = Field(default="itinerary", description="Itinerary name")
    nodes: List[TrajectoryNode] = Field(..., description="Node sequence")
    mu_central: float = Field(default=MU_SUN, gt=0.0, description="Central body mu (km^3/s^2)")
    propagator: str = Field(default='lagrangian', description="Propagator kind")
    design_vector: Optional[List[float]] = Field(
        default=None,
        description="Design vector; defaults to the values stored on the nodes"
    )

    @field_validator('propagator')
    @classmethod
    def validate_propagator(cls, v: str) -> str:
        valid = [t.value for t in PropagatorType]
        if v not in valid:
            raise ValueError(f"propagator must be one of {valid}, got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_itinerary(self):
        """Check the node sequence and the stored design vector length."""
        plan = build_legs(self.nodes)
        if self.design_vector is not None and len(self.design_vector) != plan.num_states:
            raise ValueError(
                f"design_vector has {len(self.design_vector)} entries, "
                f"the node sequence requires {plan.num_states}"
            )
        return self

    def to_trajectory(self, ephemeris: Optional[Ephemeris] = None) -> MGADSMTrajectory:
        """Build a trajectory engine for this itinerary."""
        return MGADSMTrajectory(nodes=self.nodes, ephemeris=ephemeris, propagator=self.propagator,
                                mu=self.mu_central)

    def get_design_vector(self) -> List[float]:
        """The stored design vector, or the defaults assembled from the nodes."""
        if self.design_vector is not None:
            return list(self.design_vector)
        return list(build_legs(self.nodes).design_vector)

    def save(self, filepath: str | Path) -> Path:
        """
        Save the itinerary to a .itn file in JSON format.

        Parameters
        ----------
        filepath : str | Path
            Destination; the suffix is forced to .itn

        Returns
        -------
        Path
            The path actually written
        """
        filepath = Path(filepath)
        if filepath.suffix != '.itn':
            filepath = filepath.with_suffix('.itn')

        with open(filepath, 'w') as f:
            f.write(self.model_dump_json(indent=2))
        return filepath

    @classmethod
    def load(cls, filepath: str | Path) -> 'Itinerary':
        """
        Load an itinerary from a .itn file.

        Raises
        ------
        FileNotFoundError
            If the file does not exist
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Itinerary file not found: {filepath}")

        with open(filepath, 'r') as f:
            return cls.model_validate_json(f.read())
