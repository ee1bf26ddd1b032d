"""
Physical properties of the solar-system bodies known to mgadsm.
"""
import pydantic
from pydantic import Field, field_validator, model_validator

from mgadsm import constants as c
from mgadsm.exceptions import UnknownBodyError


class Body(pydantic.BaseModel):
    """
    Physical properties of a gravitating body.

    Attributes:
        name: Name of the body (e.g., "Earth")
        mu: Gravitational parameter GM (km^3/s^2)
        radius: Equatorial radius (km)
        safe_radius: Minimum safe flyby radius (km)
        central_body: Name of the body this one orbits, None for the Sun
    """
    model_config = pydantic.ConfigDict(frozen=True)

    name: str
    mu: float = Field(..., gt=0.0, description="Gravitational parameter (km^3/s^2)")
    radius: float = Field(..., gt=0.0, description="Equatorial radius (km)")
    safe_radius: float = Field(default=0.0, ge=0.0, description="Minimum safe flyby radius (km)")
    central_body: str | None = Field(default="Sun", description="Name of the primary body")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Body name must not be empty")
        return v

    @model_validator(mode='before')
    @classmethod
    def default_safe_radius(cls, data):
        """Default the safe radius to SAFE_RADIUS_FACTOR body radii."""
        if isinstance(data, dict) and not data.get('safe_radius') and data.get('radius'):
            data = {**data, 'safe_radius': c.SAFE_RADIUS_FACTOR * data['radius']}
        return data

    def __repr__(self) -> str:
        return f"Body(name='{self.name}', mu={self.mu}, radius={self.radius})"

    def __str__(self) -> str:
        return self.name


SUN = Body(name="Sun", mu=c.MU_SUN, radius=c.RADIUS_SUN, central_body=None)

PHYSICAL_PROPERTIES: dict[str, Body] = {
    body.name.lower(): body
    for body in (
        SUN,
        Body(name="Mercury", mu=c.MU_MERCURY, radius=c.RADIUS_MERCURY),
        Body(name="Venus", mu=c.MU_VENUS, radius=c.RADIUS_VENUS),
        Body(name="Earth", mu=c.MU_EARTH, radius=c.RADIUS_EARTH),
        Body(name="Mars", mu=c.MU_MARS, radius=c.RADIUS_MARS),
        Body(name="Jupiter", mu=c.MU_JUPITER, radius=c.RADIUS_JUPITER),
        Body(name="Saturn", mu=c.MU_SATURN, radius=c.RADIUS_SATURN),
        Body(name="Uranus", mu=c.MU_URANUS, radius=c.RADIUS_URANUS),
        Body(name="Neptune", mu=c.MU_NEPTUNE, radius=c.RADIUS_NEPTUNE),
        Body(name="Pluto", mu=c.MU_PLUTO, radius=c.RADIUS_PLUTO),
    )
}


def get_body(name: str) -> Body:
    """
    Look up a body by name (case-insensitive).

    Raises:
        UnknownBodyError: If the name is not in PHYSICAL_PROPERTIES
    """
    try:
        return PHYSICAL_PROPERTIES[name.lower()]
    except KeyError:
        valid = ", ".join(b.name for b in PHYSICAL_PROPERTIES.values())
        raise UnknownBodyError(f"Unknown body '{name}'. Must be one of: {valid}") from None
