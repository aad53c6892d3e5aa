"""Business models: coordinates, business entities, and discovery output.

Frozen because a business fetched from discovery is a snapshot that should
never be mutated during a scan.
"""

from pydantic import BaseModel, ConfigDict, Field

# --- Validation boundaries ---
LATITUDE_MIN: float = -90.0
LATITUDE_MAX: float = 90.0
LONGITUDE_MIN: float = -180.0
LONGITUDE_MAX: float = 180.0


class Coordinate(BaseModel):
    """A WGS84 point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=LATITUDE_MIN, le=LATITUDE_MAX)
    longitude: float = Field(ge=LONGITUDE_MIN, le=LONGITUDE_MAX)


class BusinessEntity(BaseModel):
    """A local business: either the scan target or one of its competitors.

    The ``id`` is the stable identity key (typically a place identifier).
    The target is distinguished only by its id being the one a scan is for.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    address: str
    location: Coordinate


class AttributionSource(BaseModel):
    """Where discovery or insight data originated."""

    model_config = ConfigDict(frozen=True)

    uri: str
    title: str


class DiscoveryResult(BaseModel):
    """Competitors found for a target and keyword, with attribution."""

    model_config = ConfigDict(frozen=True)

    competitors: list[BusinessEntity] = Field(default_factory=list)
    sources: list[AttributionSource] = Field(default_factory=list)


def default_business_id(name: str, place_id: str = "") -> str:
    """Return *place_id* if given, else a lowercase hyphenated form of *name*."""
    if place_id.strip():
        return place_id.strip()
    return "-".join(name.lower().split())
