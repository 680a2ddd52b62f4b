"""Core data models shared by the geo-relevance pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

GLOBAL_POSTAL_CODE = "000000"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True)
class Location:
    """Resolved place for a postal code, map link or city name.

    Every field is optional: secondary providers may only know the
    administrative names, and coordinate-only map links may lack them.
    """

    coordinates: Optional[Coordinates] = None
    district: Optional[str] = None
    sub_district: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    formatted_address: Optional[str] = None

    @property
    def has_admin_detail(self) -> bool:
        return bool(self.district or self.city or self.state)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CandidateHints:
    """Location hints carried by a listing or banner, in resolution priority order."""

    entity_key: Optional[str] = None
    map_url: Optional[str] = None
    postal_code: Optional[str] = None
    city_name: Optional[str] = None
    service_radius_km: Optional[float] = None
    # Restrictive hints keep a candidate out of the fallback tier when they
    # cannot be resolved or point outside the requester's area.
    restrictive: bool = True

    @property
    def has_any(self) -> bool:
        return bool(self.map_url or self.postal_code or self.city_name)

    @property
    def is_global(self) -> bool:
        return self.postal_code == GLOBAL_POSTAL_CODE


@dataclass
class ScoredCandidate:
    """A candidate together with the ranking data computed for one request."""

    item: Any
    location_score: int = 0
    distance_km: Optional[float] = None
    tier: str = "sample"

    @property
    def is_global(self) -> bool:
        return self.tier == "global"
