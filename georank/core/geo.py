"""Distance, area classification and relevance scoring for resolved locations."""

import math
from typing import Optional, Tuple

from georank.core.models import Location

EARTH_RADIUS_KM = 6371.0
SAME_AREA_RADIUS_KM = 55.0

BASE_SCORE = 100
CITY_MATCH_BONUS = 50
SUB_DISTRICT_MATCH_BONUS = 30
PROXIMITY_BONUS = 20
SERVICE_RADIUS_BONUS = 10
# (max distance in km, share of PROXIMITY_BONUS)
_PROXIMITY_TIERS = ((5.0, 1.0), (10.0, 0.8), (20.0, 0.6))


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points using the haversine formula."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _same_name(left: Optional[str], right: Optional[str]) -> bool:
    return bool(left and right and left.strip().lower() == right.strip().lower())


def location_distance(left: Location, right: Location) -> Optional[float]:
    if left.coordinates is None or right.coordinates is None:
        return None
    return distance_km(left.coordinates.lat, left.coordinates.lng, right.coordinates.lat, right.coordinates.lng)


def same_state_distance(left: Location, right: Location) -> Optional[float]:
    """Distance between two locations that share a state, or None when it cannot be judged."""
    if not _same_name(left.state, right.state):
        return None
    return location_distance(left, right)


def is_same_area(
    requester: Optional[Location],
    candidate: Optional[Location],
    radius_km: float = SAME_AREA_RADIUS_KM,
) -> bool:
    """District match, then city match, then short same-state distance."""
    if requester is None or candidate is None:
        return False
    if _same_name(requester.district, candidate.district):
        return True
    if _same_name(requester.city, candidate.city):
        return True
    distance = same_state_distance(requester, candidate)
    return distance is not None and distance <= radius_km


def nearby_distance(
    requester: Location,
    candidate: Location,
    radius_km: float = SAME_AREA_RADIUS_KM,
) -> Optional[float]:
    distance = same_state_distance(requester, candidate)
    if distance is not None and distance <= radius_km:
        return distance
    return None


def proximity_bonus(distance: float) -> float:
    for limit, share in _PROXIMITY_TIERS:
        if distance <= limit:
            return PROXIMITY_BONUS * share
    return 0.0


def score_candidate(
    requester: Location,
    candidate: Location,
    service_radius_km: Optional[float] = None,
) -> Tuple[int, Optional[float]]:
    """Score an in-area candidate and return it with the computed distance.

    The caller must already know the candidate is in the requester's area.
    Bonuses are cumulative; the service-radius bonus only applies to
    candidates that declare a radius.
    """
    score = float(BASE_SCORE)
    if _same_name(requester.city, candidate.city):
        score += CITY_MATCH_BONUS
    if _same_name(requester.sub_district, candidate.sub_district):
        score += SUB_DISTRICT_MATCH_BONUS

    distance = location_distance(requester, candidate)
    if distance is not None:
        score += proximity_bonus(distance)
        if service_radius_km and distance <= float(service_radius_km):
            score += SERVICE_RADIUS_BONUS

    return int(round(score)), distance
