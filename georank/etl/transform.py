"""Utilities for turning provider responses into locations and candidates into API payloads."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from georank.core.models import GLOBAL_POSTAL_CODE, Coordinates, Location, ScoredCandidate

logger = logging.getLogger(__name__)

LISTING_PLACEHOLDER_IMAGE = "/api/placeholder/400/300"
BANNER_PLACEHOLDER_IMAGE = "/placeholder-banner.jpg"
# India Post reports missing values as "NA".
_POST_OFFICE_BLANKS = {"", "NA", "N/A"}


def extract_component(address_components: Iterable[Dict[str, Any]], target_type: str) -> Optional[str]:
    for component in address_components or []:
        if not isinstance(component, dict):
            continue
        if target_type in (component.get("types") or []):
            return component.get("long_name")
    return None


def _coordinates_from_geometry(result: Dict[str, Any]) -> Optional[Coordinates]:
    geometry = result.get("geometry")
    location = geometry.get("location") if isinstance(geometry, dict) else None
    if not isinstance(location, dict):
        return None
    try:
        return Coordinates(lat=float(location["lat"]), lng=float(location["lng"]))
    except (KeyError, TypeError, ValueError):
        logger.debug("Geocode result without usable geometry: %s", geometry)
        return None


def location_from_geocode_result(result: Dict[str, Any], coordinates: Optional[Coordinates] = None) -> Location:
    """Map a Google Geocoding result onto a Location.

    ``coordinates`` overrides the result geometry, so reverse lookups keep the
    exact point they were asked about.
    """
    components = result.get("address_components")
    if not isinstance(components, list):
        components = []
    return Location(
        coordinates=coordinates or _coordinates_from_geometry(result),
        district=extract_component(components, "administrative_area_level_2"),
        sub_district=extract_component(components, "administrative_area_level_3"),
        city=extract_component(components, "locality"),
        state=extract_component(components, "administrative_area_level_1"),
        postal_code=extract_component(components, "postal_code"),
        formatted_address=result.get("formatted_address"),
    )


def location_from_nominatim(result: Dict[str, Any]) -> Optional[Location]:
    try:
        coordinates = Coordinates(lat=float(result["lat"]), lng=float(result["lon"]))
    except (KeyError, TypeError, ValueError):
        logger.debug("Nominatim result without usable coordinates: %s", result)
        return None
    display_name = str(result.get("display_name") or "")
    city = display_name.split(",")[0].strip() or None
    return Location(coordinates=coordinates, city=city, formatted_address=display_name or None)


def _post_office_value(office: Dict[str, Any], key: str) -> Optional[str]:
    value = office.get(key) if isinstance(office, dict) else None
    if value is None:
        return None
    value = str(value).strip()
    return None if value.upper() in _POST_OFFICE_BLANKS else value


def location_from_post_office(office: Dict[str, Any], postal_code: str) -> Location:
    """Partial location from an India Post office record; the directory has no coordinates."""
    district = _post_office_value(office, "District")
    state = _post_office_value(office, "State")
    parts = [_post_office_value(office, "Name"), district, state]
    return Location(
        district=district,
        sub_district=_post_office_value(office, "Block"),
        state=state,
        postal_code=_post_office_value(office, "Pincode") or postal_code,
        formatted_address=", ".join(part for part in parts if part) or None,
    )


def normalize_postal_code(value: Any) -> Optional[str]:
    """Postal codes arrive as integers from banner tables and as strings elsewhere."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return GLOBAL_POSTAL_CODE if value == 0 else str(value)
    text = str(value).strip()
    return text or None


def _format_distance(distance_km: Optional[float]) -> Optional[str]:
    return f"{distance_km:.1f} km" if distance_km is not None else None


def _isoformat(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def format_listing(scored: ScoredCandidate) -> Dict[str, Any]:
    row = scored.item
    payload = {
        "id": row.get("id"),
        "title": row.get("title"),
        "category": row.get("category_name") or "Uncategorized",
        "subcategory": row.get("business_category") or "",
        "location": row.get("city_name") or "Unknown",
        "date": _isoformat(row.get("created_at")),
        "imageSrc": row.get("image_url") or LISTING_PLACEHOLDER_IMAGE,
        "locationScore": scored.location_score,
        "slug": row.get("slug"),
        "price": row.get("price"),
        "isPromoted": bool(row.get("is_promoted")),
    }
    distance = _format_distance(scored.distance_km)
    if distance:
        payload["distance"] = distance
    return payload


def format_promoted_banner(scored: ScoredCandidate) -> Dict[str, Any]:
    row = scored.item
    promotion_days = row.get("subscription_promotion_days") or 0
    has_promotion = row.get("promotion_id") is not None
    end_date = row.get("promotion_end_date")
    if not has_promotion and promotion_days and isinstance(row.get("created_at"), datetime):
        end_date = row["created_at"] + timedelta(days=promotion_days)

    return {
        "id": row.get("id"),
        "imageUrl": row.get("image_url") or BANNER_PLACEHOLDER_IMAGE,
        "title": row.get("title"),
        "subtitle": f"{row.get('category_name') or 'Item'} in {row.get('city_name') or 'your area'}",
        "link": f"/list/{row.get('slug')}",
        "promotionType": "STANDARD",
        "promotionEndDate": _isoformat(end_date),
        "isSubscriptionPromotion": not has_promotion and bool(promotion_days),
        "locationScore": scored.location_score,
    }


def format_slot_banner(scored: ScoredCandidate) -> Dict[str, Any]:
    row = scored.item
    pincode = normalize_postal_code(row.get("pincode"))
    is_global = pincode == GLOBAL_POSTAL_CODE
    if is_global:
        subtitle = "Featured Nationwide"
    else:
        subtitle = f"Available in PIN: {pincode}" if pincode else "Available in your area"

    return {
        "id": row.get("id"),
        "imageUrl": row.get("image") or BANNER_PLACEHOLDER_IMAGE,
        "title": f"Banner {row.get('id')}",
        "subtitle": subtitle,
        "link": row.get("listing_url") or "#",
        "youtubeUrl": row.get("youtube_url"),
        "isGlobal": is_global,
        "locationScore": scored.location_score,
        "expiresAt": _isoformat(row.get("expires_at")),
        "pincode": row.get("pincode"),
    }
