"""Client utilities for the Google Geocoding API."""

import logging
from typing import Any, Dict, List, Optional

from georank.vendors.session import build_session

logger = logging.getLogger(__name__)
_SESSION = build_session()
_BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(RuntimeError):
    """Raised when the Geocoding API returns a non-successful response."""


def _request(params: Dict[str, Any], timeout: float) -> List[Dict[str, Any]]:
    response = _SESSION.get(_BASE_URL, params=params, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status == "ZERO_RESULTS":
        return []
    if status != "OK":
        logger.error("geocode failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise GeocodingError(payload.get("error_message") or status)
    return payload.get("results") or []


def geocode(address: str, api_key: str, country: Optional[str] = None, timeout: float = 10) -> List[Dict[str, Any]]:
    params = {"address": address, "key": api_key}
    if country:
        params["components"] = f"country:{country}"
    return _request(params, timeout)


def reverse_geocode(lat: float, lng: float, api_key: str, timeout: float = 10) -> List[Dict[str, Any]]:
    params = {"latlng": f"{lat},{lng}", "key": api_key}
    return _request(params, timeout)
