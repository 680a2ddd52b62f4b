"""OpenStreetMap Nominatim search, used when Google has no match for a city."""

import logging
from typing import Any, Dict, Optional

from georank.vendors.session import build_session

logger = logging.getLogger(__name__)
_SESSION = build_session()
_SEARCH_URL = "https://nominatim.openstreetmap.org/search"


class NominatimError(RuntimeError):
    """Raised when Nominatim returns an unexpected payload."""


def search_city(city: str, country: str, user_agent: str, timeout: float = 10) -> Optional[Dict[str, Any]]:
    """Return the best Nominatim match for ``city`` or None.

    Nominatim reports ``lat``/``lon`` as strings; parsing is left to the caller.
    """
    params = {"city": city, "country": country, "format": "json", "limit": 1}
    response = _SESSION.get(_SEARCH_URL, params=params, headers={"User-Agent": user_agent}, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, list):
        raise NominatimError(f"unexpected search payload: {str(payload)[:200]}")
    if not payload:
        logger.info("Nominatim has no match for city=%s", city)
        return None
    return payload[0]
