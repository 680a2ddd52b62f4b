"""Helpers for Google Maps share links: short-link expansion and coordinate extraction."""

import logging
import math
import re
from typing import Callable, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from georank.core.models import Coordinates
from georank.vendors.session import build_session

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10
_SESSION = build_session()
_SESSION.max_redirects = MAX_REDIRECTS
_STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"

_SHORT_HOSTS = ("goo.gl",)
_AT_PATTERN = re.compile(r"@(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)")
_PLACE_PATTERN = re.compile(r"!3d([\d.-]+)!4d([\d.-]+)")


def is_short_url(url: str) -> bool:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return any(host == short or host.endswith(f".{short}") for short in _SHORT_HOSTS)


def expand_short_url(url: str, timeout: float = 5) -> str:
    """Follow the redirect chain of a short link, returning the original URL on failure."""
    if not is_short_url(url):
        return url
    try:
        response = _SESSION.head(url, allow_redirects=True, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Failed to expand short URL %s, using original: %s", url, exc)
        return url
    resolved = response.url or url
    logger.debug("Resolved %s -> %s", url, resolved)
    return resolved


def _to_coordinates(lat_raw: str, lng_raw: str) -> Optional[Coordinates]:
    try:
        lat = float(lat_raw)
        lng = float(lng_raw)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return Coordinates(lat=lat, lng=lng)


def _from_at_segment(url: str) -> Optional[Coordinates]:
    match = _AT_PATTERN.search(url)
    return _to_coordinates(*match.groups()) if match else None


def _from_query(url: str) -> Optional[Coordinates]:
    try:
        values = parse_qs(urlparse(url).query).get("q") or []
    except ValueError:
        return None
    for value in values:
        parts = value.split(",")
        if len(parts) == 2:
            coordinates = _to_coordinates(parts[0], parts[1])
            if coordinates:
                return coordinates
    return None


def _from_place_token(url: str) -> Optional[Coordinates]:
    match = _PLACE_PATTERN.search(url)
    return _to_coordinates(*match.groups()) if match else None


_EXTRACTORS: Tuple[Callable[[str], Optional[Coordinates]], ...] = (
    _from_at_segment,
    _from_query,
    _from_place_token,
)


def extract_coordinates(url: Optional[str]) -> Optional[Coordinates]:
    """Pull a lat/lng pair out of a maps URL: ``@lat,lng``, then ``q=lat,lng``, then ``!3d..!4d..``."""
    if not url:
        return None
    for extractor in _EXTRACTORS:
        coordinates = extractor(url)
        if coordinates is not None:
            return coordinates
    logger.info("Could not extract coordinates from URL: %s", url)
    return None


def static_map_url(lat: float, lng: float, api_key: str) -> str:
    params = {
        "center": f"{lat},{lng}",
        "zoom": "15",
        "size": "600x300",
        "maptype": "roadmap",
        "markers": f"color:red|{lat},{lng}",
        "key": api_key,
        "scale": "2",
    }
    return f"{_STATIC_MAP_URL}?{urlencode(params)}"
