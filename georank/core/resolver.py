"""Coordinate resolution for postal codes, map links and city names."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

import requests

from georank.core.cache import LocationCache, get_location_cache
from georank.core.config import Settings, get_settings
from georank.core.models import CandidateHints, Coordinates, Location
from georank.etl import transform
from georank.vendors import google_geocoding, india_post, map_links, nominatim

logger = logging.getLogger(__name__)

HINT_MAP_URL = "map_url"
HINT_POSTAL_CODE = "postal"
HINT_CITY = "city"
HINT_COORDINATES = "coords"
HINT_ENTITY = "entity"

# Failures a provider call may raise; all of them mean "no data for this hint".
_PROVIDER_ERRORS = (
    requests.RequestException,
    google_geocoding.GeocodingError,
    india_post.PostalLookupError,
    nominatim.NominatimError,
)


class CoordinateResolver:
    """Resolve location hints into :class:`Location` values.

    Provider failures never escape: every public ``resolve_*`` method returns
    ``None`` when a hint cannot be resolved. Successful lookups are cached
    under ``<kind>:<value>`` so repeated hints skip the network until expiry.
    """

    def __init__(self, settings: Settings, cache: LocationCache) -> None:
        self._settings = settings
        self._cache = cache

    def resolve(self, kind: str, value: Any) -> Optional[Location]:
        handlers: Dict[str, Callable[[Any], Optional[Location]]] = {
            HINT_MAP_URL: self.resolve_map_url,
            HINT_POSTAL_CODE: self.resolve_postal_code,
            HINT_CITY: self.resolve_city,
        }
        handler = handlers.get(kind)
        if handler is None:
            raise ValueError(f"unknown hint kind: {kind}")
        return handler(value)

    def resolve_postal_code(self, postal_code: str) -> Optional[Location]:
        code = str(postal_code or "").strip()
        if not code:
            return None
        return self._cached(HINT_POSTAL_CODE, code, self._load_postal_code)

    def resolve_city(self, city_name: str) -> Optional[Location]:
        name = str(city_name or "").strip()
        if not name:
            return None
        return self._cached(HINT_CITY, name, self._load_city)

    def resolve_map_url(self, url: str) -> Optional[Location]:
        url = str(url or "").strip()
        if not url:
            return None
        return self._cached(HINT_MAP_URL, url, self._load_map_url)

    def resolve_coordinates(self, coordinates: Coordinates) -> Optional[Location]:
        key = f"{coordinates.lat},{coordinates.lng}"
        return self._cached(HINT_COORDINATES, key, lambda _: self._load_coordinates(coordinates))

    def resolve_candidate(self, hints: CandidateHints) -> Optional[Location]:
        """Walk a candidate's hints in priority order: map link, postal code, city name."""
        entity_key = f"{HINT_ENTITY}:{hints.entity_key}" if hints.entity_key else None
        if entity_key:
            cached = self._cache.get(entity_key)
            if cached is not None:
                return cached

        location = self._walk_hints(hints)
        if location is not None and entity_key and location.has_admin_detail:
            self._cache.set(entity_key, location, self._settings.entity_cache_ttl)
        return location

    def describe_map_link(self, url: str) -> Optional[Dict[str, Any]]:
        """Summarise a shared maps link: coordinates, address and a static preview image."""
        expanded = map_links.expand_short_url(url, timeout=self._settings.short_url_timeout)
        coordinates = map_links.extract_coordinates(expanded)
        if coordinates is None:
            return None

        location = self.resolve_coordinates(coordinates)
        address = location.formatted_address if location else None
        return {
            "name": (location.city if location else None) or "Location",
            "address": address or f"Near {coordinates.lat}, {coordinates.lng}",
            "coordinates": {"lat": coordinates.lat, "lng": coordinates.lng},
            "district": location.district if location else None,
            "state": location.state if location else None,
            "staticMapUrl": map_links.static_map_url(
                coordinates.lat, coordinates.lng, self._settings.google_maps_api_key
            ),
        }

    # ---------- Internals ----------

    def _walk_hints(self, hints: CandidateHints) -> Optional[Location]:
        coordinates_only = None
        if hints.map_url:
            location = self.resolve_map_url(hints.map_url)
            if location is not None and location.has_admin_detail:
                return location
            coordinates_only = location

        if hints.postal_code:
            location = self.resolve_postal_code(hints.postal_code)
            if location is not None:
                return location

        if hints.city_name:
            location = self.resolve_city(hints.city_name)
            if location is not None:
                return location

        return coordinates_only

    def _cached(self, kind: str, value: str, loader: Callable[[str], Optional[Location]]) -> Optional[Location]:
        key = f"{kind}:{value}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            location = loader(value)
        except _PROVIDER_ERRORS as exc:
            logger.warning("Location lookup failed for %s=%s: %s", kind, value, exc)
            return None

        if location is None:
            logger.info("No location found for %s=%s", kind, value)
            return None
        # Coordinates alone cannot be classified; retry the lookup next time.
        if location.has_admin_detail:
            self._cache.set(key, location, self._settings.postal_cache_ttl)
        return location

    def _geocode_first(self, address: str, country: Optional[str]) -> Optional[Location]:
        settings = self._settings
        try:
            results = google_geocoding.geocode(
                address, settings.google_maps_api_key, country=country, timeout=settings.geocode_timeout
            )
        except (requests.RequestException, google_geocoding.GeocodingError) as exc:
            logger.warning("Google geocoding failed for %s: %s", address, exc)
            return None
        return _first_location(results)

    def _load_postal_code(self, postal_code: str) -> Optional[Location]:
        location = self._geocode_first(postal_code, self._settings.geocode_country)
        if location is not None:
            return location

        offices = india_post.lookup_pincode(postal_code, timeout=self._settings.geocode_timeout)
        if not offices:
            return None
        location = transform.location_from_post_office(offices[0], postal_code)
        if not location.has_admin_detail:
            return None
        logger.info("Using India Post directory data for pincode=%s", postal_code)
        return location

    def _load_city(self, city_name: str) -> Optional[Location]:
        settings = self._settings
        location = self._geocode_first(f"{city_name}, {settings.geocode_country_name}", None)
        if location is not None:
            return location

        place = nominatim.search_city(
            city_name,
            settings.geocode_country_name,
            settings.nominatim_user_agent,
            timeout=settings.geocode_timeout,
        )
        if not place:
            return None
        approximate = transform.location_from_nominatim(place)
        if approximate is None or approximate.coordinates is None:
            return None
        return self.resolve_coordinates(approximate.coordinates) or approximate

    def _load_map_url(self, url: str) -> Optional[Location]:
        expanded = map_links.expand_short_url(url, timeout=self._settings.short_url_timeout)
        coordinates = map_links.extract_coordinates(expanded)
        if coordinates is None:
            return None
        return self.resolve_coordinates(coordinates) or Location(coordinates=coordinates)

    def _load_coordinates(self, coordinates: Coordinates) -> Optional[Location]:
        results = google_geocoding.reverse_geocode(
            coordinates.lat,
            coordinates.lng,
            self._settings.google_maps_api_key,
            timeout=self._settings.geocode_timeout,
        )
        return _first_location(results, coordinates=coordinates)


def _first_location(results: Any, coordinates: Optional[Coordinates] = None) -> Optional[Location]:
    """First geocode result as a Location, skipping malformed entries and ones without admin detail."""
    for result in results or []:
        if not isinstance(result, dict):
            continue
        location = transform.location_from_geocode_result(result, coordinates=coordinates)
        if location.has_admin_detail:
            return location
        logger.debug("Skipping geocode result without administrative detail: %s", result.get("formatted_address"))
    return None


@lru_cache(maxsize=1)
def get_resolver() -> CoordinateResolver:
    return CoordinateResolver(get_settings(), get_location_cache())
