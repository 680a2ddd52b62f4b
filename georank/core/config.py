"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

TIER_POLICIES = {"isolated", "top_up"}


@dataclass(frozen=True)
class Settings:
    google_maps_api_key: str
    database_url: str
    geocode_country: str = "IN"
    geocode_country_name: str = "India"
    nominatim_user_agent: str = "GeoRankBot/1.0"
    postal_cache_ttl: int = 86400
    entity_cache_ttl: int = 21600
    geocode_timeout: float = 10.0
    short_url_timeout: float = 5.0
    resolve_workers: int = 8
    tier_policy: str = "isolated"
    port: int = 8080


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_maps_api_key = os.getenv("GOOGLE_MAPS_API_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")
    geocode_country = os.getenv("GEOCODE_COUNTRY", "IN").strip().upper()
    geocode_country_name = os.getenv("GEOCODE_COUNTRY_NAME", "India").strip()
    nominatim_user_agent = os.getenv("NOMINATIM_USER_AGENT", "GeoRankBot/1.0")
    postal_cache_ttl = int(os.getenv("POSTAL_CACHE_TTL_SECONDS", "86400"))
    entity_cache_ttl = int(os.getenv("ENTITY_CACHE_TTL_SECONDS", "21600"))
    geocode_timeout = float(os.getenv("GEOCODE_TIMEOUT_SECONDS", "10"))
    short_url_timeout = float(os.getenv("SHORT_URL_TIMEOUT_SECONDS", "5"))
    resolve_workers = max(1, int(os.getenv("RESOLVE_WORKERS", "8")))
    tier_policy = os.getenv("SELECTION_TIER_POLICY", "isolated").strip().lower()
    port = int(os.getenv("PORT", "8080"))

    if not database_url:
        logger.warning("DATABASE_URL is not set; candidate lookups will fail.")
    if not google_maps_api_key:
        logger.warning("GOOGLE_MAPS_API_KEY is not configured; geocoding requests will fail.")
    if tier_policy not in TIER_POLICIES:
        logger.warning("Unknown SELECTION_TIER_POLICY=%s; using isolated tiers.", tier_policy)
        tier_policy = "isolated"

    return Settings(
        google_maps_api_key=google_maps_api_key,
        database_url=database_url,
        geocode_country=geocode_country,
        geocode_country_name=geocode_country_name,
        nominatim_user_agent=nominatim_user_agent,
        postal_cache_ttl=postal_cache_ttl,
        entity_cache_ttl=entity_cache_ttl,
        geocode_timeout=geocode_timeout,
        short_url_timeout=short_url_timeout,
        resolve_workers=resolve_workers,
        tier_policy=tier_policy,
        port=port,
    )
