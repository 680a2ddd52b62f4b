"""Candidate variants served by the geo-relevance selector.

Each variant knows how to fetch its eligible pool, read location hints off a
row and shape the selected rows for the API. The ranking itself is shared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from georank.core import db
from georank.core.config import get_settings
from georank.core.models import CandidateHints, ScoredCandidate
from georank.core.resolver import CoordinateResolver, get_resolver
from georank.core.selector import GeoRelevanceSelector
from georank.etl import transform

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass(frozen=True)
class Variant:
    name: str
    fetch: Callable[[Optional[str]], List[Row]]
    hints: Callable[[Row], CandidateHints]
    formatter: Callable[[ScoredCandidate], Dict[str, Any]]
    honor_global_sentinel: bool = False
    default_limit: int = 10


def _float_or_none(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def listing_hints(row: Row) -> CandidateHints:
    # Listings stay visible even when their location cannot be pinned down.
    return CandidateHints(
        entity_key=f"listing:{row.get('id')}",
        map_url=row.get("location_url") or None,
        postal_code=transform.normalize_postal_code(row.get("pincode")),
        city_name=row.get("city_name") or None,
        service_radius_km=_float_or_none(row.get("service_radius")),
        restrictive=False,
    )


def promoted_listing_hints(row: Row) -> CandidateHints:
    return CandidateHints(
        entity_key=f"promoted:{row.get('id')}",
        map_url=row.get("location_url") or None,
        postal_code=transform.normalize_postal_code(row.get("pincode")),
        city_name=row.get("city_name") or None,
    )


def slot_banner_hints(slot: str) -> Callable[[Row], CandidateHints]:
    def extract(row: Row) -> CandidateHints:
        return CandidateHints(
            entity_key=f"{slot}:{row.get('id')}",
            map_url=row.get("location_url") or None,
            postal_code=transform.normalize_postal_code(row.get("pincode")),
        )

    return extract


def _fetch_listings(category: Optional[str]) -> List[Row]:
    return db.fetch_approved_listings()


def _fetch_promoted(category: Optional[str]) -> List[Row]:
    return db.fetch_promoted_listings()


def _slot_fetcher(slot: str) -> Callable[[Optional[str]], List[Row]]:
    def fetch(category: Optional[str]) -> List[Row]:
        return db.fetch_slot_banners(slot, category=category if slot == "category" else None)

    return fetch


def _slot_variant(slot: str) -> Variant:
    return Variant(
        name=slot,
        fetch=_slot_fetcher(slot),
        hints=slot_banner_hints(slot),
        formatter=transform.format_slot_banner,
        honor_global_sentinel=True,
    )


VARIANTS: Dict[str, Variant] = {
    "listings": Variant(
        name="listings",
        fetch=_fetch_listings,
        hints=listing_hints,
        formatter=transform.format_listing,
        default_limit=6,
    ),
    "promoted": Variant(
        name="promoted",
        fetch=_fetch_promoted,
        hints=promoted_listing_hints,
        formatter=transform.format_promoted_banner,
    ),
    **{slot: _slot_variant(slot) for slot in db.BANNER_TABLES},
}
BANNER_SLOTS = tuple(name for name in VARIANTS if name != "listings")


def get_variant(name: str) -> Variant:
    try:
        return VARIANTS[name]
    except KeyError:
        raise ValueError(f"unknown variant: {name}") from None


def build_selector(variant: Variant, resolver: Optional[CoordinateResolver] = None) -> GeoRelevanceSelector:
    settings = get_settings()
    return GeoRelevanceSelector(
        variant.hints,
        resolver or get_resolver(),
        honor_global_sentinel=variant.honor_global_sentinel,
        tier_policy=settings.tier_policy,
        max_workers=settings.resolve_workers,
    )


def select_for_variant(
    name: str,
    postal_code: Optional[str] = None,
    max_results: Optional[int] = None,
    *,
    category: Optional[str] = None,
    resolver: Optional[CoordinateResolver] = None,
) -> List[Dict[str, Any]]:
    """Fetch a variant's eligible pool, rank it for ``postal_code`` and format the result."""
    variant = get_variant(name)
    limit = variant.default_limit if max_results is None else max_results
    pool = variant.fetch(category)
    logger.info("Selecting up to %d %s from %d candidates for postal code %s", limit, name, len(pool), postal_code or "-")
    selected = build_selector(variant, resolver).select(postal_code, pool, limit)
    return [variant.formatter(candidate) for candidate in selected]
