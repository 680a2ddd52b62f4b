"""Database helpers for fetching eligible listings and banners."""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from psycopg2 import extras, pool, sql

from georank.core.config import get_settings

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None

BANNER_TABLES = {
    "middle": "MiddleBanner",
    "bottom": "BottomBanner",
    "hero": "HeroBanner",
    "category": "CategoryBanner",
}


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def _fetch_all(query: Any, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
    return [dict(row) for row in rows]


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


_APPROVED_LISTINGS = """
SELECT
    l.id,
    l.title,
    l.slug,
    l.price,
    l.pincode,
    l."locationUrl" AS location_url,
    l."serviceRadius" AS service_radius,
    l."businessCategory" AS business_category,
    l."createdAt" AS created_at,
    city.name AS city_name,
    category.name AS category_name,
    (
        SELECT image.url FROM "Image" image
        WHERE image."listingId" = l.id AND image."isPrimary"
        LIMIT 1
    ) AS image_url,
    EXISTS (
        SELECT 1 FROM "Promotion" promotion
        WHERE promotion."listingId" = l.id AND promotion."isActive"
    ) AS is_promoted
FROM "Listing" l
LEFT JOIN "City" city ON city.id = l."cityId"
LEFT JOIN "Category" category ON category.id = l."categoryId"
WHERE l.status = 'APPROVED'
ORDER BY l."createdAt" DESC;
"""

_PROMOTED_LISTINGS = """
SELECT
    l.id,
    l.title,
    l.slug,
    l.pincode,
    l."locationUrl" AS location_url,
    l."createdAt" AS created_at,
    city.name AS city_name,
    category.name AS category_name,
    (
        SELECT image.url FROM "Image" image
        WHERE image."listingId" = l.id AND image."isBanner"
        LIMIT 1
    ) AS image_url,
    promotion.id AS promotion_id,
    promotion."endDate" AS promotion_end_date,
    subscription."promotionDays" AS subscription_promotion_days
FROM "Listing" l
LEFT JOIN "City" city ON city.id = l."cityId"
LEFT JOIN "Category" category ON category.id = l."categoryId"
LEFT JOIN LATERAL (
    SELECT p.id, p."endDate" FROM "Promotion" p
    WHERE p."listingId" = l.id
      AND p."isActive"
      AND (p."endDate" IS NULL OR p."endDate" >= %(now)s)
    ORDER BY p."startDate" DESC
    LIMIT 1
) promotion ON TRUE
LEFT JOIN "Subscription" subscription
    ON subscription.id = l."subscriptionId" AND subscription."isActive"
WHERE l.status = 'APPROVED'
  AND l."isBannerEnabled"
  AND (promotion.id IS NOT NULL OR COALESCE(subscription."promotionDays", 0) > 0)
ORDER BY l."createdAt" DESC;
"""

_SLOT_BANNERS = """
SELECT
    b.id,
    b."Image" AS image,
    b."ListingUrl" AS listing_url,
    b."youtubeUrl" AS youtube_url,
    b.pincode,
    b."locationUrl" AS location_url,
    b."expiresAt" AS expires_at,
    b."createdAt" AS created_at
FROM {table} b
{category_join}
WHERE b.active
  AND (b."expiresAt" IS NULL OR b."expiresAt" >= %(now)s)
  {category_filter}
ORDER BY b."createdAt" DESC;
"""


def fetch_approved_listings() -> List[Dict[str, Any]]:
    """Listings an administrator has approved, newest first."""
    rows = _fetch_all(_APPROVED_LISTINGS, {})
    logger.debug("Fetched %d approved listings", len(rows))
    return rows


def fetch_promoted_listings(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Approved, banner-enabled listings with a live promotion or promotional subscription."""
    rows = _fetch_all(_PROMOTED_LISTINGS, {"now": _now(now)})
    logger.debug("Fetched %d promoted listings", len(rows))
    return rows


def build_slot_banner_query(slot: str, category: Optional[str] = None) -> sql.Composed:
    table = BANNER_TABLES.get(slot)
    if table is None:
        raise ValueError(f"unknown banner slot: {slot}")
    category_join = sql.SQL("")
    category_filter = sql.SQL("")
    if category:
        category_join = sql.SQL('JOIN "Category" category ON category.id = b."categoryId"')
        category_filter = sql.SQL("AND category.name = %(category)s")
    return sql.SQL(_SLOT_BANNERS).format(
        table=sql.Identifier(table),
        category_join=category_join,
        category_filter=category_filter,
    )


def fetch_slot_banners(slot: str, category: Optional[str] = None, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Active, unexpired banners for one slot, optionally limited to a category."""
    query = build_slot_banner_query(slot, category)
    params: Dict[str, Any] = {"now": _now(now)}
    if category:
        params["category"] = category
    rows = _fetch_all(query, params)
    logger.debug("Fetched %d %s banners", len(rows), slot)
    return rows
