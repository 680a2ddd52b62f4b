"""HTTP entrypoint serving location-ranked listings and banners."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from georank.core.cache import get_location_cache
from georank.core.config import get_settings
from georank.core.resolver import get_resolver
from georank.core.variants import BANNER_SLOTS, select_for_variant

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)

# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, no database round trip."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "tier_policy": settings.tier_policy,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/listings/random")
def random_listings() -> Any:
    """
    Location-ranked listings.
    Optional query: pincode (requester postal code), limit (positive int, default 6)
    """
    try:
        limit = _parse_limit(request.args.get("limit"))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    return _select("listings", request.args.get("pincode"), limit)


@app.get("/banners/<slot>")
def banners(slot: str) -> Any:
    """
    Location-ranked banners for one slot.
    Optional query: location (requester postal code), limit, category (category slot only)
    """
    if slot not in BANNER_SLOTS:
        return jsonify({"error": f"unknown banner slot: {slot}"}), 400
    try:
        limit = _parse_limit(request.args.get("limit"))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    return _select(slot, request.args.get("location"), limit, category=request.args.get("category"))


@app.post("/maps")
def map_link_lookup() -> Any:
    """Coordinates, address and a static preview for a shared maps link."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    url = str(payload.get("url") or "").strip()
    if not url:
        return jsonify({"error": "url is required"}), 400

    details = get_resolver().describe_map_link(url)
    if details is None:
        return jsonify({"error": "could not extract coordinates from url"}), 422

    response = jsonify({"data": details})
    response.headers["Cache-Control"] = "public, max-age=86400, stale-while-revalidate=3600"
    return response, 200


@app.post("/cache/clear")
def clear_cache() -> Any:
    get_location_cache().clear()
    logger.info("Location cache cleared")
    return jsonify({"data": {"status": "cleared"}}), 200


# ---------- Internals ----------


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise ValueError("limit must be numeric") from None
    if limit <= 0:
        raise ValueError("limit must be positive")
    return limit


def _select(variant: str, postal_code: Optional[str], limit: Optional[int], category: Optional[str] = None) -> Any:
    try:
        results = select_for_variant(variant, postal_code, limit, category=category)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Selection failed for %s: %s", variant, exc)
        return jsonify({"error": f"failed to fetch {variant}"}), 500

    logger.info("Returning %d %s for postal code %s", len(results), variant, postal_code or "all")
    return jsonify({"data": results}), 200


def main() -> None:
    port = get_settings().port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
