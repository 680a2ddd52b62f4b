"""Postal-code directory lookups against the public India Post API."""

import logging
from typing import Any, Dict, List

from georank.vendors.session import build_session

logger = logging.getLogger(__name__)
_SESSION = build_session()
_BASE_URL = "https://api.postalpincode.in/pincode"


class PostalLookupError(RuntimeError):
    """Raised when the directory returns an unexpected payload."""


def lookup_pincode(pincode: str, timeout: float = 10) -> List[Dict[str, Any]]:
    response = _SESSION.get(f"{_BASE_URL}/{pincode}", timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, list) or not payload:
        raise PostalLookupError(f"unexpected pincode payload: {str(payload)[:200]}")
    entry = payload[0] or {}
    if entry.get("Status") != "Success":
        logger.info("India Post has no offices for pincode=%s: %s", pincode, entry.get("Message"))
        return []
    return entry.get("PostOffice") or []
