"""Security dependencies for the admin API key."""
from __future__ import annotations

import hashlib
import logging
import secrets

from fastapi import Header

from alert_receiver.config import get_settings
from alert_receiver.utils.errors import not_found

logger = logging.getLogger(__name__)


def _extract_key(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str | None:
    """Read the key from ``Authorization: Bearer ...`` or ``X-API-Key``."""
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def key_fingerprint(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:8]


def require_admin(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str:
    """Return the actor string for a valid admin key.

    Anything else gets a 404, so admin routes don't reveal that they exist.
    """

    token = _extract_key(authorization, x_api_key)
    expected = get_settings().admin_api_key
    if not token or not expected or not secrets.compare_digest(token, expected):
        if token:
            logger.warning("Rejected admin API key", extra={"fingerprint": key_fingerprint(token)})
        raise not_found()
    return f"apikey:{key_fingerprint(token)}"


__all__ = ["require_admin", "key_fingerprint"]
