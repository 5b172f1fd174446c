"""
Shared-key check for the machine-to-machine API.
Callers (the inbound listener, dispatch tooling) send X-API-Key; the value must equal INGEST_API_KEY.
"""
from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from load_hunter.core.config import settings


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    """
    Raises 503 when no key is configured (the API stays closed rather than open),
    401 when the header is missing or wrong.
    """
    configured_key = (settings.INGEST_API_KEY or "").strip()
    if not configured_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ingest_api_key_not_configured",
        )
    if not x_api_key or not hmac.compare_digest(x_api_key, configured_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_api_key",
        )
