"""Content fingerprint for exact-match duplicate detection.

The same load is often re-posted or reaches the mailbox more than once.  The
fingerprint is a SHA-256 over a canonical, key-sorted JSON rendering of the
parsed fields, so two emails describing identical loads hash the same even
when whitespace, email case or number formatting differ.

Bump FINGERPRINT_VERSION whenever the canonicalisation changes.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

FINGERPRINT_VERSION = 1

_STRICT_FIELDS = (
    "broker_name",
    "broker_company",
    "broker_phone",
    "order_number",
    "customer_name",
    "origin_city",
    "origin_zip",
    "destination_city",
    "destination_zip",
    "pickup_time",
    "delivery_time",
    "expires_datetime",
    "dimensions",
    "notes",
)
_LOWER_FIELDS = ("broker_email", "vehicle_type", "load_type")
_STATE_FIELDS = ("origin_state", "destination_state")
_NUMERIC_FIELDS = ("loaded_miles", "weight_lbs", "rate")
_INT_FIELDS = ("pieces", "stop_count")
_DATE_FIELDS = ("pickup_date", "delivery_date")
_BOOL_FIELDS = ("hazmat", "stackable", "dock_level", "has_multiple_stops")

_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def _strict(value: Any) -> str | None:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def _lower(value: Any) -> str | None:
    trimmed = _strict(value)
    return trimmed.lower() if trimmed else None


def _numeric_2dp(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    else:
        raw = str(value).strip()
        # "1.234,50" style decimals
        raw = re.sub(r",(\d{2})$", r".\1", raw)
        raw = re.sub(r"[^0-9.\-]", "", raw.replace(",", ""))
    if raw in {"", "-", "."}:
        return None
    try:
        return float(Decimal(raw).quantize(Decimal("0.01")))
    except InvalidOperation:
        return None


def _int_strict(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    cleaned = re.sub(r"[^0-9\-]", "", str(value))
    try:
        return int(cleaned) if cleaned else None
    except ValueError:
        return None


def _iso_date(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    trimmed = str(value).strip()
    match = _US_DATE_RE.match(trimmed)
    if match:
        month, day, year = match.groups()
        if len(year) == 2:
            year = ("19" if int(year) > 50 else "20") + year
        return f"{year}-{int(month):02d}-{int(day):02d}"
    match = _ISO_DATE_RE.match(trimmed)
    if match:
        return "-".join(match.groups())
    return None


def _bool_strict(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    lowered = str(value).strip().lower()
    if lowered in {"true", "yes", "1"}:
        return True
    if lowered in {"false", "no", "0"}:
        return False
    return None


def _timestamp(value: Any) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return _strict(value)


def build_canonical_payload(parsed: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {"fingerprint_version": FINGERPRINT_VERSION}
    for name in _STRICT_FIELDS:
        payload[name] = _strict(parsed.get(name))
    for name in _LOWER_FIELDS:
        payload[name] = _lower(parsed.get(name))
    for name in _STATE_FIELDS:
        state = _strict(parsed.get(name))
        payload[name] = state.upper() if state else None
    for name in _NUMERIC_FIELDS:
        payload[name] = _numeric_2dp(parsed.get(name))
    for name in _INT_FIELDS:
        payload[name] = _int_strict(parsed.get(name))
    for name in _DATE_FIELDS:
        payload[name] = _iso_date(parsed.get(name))
    for name in _BOOL_FIELDS:
        payload[name] = _bool_strict(parsed.get(name))
    payload["expires_at"] = _timestamp(parsed.get("expires_at"))
    return dict(sorted(payload.items()))


def dedup_eligibility(payload: dict[str, Any]) -> tuple[bool, str | None]:
    """Only loads with these anchors are safe to collapse as duplicates."""
    if not (payload.get("origin_city") and payload.get("origin_state")):
        return False, "missing_origin_location"
    if not (payload.get("destination_city") and payload.get("destination_state")):
        return False, "missing_destination_location"
    if not (payload.get("broker_company") or payload.get("broker_name") or payload.get("broker_email")):
        return False, "missing_broker_identity"
    if not payload.get("pickup_date"):
        return False, "missing_pickup_date"
    return True, None


def compute_fingerprint(parsed: dict[str, Any] | BaseModel | None) -> dict[str, Any]:
    """Returns a dict with keys:
      fingerprint        str | None  – 64-char hex digest
      canonical_payload  dict | None – what was hashed
      dedup_eligible     bool
      dedup_reason       str | None  – why the load is not dedup-eligible
    """
    if isinstance(parsed, BaseModel):
        parsed = parsed.model_dump()
    if not isinstance(parsed, dict):
        logger.error("fingerprint: missing parsed data; cannot compute")
        return {
            "fingerprint": None,
            "canonical_payload": None,
            "dedup_eligible": False,
            "dedup_reason": "missing_parsed_data",
        }

    payload = build_canonical_payload(parsed)
    eligible, reason = dedup_eligibility(payload)
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return {
        "fingerprint": digest,
        "canonical_payload": payload,
        "dedup_eligible": eligible,
        "dedup_reason": reason,
    }
