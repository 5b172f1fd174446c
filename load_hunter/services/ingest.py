"""Load-email ingestion.

One inbound email goes through:

  extract → (rejected? persist flagged, stop)
          → parser hints → vehicle-type mapping → zip→city fill
          → expiry defaults → origin geocode → persist (idempotent on email_id)
          → fingerprint → hunt matching → persist new matches

Rejected emails are stored with ``status="rejected"`` so an operator can see
why; they are never dropped and never matched.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from load_hunter.core.config import settings
from load_hunter.logic.geo import Coordinates
from load_hunter.logic.sylectus import ParsedLoad, body_lines, extract_load
from load_hunter.models.hunt import HuntPlan, LoadHuntMatch
from load_hunter.models.load_email import LoadEmail
from load_hunter.models.lookups import VehicleTypeMapping
from load_hunter.services.fingerprint import compute_fingerprint
from load_hunter.services.geocoding import (
    DatabaseGeocodeCache,
    Geocoder,
    MapboxGeocoder,
    geocode_location,
    location_key,
)
from load_hunter.services.hunt_matching import evaluate_load
from load_hunter.services.load_ids import next_load_id
from load_hunter.services.parser_hints import apply_parser_hints, load_active_hints

logger = logging.getLogger(__name__)

ISSUE_MISSING_BROKER_EMAIL = "Missing broker email"
ISSUE_MISSING_ORIGIN = "Missing origin location"
ISSUE_MISSING_VEHICLE = "Missing vehicle type"
ISSUE_GEOCODE_FAILED = "Geocoding failed"


def default_geocoder() -> MapboxGeocoder | None:
    if not (settings.MAPBOX_TOKEN or "").strip():
        return None
    return MapboxGeocoder()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate(value: str | None) -> str | None:
    limit = settings.EMAIL_BODY_MAX_CHARS
    if value is None or limit <= 0 or len(value) <= limit:
        return value
    return value[:limit]


def _hint_text(subject: str, body_html: str | None, body_text: str | None) -> str:
    return "\n".join([subject or "", *body_lines(body_html, body_text)])


# ── Enrichment steps ───────────────────────────────────────────────────────────

def resolve_vehicle_type(db: Session, vehicle_type: str | None) -> str | None:
    """Map an email's vehicle wording to the canonical type, if one is configured."""
    if not vehicle_type:
        return vehicle_type
    mapping = (
        db.query(VehicleTypeMapping)
        .filter(
            func.upper(VehicleTypeMapping.original_value) == vehicle_type.upper(),
            VehicleTypeMapping.is_active.is_(True),
        )
        .first()
    )
    if mapping is None:
        return vehicle_type
    return mapping.canonical_value


def apply_expiry_defaults(load: ParsedLoad, received_at: datetime) -> ParsedLoad:
    """posted_at defaults to receipt; expires_at to posted_at + the default window.

    A load is never stored already expired: an expiry before receipt is
    pushed to receipt + the default window.
    """
    window = timedelta(minutes=settings.DEFAULT_EXPIRY_MINUTES)
    received_at = _as_utc(received_at)
    posted_at = _as_utc(load.posted_at) if load.posted_at else received_at
    expires_at = _as_utc(load.expires_at) if load.expires_at else None
    if expires_at is None or expires_at <= posted_at:
        expires_at = posted_at + window
    if expires_at < received_at:
        expires_at = received_at + window
    return load.model_copy(update={"posted_at": posted_at, "expires_at": expires_at})


def _fill_origin_from_zip(load: ParsedLoad, geocoder: Any) -> ParsedLoad:
    if load.origin_city or not load.origin_zip or geocoder is None:
        return load
    lookup = getattr(geocoder, "lookup_city_from_zip", None)
    if lookup is None:
        return load
    resolved = lookup(load.origin_zip, load.origin_state)
    if not resolved:
        return load
    city, state = resolved
    logger.info("ingest: origin city filled from zip=%s -> %s, %s", load.origin_zip, city, state)
    return load.model_copy(update={"origin_city": city, "origin_state": load.origin_state or state})


def _issues_for(load: ParsedLoad, origin_coords: Coordinates | None) -> list[str]:
    issues: list[str] = []
    has_origin = bool(load.origin_city and load.origin_state)
    if not has_origin:
        issues.append(ISSUE_MISSING_ORIGIN)
    if not load.vehicle_type:
        issues.append(ISSUE_MISSING_VEHICLE)
    if has_origin and origin_coords is None:
        issues.append(ISSUE_GEOCODE_FAILED)
    return issues


def _parsed_data(load: ParsedLoad, origin_coords: Coordinates | None) -> dict[str, Any]:
    data = load.model_dump(mode="json")
    data["pickup_coordinates"] = origin_coords.as_dict() if origin_coords else None
    return data


def _enrich(
    db: Session,
    load: ParsedLoad,
    *,
    subject: str,
    body_html: str | None,
    body_text: str | None,
    received_at: datetime,
    geocoder: Any,
    hints: Iterable[Any] | None,
) -> ParsedLoad:
    if hints is None:
        hints = load_active_hints(db)
    load = apply_parser_hints(load, hints, _hint_text(subject, body_html, body_text))
    load = load.model_copy(update={"vehicle_type": resolve_vehicle_type(db, load.vehicle_type)})
    load = _fill_origin_from_zip(load, geocoder)
    return apply_expiry_defaults(load, received_at)


# ── Summaries ──────────────────────────────────────────────────────────────────

def _split_issues(issue_notes: str | None) -> list[str]:
    return [note for note in (issue_notes or "").split("; ") if note]


def _existing_summary(db: Session, row: LoadEmail) -> dict[str, Any]:
    match_count = db.query(func.count(LoadHuntMatch.id)).filter(LoadHuntMatch.load_email_id == row.id).scalar() or 0
    return {
        "status": "duplicate",
        "load_id": row.load_id,
        "load_email_id": row.id,
        "matches": [],
        "existing_matches": int(match_count),
        "issues": _split_issues(row.issue_notes),
    }


# ── Matching ───────────────────────────────────────────────────────────────────

def _persist_matches(db: Session, row: LoadEmail, load: ParsedLoad, origin_coords: Coordinates) -> list[dict[str, Any]]:
    plans = db.query(HuntPlan).filter(HuntPlan.enabled.is_(True)).all()
    candidates = evaluate_load(load, origin_coords, plans)
    if not candidates:
        return []

    existing_plan_ids = {
        plan_id
        for (plan_id,) in db.query(LoadHuntMatch.hunt_plan_id).filter(LoadHuntMatch.load_email_id == row.id).all()
    }

    created: list[dict[str, Any]] = []
    for candidate in candidates:
        if candidate.hunt_plan_id in existing_plan_ids:
            continue
        distance = Decimal(str(round(candidate.distance_miles, 2)))
        db.add(
            LoadHuntMatch(
                load_email_id=row.id,
                hunt_plan_id=candidate.hunt_plan_id,
                vehicle_id=candidate.vehicle_id,
                distance_miles=distance,
                match_score=Decimal(candidate.match_score),
                is_active=candidate.is_active,
                match_status="active",
            )
        )
        existing_plan_ids.add(candidate.hunt_plan_id)
        created.append(
            {
                "hunt_plan_id": candidate.hunt_plan_id,
                "vehicle_id": candidate.vehicle_id,
                "distance_miles": float(distance),
                "match_score": candidate.match_score,
            }
        )
    return created


# ── Entry points ───────────────────────────────────────────────────────────────

def ingest_email(
    db: Session,
    *,
    email_id: str,
    subject: str,
    body_html: str | None = None,
    body_text: str | None = None,
    from_email: str | None = None,
    from_name: str | None = None,
    received_at: datetime | None = None,
    email_source: str = "sylectus",
    geocoder: Geocoder | None = None,
) -> dict[str, Any]:
    """Ingest one broker email.  Safe to call twice for the same ``email_id``.

    Returns a summary dict: status (accepted|rejected|duplicate), load_id,
    load_email_id, matches (newly created), issues.
    """
    existing = db.query(LoadEmail).filter(LoadEmail.email_id == email_id).first()
    if existing is not None:
        logger.info("ingest: duplicate email_id=%s load_id=%s", email_id, existing.load_id)
        return _existing_summary(db, existing)

    received_at = _as_utc(received_at or datetime.now(timezone.utc))
    body_html = _truncate(body_html)
    body_text = _truncate(body_text)
    subject = subject or ""

    result = extract_load(subject, body_html, body_text)

    row = LoadEmail(
        email_id=email_id,
        from_email=from_email,
        from_name=from_name,
        subject=subject,
        body_html=body_html,
        body_text=body_text,
        received_at=received_at,
        email_source=email_source,
    )

    # ── Rejected: keep the evidence, skip everything downstream ───────────────
    if result.rejected:
        row.status = "rejected"
        row.has_issues = True
        row.issue_notes = ISSUE_MISSING_BROKER_EMAIL
        row.parsed_data = result.partial.model_dump(mode="json")
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return _existing_summary(db, db.query(LoadEmail).filter(LoadEmail.email_id == email_id).one())
        logger.warning("ingest: rejected email_id=%s reason=%s", email_id, result.reason)
        return {
            "status": "rejected",
            "reason": result.reason,
            "load_id": None,
            "load_email_id": row.id,
            "matches": [],
            "issues": [ISSUE_MISSING_BROKER_EMAIL],
        }

    # ── Accepted ───────────────────────────────────────────────────────────────
    if geocoder is None:
        geocoder = default_geocoder()

    load = _enrich(
        db,
        result.load,  # type: ignore[arg-type]
        subject=subject,
        body_html=body_html,
        body_text=body_text,
        received_at=received_at,
        geocoder=geocoder,
        hints=None,
    )
    load_id = next_load_id(db, received_at)
    load = load.model_copy(update={"email_id": email_id, "load_id": load_id})

    origin_coords = geocode_location(
        load.origin_city,
        load.origin_state,
        cache=DatabaseGeocodeCache(db),
        geocoder=geocoder,
    )

    issues = _issues_for(load, origin_coords)
    fingerprint = compute_fingerprint(load)

    row.load_id = load_id
    row.status = "new"
    row.parsed_data = _parsed_data(load, origin_coords)
    row.expires_at = load.expires_at
    row.has_issues = bool(issues)
    row.issue_notes = "; ".join(issues) or None
    row.content_fingerprint = fingerprint["fingerprint"]
    row.dedup_eligible = fingerprint["dedup_eligible"]
    db.add(row)

    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info("ingest: concurrent insert for email_id=%s; returning stored row", email_id)
        return _existing_summary(db, db.query(LoadEmail).filter(LoadEmail.email_id == email_id).one())

    matches: list[dict[str, Any]] = []
    if settings.MATCHING_ENABLED and origin_coords is not None:
        matches = _persist_matches(db, row, load, origin_coords)

    db.commit()
    logger.info(
        "ingest: accepted email_id=%s load_id=%s matches=%s issues=%s",
        email_id, load_id, len(matches), issues or "-",
    )
    return {
        "status": "accepted",
        "load_id": load_id,
        "load_email_id": row.id,
        "matches": matches,
        "issues": issues,
        "fingerprint": fingerprint["fingerprint"],
        "dedup_eligible": fingerprint["dedup_eligible"],
    }


def reparse_load_email(
    db: Session,
    load_email: LoadEmail,
    hints: Iterable[Any] | None = None,
    geocoder: Geocoder | None = None,
) -> dict[str, Any]:
    """Re-run extraction on a stored email and overwrite its parsed data.

    Stored pickup coordinates are reused only while the origin is unchanged;
    a new or newly found origin is geocoded again.

    Matches are left alone.  The caller commits (or rolls back for a dry run).
    Returns {"load_email_id", "load_id", "status", "changed_fields"}.
    """
    previous: dict[str, Any] = dict(load_email.parsed_data or {})
    result = extract_load(load_email.subject or "", load_email.body_html, load_email.body_text)

    if result.rejected:
        new_data = result.partial.model_dump(mode="json")
        load_email.status = "rejected"
        load_email.has_issues = True
        load_email.issue_notes = ISSUE_MISSING_BROKER_EMAIL
    else:
        if geocoder is None:
            geocoder = default_geocoder()
        load = _enrich(
            db,
            result.load,  # type: ignore[arg-type]
            subject=load_email.subject or "",
            body_html=load_email.body_html,
            body_text=load_email.body_text,
            received_at=load_email.received_at,
            geocoder=geocoder,
            hints=hints,
        )
        if not load_email.load_id:
            load_email.load_id = next_load_id(db, load_email.received_at)
        load = load.model_copy(update={"email_id": load_email.email_id, "load_id": load_email.load_id})
        origin_coords = None
        previous_key = location_key(previous.get("origin_city"), previous.get("origin_state"))
        if previous_key is not None and previous_key == location_key(load.origin_city, load.origin_state):
            origin_coords = Coordinates.from_value(previous.get("pickup_coordinates"))
        if origin_coords is None:
            origin_coords = geocode_location(
                load.origin_city,
                load.origin_state,
                cache=DatabaseGeocodeCache(db),
                geocoder=geocoder,
            )
        issues = _issues_for(load, origin_coords)
        fingerprint = compute_fingerprint(load)

        new_data = _parsed_data(load, origin_coords)
        if load_email.status == "rejected":
            load_email.status = "new"
        load_email.expires_at = load.expires_at
        load_email.has_issues = bool(issues)
        load_email.issue_notes = "; ".join(issues) or None
        load_email.content_fingerprint = fingerprint["fingerprint"]
        load_email.dedup_eligible = fingerprint["dedup_eligible"]

    changed = sorted(
        key for key in set(previous) | set(new_data) if previous.get(key) != new_data.get(key)
    )
    load_email.parsed_data = new_data
    return {
        "load_email_id": load_email.id,
        "load_id": load_email.load_id,
        "status": load_email.status,
        "changed_fields": changed,
    }
