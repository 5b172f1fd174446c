from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from load_hunter.database import get_db
from load_hunter.dependencies.api_key import require_api_key
from load_hunter.models.hunt import HuntPlan, LoadHuntMatch
from load_hunter.models.load_email import LoadEmail

router = APIRouter(prefix="/api/load-hunter", tags=["load-hunter"])


def _iso(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


def _match_row(match: LoadHuntMatch, load_email: LoadEmail, plan: HuntPlan | None) -> dict[str, Any]:
    return {
        "id": match.id,
        "load_email_id": match.load_email_id,
        "load_id": load_email.load_id,
        "hunt_plan_id": match.hunt_plan_id,
        "plan_name": plan.plan_name if plan else None,
        "vehicle_id": match.vehicle_id,
        "distance_miles": float(match.distance_miles) if match.distance_miles is not None else None,
        "match_score": float(match.match_score) if match.match_score is not None else None,
        "is_active": match.is_active,
        "match_status": match.match_status,
        "matched_at": _iso(match.matched_at),
    }


@router.get("/matches")
def list_matches(
    active_only: bool = Query(default=True),
    hunt_plan_id: int | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    _: None = Depends(require_api_key),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    query = (
        db.query(LoadHuntMatch, LoadEmail, HuntPlan)
        .join(LoadEmail, LoadEmail.id == LoadHuntMatch.load_email_id)
        .outerjoin(HuntPlan, HuntPlan.id == LoadHuntMatch.hunt_plan_id)
    )
    if active_only:
        query = query.filter(LoadHuntMatch.is_active.is_(True))
    if hunt_plan_id is not None:
        query = query.filter(LoadHuntMatch.hunt_plan_id == hunt_plan_id)

    rows = query.order_by(LoadHuntMatch.matched_at.desc(), LoadHuntMatch.id.desc()).limit(limit).all()
    return {
        "count": len(rows),
        "matches": [_match_row(match, load_email, plan) for match, load_email, plan in rows],
    }


@router.get("/loads/{load_id}")
def get_load(
    load_id: str,
    _: None = Depends(require_api_key),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    load_email = db.query(LoadEmail).filter(LoadEmail.load_id == load_id).first()
    if not load_email:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="load_not_found")

    rows = (
        db.query(LoadHuntMatch, HuntPlan)
        .outerjoin(HuntPlan, HuntPlan.id == LoadHuntMatch.hunt_plan_id)
        .filter(LoadHuntMatch.load_email_id == load_email.id)
        .order_by(LoadHuntMatch.id.asc())
        .all()
    )
    return {
        "load_id": load_email.load_id,
        "load_email_id": load_email.id,
        "email_id": load_email.email_id,
        "subject": load_email.subject,
        "status": load_email.status,
        "received_at": _iso(load_email.received_at),
        "expires_at": _iso(load_email.expires_at),
        "has_issues": load_email.has_issues,
        "issue_notes": load_email.issue_notes,
        "dedup_eligible": load_email.dedup_eligible,
        "content_fingerprint": load_email.content_fingerprint,
        "parsed_data": load_email.parsed_data,
        "matches": [_match_row(match, load_email, plan) for match, plan in rows],
    }
