import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from load_hunter.database import get_db
from load_hunter.dependencies.api_key import require_api_key
from load_hunter.logic.sylectus import extract_load
from load_hunter.services.ingest import ingest_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ingest", tags=["ingest"])


class EmailIn(BaseModel):
    email_id: str
    subject: str
    body_html: str | None = None
    body_text: str | None = None
    from_email: str | None = None
    from_name: str | None = None
    received_at: datetime | None = None
    email_source: str = "sylectus"


class ExtractIn(BaseModel):
    subject: str
    body_html: str | None = None
    body_text: str | None = None


# ── Email ingest ───────────────────────────────────────────────────────────────

@router.post("/email")
def ingest_email_endpoint(
    data: EmailIn = Body(...),
    _: None = Depends(require_api_key),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    summary = ingest_email(
        db,
        email_id=data.email_id,
        subject=data.subject,
        body_html=data.body_html,
        body_text=data.body_text,
        from_email=data.from_email,
        from_name=data.from_name,
        received_at=data.received_at,
        email_source=data.email_source,
    )
    logger.info("ingest_api: email_id=%s status=%s", data.email_id, summary["status"])
    return summary


# ── Dry-run extraction ─────────────────────────────────────────────────────────

@router.post("/extract")
def extract_endpoint(
    data: ExtractIn = Body(...),
    _: None = Depends(require_api_key),
) -> dict[str, Any]:
    result = extract_load(data.subject, data.body_html, data.body_text)
    return {
        "rejected": result.rejected,
        "reason": result.reason,
        "missing_fields": result.missing_fields,
        "load": result.load.model_dump(mode="json") if result.load else None,
        "partial": result.partial.model_dump(mode="json"),
    }
