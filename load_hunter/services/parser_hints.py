import logging
import re
from typing import Any, Iterable

from pydantic import ValidationError
from sqlalchemy.orm import Session

from load_hunter.logic.sylectus import EXTRACTED_FIELDS, ParsedLoad
from load_hunter.models.lookups import ParserHint

logger = logging.getLogger(__name__)

# Identity fields are never filled from operator-written patterns.
PROTECTED_FIELDS = frozenset({"broker_email", "email_id", "load_id"})


def load_active_hints(db: Session, source: str = "sylectus") -> list[ParserHint]:
    return (
        db.query(ParserHint)
        .filter(ParserHint.source == source, ParserHint.is_active.is_(True))
        .order_by(ParserHint.priority.desc(), ParserHint.id.asc())
        .all()
    )


def _hint_value(pattern: str, raw_body: str) -> str | None:
    match = re.search(pattern, raw_body, re.IGNORECASE | re.MULTILINE)
    if not match:
        return None
    value = match.group(1) if match.groups() else match.group(0)
    value = (value or "").strip()
    return value or None


def apply_parser_hints(load: ParsedLoad, hints: Iterable[Any], raw_body: str) -> ParsedLoad:
    """Fill absent fields from active hints, highest priority first.

    Present values are never overwritten.  A hint whose regex does not
    compile, or whose captured value does not fit the field's type, is
    logged and skipped.
    """
    active = [hint for hint in hints if getattr(hint, "is_active", True)]
    if not active or not raw_body:
        return load

    active.sort(key=lambda hint: -(getattr(hint, "priority", 0) or 0))
    current = load.model_dump()
    filled: list[str] = []

    for hint in active:
        field_name = (getattr(hint, "field_name", "") or "").strip()
        if field_name in PROTECTED_FIELDS or field_name not in EXTRACTED_FIELDS:
            continue
        if current.get(field_name) is not None:
            continue

        try:
            value = _hint_value(hint.pattern, raw_body)
        except re.error as exc:
            logger.warning("parser_hints: invalid pattern hint=%s field=%s error=%s", getattr(hint, "id", None), field_name, exc)
            continue
        if value is None:
            continue

        candidate = {**current, field_name: value}
        try:
            ParsedLoad.model_validate(candidate)
        except ValidationError:
            logger.info("parser_hints: value %r does not fit field=%s; skipped", value, field_name)
            continue
        current = candidate
        filled.append(field_name)

    if not filled:
        return load
    logger.info("parser_hints: filled fields=%s", ",".join(filled))
    return ParsedLoad.model_validate(current)
