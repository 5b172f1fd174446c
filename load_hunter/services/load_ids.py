from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.orm import Session

LOAD_ID_PREFIX = "LH"

_ENSURE_COUNTERS_SQL = text(
    """
    CREATE TABLE IF NOT EXISTS load_id_counters (
        day_key VARCHAR(6) PRIMARY KEY,
        last_seq INTEGER NOT NULL DEFAULT 0
    )
    """
)

# Single statement so two concurrent ingests can never read the same value.
_NEXT_SEQ_SQL = text(
    """
    INSERT INTO load_id_counters (day_key, last_seq)
    VALUES (:day_key, 1)
    ON CONFLICT (day_key)
    DO UPDATE SET last_seq = load_id_counters.last_seq + 1
    RETURNING last_seq
    """
)


def ensure_load_id_counters(db: Session) -> None:
    db.execute(_ENSURE_COUNTERS_SQL)


def day_key(received_at: datetime) -> str:
    if received_at.tzinfo is not None:
        received_at = received_at.astimezone(timezone.utc)
    return received_at.strftime("%y%m%d")


def format_load_id(key: str, seq: int) -> str:
    return f"{LOAD_ID_PREFIX}-{key}-{seq:03d}"


def next_load_id(db: Session, received_at: datetime) -> str:
    """Allocate the next ``LH-YYMMDD-###`` id for the day the email arrived."""
    key = day_key(received_at)
    seq = db.execute(_NEXT_SEQ_SQL, {"day_key": key}).scalar_one()
    return format_load_id(key, int(seq))
