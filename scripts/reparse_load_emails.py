#!/usr/bin/env python3
"""
Re-run Sylectus extraction over stored load emails.

Use after a parser fix or after adding parser hints: parsed_data, issue flags
and fingerprints are rewritten in place.  Hunt matches are not touched.

Safe to run repeatedly; a second run reports no changed fields.

Usage:
    python3 scripts/reparse_load_emails.py --since 2026-01-30 --dry-run
    python3 scripts/reparse_load_emails.py --load-id LH-260130-004
    python3 scripts/reparse_load_emails.py --limit 500
"""
import argparse
import logging
import sys
from datetime import datetime, timezone

from load_hunter.core.config import configure_logging
from load_hunter.database import SessionLocal
from load_hunter.models.load_email import LoadEmail
from load_hunter.services.ingest import reparse_load_email
from load_hunter.services.parser_hints import load_active_hints

logger = logging.getLogger(__name__)


def _parse_since(raw: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"--since must be an ISO date, got {raw!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Re-parse stored Sylectus load emails.")
    parser.add_argument("--since", type=_parse_since, help="only emails received on/after this ISO date")
    parser.add_argument("--limit", type=int, default=None, help="stop after this many emails")
    parser.add_argument("--load-id", dest="load_id", help="re-parse a single load (LH-YYMMDD-###)")
    parser.add_argument("--dry-run", action="store_true", help="report changes without saving them")
    return parser


def select_emails(db, since: datetime | None, limit: int | None, load_id: str | None) -> list[LoadEmail]:
    query = db.query(LoadEmail)
    if load_id:
        query = query.filter(LoadEmail.load_id == load_id)
    if since is not None:
        query = query.filter(LoadEmail.received_at >= since)
    query = query.order_by(LoadEmail.received_at.asc(), LoadEmail.id.asc())
    if limit:
        query = query.limit(limit)
    return query.all()


def run(db, since: datetime | None = None, limit: int | None = None, load_id: str | None = None, dry_run: bool = False) -> dict:
    hints = load_active_hints(db)
    emails = select_emails(db, since, limit, load_id)

    changed = 0
    for load_email in emails:
        outcome = reparse_load_email(db, load_email, hints=hints)
        if outcome["changed_fields"]:
            changed += 1
            print(
                f"{outcome['load_id'] or load_email.email_id}: "
                f"{outcome['status']} changed={','.join(outcome['changed_fields'])}"
            )

    if dry_run:
        db.rollback()
    else:
        db.commit()

    return {"scanned": len(emails), "changed": changed, "dry_run": dry_run}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    with SessionLocal() as db:
        summary = run(db, since=args.since, limit=args.limit, load_id=args.load_id, dry_run=args.dry_run)

    mode = "DRY RUN" if summary["dry_run"] else "APPLIED"
    print("-" * 45)
    print(f"{mode}: scanned={summary['scanned']} changed={summary['changed']}")
    if args.load_id and summary["scanned"] == 0:
        logger.warning("No load email found for load_id=%s", args.load_id)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
