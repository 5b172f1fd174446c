import email
import hashlib
import imaplib
import logging
import time
from datetime import datetime, timezone
from email.header import decode_header, make_header
from email.message import Message as EmailMessage
from email.utils import parseaddr, parsedate_to_datetime

from load_hunter.core.config import configure_logging, settings
from load_hunter.database import SessionLocal
from load_hunter.services.ingest import ingest_email


logger = logging.getLogger(__name__)


def _decode_mime_header(value: str | None) -> str:
    if not value:
        return ""
    try:
        return str(make_header(decode_header(value)))
    except Exception:
        return value


def _extract_bodies(msg: EmailMessage) -> tuple[str | None, str | None]:
    """(html, text) bodies; attachments are ignored."""
    html_parts: list[str] = []
    text_parts: list[str] = []

    parts = msg.walk() if msg.is_multipart() else [msg]
    for part in parts:
        if part.get_content_maintype() == "multipart":
            continue
        if (part.get("Content-Disposition") or "").lower().startswith("attachment"):
            continue

        payload = part.get_payload(decode=True)
        if payload is None:
            continue

        charset = part.get_content_charset() or "utf-8"
        try:
            decoded = payload.decode(charset, errors="replace").strip()
        except LookupError:
            decoded = payload.decode("utf-8", errors="replace").strip()
        if not decoded:
            continue

        content_type = (part.get_content_type() or "").lower()
        if content_type == "text/html":
            html_parts.append(decoded)
        elif content_type == "text/plain":
            text_parts.append(decoded)

    body_html = "\n".join(html_parts) or None
    body_text = "\n\n".join(text_parts) or None
    return body_html, body_text


def _message_id(msg: EmailMessage, raw_email: bytes) -> str:
    message_id = (msg.get("Message-ID") or "").strip().strip("<>")
    if message_id:
        return message_id
    # No Message-ID: fall back to a content hash so re-delivery is still idempotent.
    return "sha256:" + hashlib.sha256(raw_email).hexdigest()


def _received_at(msg: EmailMessage) -> datetime:
    raw_date = msg.get("Date")
    if raw_date:
        try:
            parsed = parsedate_to_datetime(raw_date)
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
    return datetime.now(timezone.utc)


def _ingest_message(msg: EmailMessage, raw_email: bytes) -> bool:
    """Returns True when the message was handled and can be marked seen."""
    from_name, from_email = parseaddr(_decode_mime_header(msg.get("From")))
    subject = _decode_mime_header(msg.get("Subject"))
    body_html, body_text = _extract_bodies(msg)
    email_id = _message_id(msg, raw_email)

    with SessionLocal() as db:
        summary = ingest_email(
            db,
            email_id=email_id,
            subject=subject,
            body_html=body_html,
            body_text=body_text,
            from_email=from_email or None,
            from_name=from_name or None,
            received_at=_received_at(msg),
        )

    logger.info(
        "Inbound load email: email_id=%s status=%s load_id=%s matches=%s",
        email_id,
        summary["status"],
        summary.get("load_id"),
        len(summary.get("matches") or []),
    )
    return True


def _mark_seen(mail: imaplib.IMAP4_SSL, uid: bytes) -> None:
    mail.store(uid, "+FLAGS", "\\Seen")


def _connect_imap() -> imaplib.IMAP4_SSL:
    imap_host = settings.INBOUND_IMAP_HOST
    imap_user = settings.INBOUND_IMAP_USER
    imap_password = settings.INBOUND_IMAP_PASSWORD

    if not all([imap_host, imap_user, imap_password]):
        raise RuntimeError("Missing IMAP config. Set INBOUND_IMAP_HOST/USER/PASSWORD.")

    mail = imaplib.IMAP4_SSL(imap_host, settings.INBOUND_IMAP_PORT)
    mail.login(imap_user, imap_password)
    return mail


def _logout(mail: imaplib.IMAP4_SSL) -> None:
    try:
        mail.logout()
    except (imaplib.IMAP4.error, OSError) as exc:
        logger.debug("IMAP logout failed: %s", exc)


def poll_once(mail: imaplib.IMAP4_SSL) -> int:
    """Ingest every UNSEEN message in the mailbox; returns how many were handled."""
    mail.select(settings.INBOUND_IMAP_MAILBOX)
    status, data = mail.search(None, "UNSEEN")
    if status != "OK":
        raise RuntimeError(f"IMAP search failed: {status}")

    handled = 0
    message_uids = data[0].split() if data and data[0] else []
    for uid in message_uids:
        fetch_status, msg_data = mail.fetch(uid, "(RFC822)")
        if fetch_status != "OK" or not msg_data or not msg_data[0]:
            logger.warning("Failed to fetch IMAP message uid=%s", uid)
            continue

        raw_email = msg_data[0][1]
        if not raw_email:
            continue

        inbound_message = email.message_from_bytes(raw_email)
        try:
            should_mark_seen = _ingest_message(inbound_message, raw_email)
        except Exception:
            # Left UNSEEN so the next cycle retries it.
            logger.exception("Inbound ingest failed for uid=%s", uid)
            continue
        if should_mark_seen:
            _mark_seen(mail, uid)
            handled += 1
    return handled


def listen_for_loads() -> None:
    if not all([settings.INBOUND_IMAP_HOST, settings.INBOUND_IMAP_USER, settings.INBOUND_IMAP_PASSWORD]):
        raise RuntimeError("Missing IMAP config. Set INBOUND_IMAP_HOST/USER/PASSWORD.")

    mail: imaplib.IMAP4_SSL | None = None
    logger.info("Load hunter listener started; polling %s", settings.INBOUND_IMAP_MAILBOX)

    try:
        while True:
            try:
                if mail is None:
                    mail = _connect_imap()
                    logger.info("Inbound listener connected to IMAP server.")

                poll_once(mail)
                time.sleep(settings.INBOUND_POLL_SECONDS)
            except (imaplib.IMAP4.abort, OSError, TimeoutError) as exc:
                logger.warning("IMAP connection lost: %s", exc)
                if mail is not None:
                    _logout(mail)
                mail = None
                time.sleep(settings.INBOUND_RECONNECT_SECONDS)
            except Exception:
                logger.exception("Inbound listener cycle failed.")
                time.sleep(settings.INBOUND_RECONNECT_SECONDS)
    except KeyboardInterrupt:
        logger.warning("Load hunter listener shutting down.")
        if mail is not None:
            _logout(mail)


if __name__ == "__main__":
    configure_logging()
    listen_for_loads()
