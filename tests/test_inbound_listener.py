from datetime import datetime, timezone
from email.message import EmailMessage

import pytest

import inbound_listener
from samples import SAMPLE_HTML, SAMPLE_SUBJECT


def _message(message_id="<abc123@sylectus.com>", date="Fri, 30 Jan 2026 07:00:00 -0500"):
    msg = EmailMessage()
    msg["From"] = "Sylectus Alerts <alerts@sylectus.com>"
    msg["Subject"] = SAMPLE_SUBJECT
    if message_id:
        msg["Message-ID"] = message_id
    if date:
        msg["Date"] = date
    msg.set_content("Posted Amount: $500")
    msg.add_alternative(SAMPLE_HTML, subtype="html")
    return msg


def test_bodies_split_by_content_type():
    body_html, body_text = inbound_listener._extract_bodies(_message())
    assert "notes-section" in body_html
    assert body_text == "Posted Amount: $500"


def test_message_id_strips_brackets():
    msg = _message()
    assert inbound_listener._message_id(msg, msg.as_bytes()) == "abc123@sylectus.com"


def test_message_id_falls_back_to_content_hash():
    msg = _message(message_id=None)
    raw = msg.as_bytes()
    first = inbound_listener._message_id(msg, raw)
    assert first.startswith("sha256:")
    assert first == inbound_listener._message_id(msg, raw)


def test_received_at_from_date_header():
    assert inbound_listener._received_at(_message()) == datetime(2026, 1, 30, 12, 0, tzinfo=timezone.utc)


class _FakeImap:
    def __init__(self, raw_messages):
        self.raw_messages = raw_messages
        self.seen = []

    def select(self, mailbox):
        return "OK", [b"1"]

    def search(self, charset, criteria):
        return "OK", [b" ".join(self.raw_messages)]

    def fetch(self, uid, parts):
        return "OK", [(b"1 (RFC822)", self.raw_messages[uid])]

    def store(self, uid, command, flags):
        self.seen.append(uid)


def test_poll_once_marks_only_ingested_messages_seen(monkeypatch):
    raw = _message().as_bytes()
    mail = _FakeImap({b"1": raw, b"2": raw})

    calls = []

    def _ingest(msg, raw_email):
        calls.append(msg["Subject"])
        if len(calls) == 2:
            raise RuntimeError("database unavailable")
        return True

    monkeypatch.setattr(inbound_listener, "_ingest_message", _ingest)

    assert inbound_listener.poll_once(mail) == 1
    assert mail.seen == [b"1"]


def test_listener_requires_imap_config(monkeypatch):
    monkeypatch.setattr(inbound_listener.settings, "INBOUND_IMAP_HOST", "")
    with pytest.raises(RuntimeError):
        inbound_listener.listen_for_loads()
