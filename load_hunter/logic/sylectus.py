"""Sylectus load-offer email extraction.

Turns one broker email (subject line plus HTML and/or plain-text body) into a
``ParsedLoad``.  Every field is produced by its own small extractor function;
a regex miss or an unexpected error in one extractor leaves that field as
``None`` and never stops the others.

Sources, in order of authority:

  1. Subject line: vehicle type, route, loaded miles, weight, order number,
     "Posted by" customer and the parenthesised broker email.
  2. Labelled body fields ("Broker Name:", "Posted Amount:", "Hazmat:", ...),
     read from a line view of the body so the HTML and plain-text variants
     go through the same code.
  3. Pick-Up / Delivery leginfo boxes: a header line followed by a location
     line and a date/time (or instruction) line.

The broker email is mandatory.  Without it the result is a rejection that
still carries the partial record for operator inspection.

Never read a "Rate:" field as the rate.  In this format the offered amount is
"Posted Amount:"; "Rate:" means something else.

``extract_load`` is pure: it does not look at the clock, the database or the
network, so re-running it on a stored email reproduces the same record.
"""

from __future__ import annotations

import html
import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from functools import cached_property
from typing import Annotated, Any, Callable

from pydantic import BaseModel, Field, PlainSerializer

logger = logging.getLogger(__name__)

MISSING_BROKER_EMAIL = "missing mandatory broker_email"


def _money_as_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class ParsedLoad(BaseModel):
    # Identity (assigned at ingestion, never by the extractor)
    email_id: str | None = None
    load_id: str | None = None

    # Route
    origin_city: str | None = None
    origin_state: str | None = None
    origin_zip: str | None = None
    destination_city: str | None = None
    destination_state: str | None = None
    destination_zip: str | None = None
    loaded_miles: int | None = None
    weight_lbs: int | None = None

    # Vehicle / load
    vehicle_type: str | None = None
    load_type: str | None = None

    # Timing
    pickup_date: str | None = None
    pickup_time: str | None = None
    delivery_date: str | None = None
    delivery_time: str | None = None
    posted_datetime: str | None = None
    posted_at: datetime | None = None
    expires_datetime: str | None = None
    expires_at: datetime | None = None

    # Commercial
    rate: Annotated[Decimal | None, PlainSerializer(_money_as_float, return_type=float | None, when_used="json")] = None
    order_number: str | None = None
    customer_name: str | None = None

    # Broker identity
    broker_name: str | None = None
    broker_company: str | None = None
    broker_phone: str | None = None
    broker_email: str | None = None

    # Physical attributes
    pieces: int | None = None
    dimensions: str | None = None
    dock_level: bool | None = None
    hazmat: bool | None = None
    stackable: bool | None = None
    has_multiple_stops: bool | None = None
    stop_count: int | None = None

    notes: str | None = None


class ExtractionResult(BaseModel):
    load: ParsedLoad | None = None
    partial: ParsedLoad
    missing_fields: list[str] = Field(default_factory=list)
    reason: str | None = None

    @property
    def rejected(self) -> bool:
        return self.load is None


# ── Line view of the body ──────────────────────────────────────────────────────

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_BLOCK_BREAK_RE = re.compile(
    r"<\s*(?:br\s*/?|/p|/div|/tr|/td|/th|/li|/h[1-6]|/table)\s*>",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]+>")
_LOOKS_LIKE_HTML_RE = re.compile(r"<\s*(?:html|body|div|p|table|br|strong|span)\b", re.IGNORECASE)
_INLINE_SPACE_RE = re.compile(r"[ \t\xa0\u200b]+")


def _text_lines(text: str) -> list[str]:
    lines: list[str] = []
    for raw_line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        line = _INLINE_SPACE_RE.sub(" ", raw_line).strip()
        if line:
            lines.append(line)
    return lines


def _clean_fragment(fragment: str) -> str:
    return _INLINE_SPACE_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", fragment))).strip()


def html_to_lines(raw_html: str) -> list[str]:
    """Reduce HTML to non-empty text lines; block-level closers become breaks."""
    text = _SCRIPT_STYLE_RE.sub(" ", raw_html or "")
    text = _BLOCK_BREAK_RE.sub("\n", text)
    text = _TAG_RE.sub(" ", text)
    return _text_lines(html.unescape(text))


def body_lines(body_html: str | None, body_text: str | None) -> list[str]:
    if body_html and body_html.strip():
        return html_to_lines(body_html)
    if body_text and _LOOKS_LIKE_HTML_RE.search(body_text):
        return html_to_lines(body_text)
    return _text_lines(body_text or "")


# ── Labels ─────────────────────────────────────────────────────────────────────

# "Rate" is listed so it terminates neighbouring values; its value is never used.
_KNOWN_LABELS = (
    "Broker Name",
    "Broker Company",
    "Broker Phone",
    "Broker Fax",
    "Posted Amount",
    "Rate",
    "Load Type",
    "Dock Level",
    "Hazmat",
    "Stackable",
    "Pieces",
    "Weight",
    "Dimensions",
    "Length",
    "Width",
    "Height",
    "Expires",
    "Posted",
    "Notes",
    "Email",
    "Team",
    "CSA",
)
_LABEL_RE = re.compile(
    r"(?<![A-Za-z])("
    + "|".join(
        r"\s+".join(re.escape(word) for word in label.split())
        for label in sorted(_KNOWN_LABELS, key=len, reverse=True)
    )
    + r")\s*:",
    re.IGNORECASE,
)


def _label_key(raw_label: str) -> str:
    return re.sub(r"\s+", " ", raw_label).strip().lower()


def _next_unlabeled_line(lines: list[str], index: int) -> str:
    if index + 1 >= len(lines):
        return ""
    candidate = lines[index + 1]
    if _LABEL_RE.match(candidate) or _leg_header(candidate):
        return ""
    return candidate


def _labeled_values(lines: list[str]) -> dict[str, str]:
    """First value seen for each known label.

    A value runs to the next known label on the same line; a label standing
    alone at the end of its line (table-cell layout) takes the next line.
    """
    values: dict[str, str] = {}
    for index, line in enumerate(lines):
        matches = list(_LABEL_RE.finditer(line))
        for position, match in enumerate(matches):
            key = _label_key(match.group(1))
            is_last = position + 1 == len(matches)
            end = len(line) if is_last else matches[position + 1].start()
            value = line[match.end():end].strip()
            if not value and is_last:
                value = _next_unlabeled_line(lines, index)
            if value and key not in values:
                values[key] = value
    return values


# ── Leginfo boxes ──────────────────────────────────────────────────────────────

_PICKUP_HEADER_RE = re.compile(r"^pick[\s-]?up\b\s*:?\s*(.*)$", re.IGNORECASE)
_DELIVERY_HEADER_RE = re.compile(r"^delivery\b\s*:?\s*(.*)$", re.IGNORECASE)


def _leg_header(line: str) -> bool:
    return bool(_PICKUP_HEADER_RE.match(line) or _DELIVERY_HEADER_RE.match(line))


def _leg_box(lines: list[str], header_re: re.Pattern[str]) -> list[str]:
    """Up to two lines following the first matching leg header."""
    for index, line in enumerate(lines):
        match = header_re.match(line)
        if not match:
            continue
        box: list[str] = []
        trailing = match.group(1).strip()
        if trailing:
            box.append(trailing)
        for following in lines[index + 1:]:
            if len(box) >= 2:
                break
            if _leg_header(following) or _LABEL_RE.match(following):
                break
            box.append(following)
        return box
    return []


# ── Shared patterns ────────────────────────────────────────────────────────────

_TZ_OFFSETS: dict[str, int] = {
    "EST": -5, "EDT": -4,
    "CST": -6, "CDT": -5,
    "MST": -7, "MDT": -6,
    "PST": -8, "PDT": -7,
}
_DEFAULT_TZ = "EST"

_DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b")
_DATE_TIME_RE = re.compile(
    r"(?P<date>\d{1,2}/\d{1,2}/\d{2,4})\s+(?P<time>\d{1,2}:\d{2})"
    r"(?:\s*(?P<ampm>AM|PM))?(?:\s*(?P<tz>EST|EDT|CST|CDT|MST|MDT|PST|PDT))?",
    re.IGNORECASE,
)
_INSTRUCTION_RE = re.compile(
    r"\b(ASAP|Deliver\s+Direct|Direct|Flexible|TBD|Open|Will\s+Call)\b",
    re.IGNORECASE,
)
_LOCATION_RE = re.compile(r"(?P<city>[A-Za-z][A-Za-z .'-]*?),\s*(?P<state>[A-Z]{2})(?:\s+(?P<zip>\d{5}))?\b")
_ZIP_RE = re.compile(r"\b([A-Z]{2})\s+(\d{5})\b")

_VEHICLE_TOKEN = (
    r"CARGO\s+VAN|SPRINTER|(?:SMALL|LARGE)\s+STRAIGHT|STRAIGHT(?:\s+TRUCK)?|BOX\s+TRUCK"
    r"|TRACTOR(?:\s+FLATBED)?|FLATBED|REEFER|LIFT\s*GATE|HOT\s*SHOT|\d+\s*'?\s*FOOT|VAN"
)
_SUBJECT_VEHICLE_RE = re.compile(
    r"^\s*(?:(?:FWD?|RE)\s*:\s*)*(?:W/?\s*)?(?P<vehicle>" + _VEHICLE_TOKEN + r")\b",
    re.IGNORECASE,
)
_BODY_VEHICLE_RE = re.compile(r"\b(?P<vehicle>" + _VEHICLE_TOKEN + r")\b", re.IGNORECASE)
_SUBJECT_ROUTE_RE = re.compile(
    r"\bfrom\s+(?P<origin_city>[^,]+?),\s*(?P<origin_state>[A-Za-z]{2})\s+"
    r"to\s+(?P<destination_city>[^,]+?),\s*(?P<destination_state>[A-Za-z]{2})\b",
    re.IGNORECASE,
)
_MILES_RE = re.compile(r"(?P<miles>\d[\d,]*)\s*(?:loaded\s+)?miles?\b", re.IGNORECASE)
_LBS_RE = re.compile(r"(?P<lbs>\d[\d,]*)\s*(?:lbs?|pounds?)\b", re.IGNORECASE)
_BID_ORDER_RE = re.compile(r"Bid\s+on\s+Order\s*#\s*(\d+)", re.IGNORECASE)
_ORDER_FALLBACK_RES = (
    re.compile(r"Order\s*#\s*(\d+)", re.IGNORECASE),
    re.compile(r"Order\s*Number\s*:?\s*(\d+)", re.IGNORECASE),
)
_POSTED_BY_RE = re.compile(r"Posted\s+by\s+(?P<customer>[^(]+?)\s*\(", re.IGNORECASE)
_BROKER_EMAIL_RE = re.compile(r"\(\s*([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})\s*\)")
_TWO_STOPS_RE = re.compile(r"\b2\s+stops?\b", re.IGNORECASE)
_DIMENSIONS_RE = re.compile(
    r"(?P<l>\d+(?:\.\d+)?)\s*L?\s*[x×*]\s*(?P<w>\d+(?:\.\d+)?)\s*W?\s*[x×*]\s*(?P<h>\d+(?:\.\d+)?)\s*H?",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_NOTES_SECTION_RE = re.compile(
    r"<div[^>]*class\s*=\s*['\"][^'\"]*\bnotes-section\b[^'\"]*['\"][^>]*>(.*?)</div>",
    re.IGNORECASE | re.DOTALL,
)
_PARAGRAPH_RE = re.compile(r"<p\b[^>]*>(.*?)</p>", re.IGNORECASE | re.DOTALL)

_TRUE_FLAGS = frozenset({"yes", "y", "true", "1", "required"})
_FALSE_FLAGS = frozenset({"no", "n", "false", "0", "none", "not required", "n/a"})


# ── Value coercion ─────────────────────────────────────────────────────────────

def _to_int(raw: str | None) -> int | None:
    if not raw:
        return None
    match = _NUMBER_RE.search(raw)
    if not match:
        return None
    try:
        return int(Decimal(match.group(0).replace(",", "")))
    except InvalidOperation:
        return None


def _to_money(raw: str | None) -> Decimal | None:
    if not raw:
        return None
    match = _NUMBER_RE.search(raw)
    if not match:
        return None
    try:
        return Decimal(match.group(0).replace(",", ""))
    except InvalidOperation:
        return None


def _to_flag(raw: str | None) -> bool | None:
    if raw is None:
        return None
    value = re.sub(r"\s+", " ", raw).strip().lower().rstrip(".")
    if value in _TRUE_FLAGS:
        return True
    if value in _FALSE_FLAGS:
        return False
    first_word = value.split(" ", 1)[0] if value else ""
    if first_word in _TRUE_FLAGS:
        return True
    if first_word in _FALSE_FLAGS:
        return False
    return None


def _normalise_vehicle(raw: str) -> str:
    vehicle = re.sub(r"\s+", " ", raw.upper()).strip()
    vehicle = re.sub(r"LIFT\s*GATE", "LIFTGATE", vehicle)
    return re.sub(r"HOT\s*SHOT", "HOT SHOT", vehicle)


def _format_dimension(raw: str) -> str:
    value = Decimal(raw)
    if value == value.to_integral_value():
        return str(int(value))
    return str(value.normalize())


def _local_to_utc(date_str: str, time_str: str, ampm: str | None, tz: str | None) -> datetime | None:
    """MM/DD/YY(YY) HH:MM [AM|PM] [TZ] → aware UTC datetime, or None."""
    try:
        month, day, year = (int(part) for part in date_str.split("/"))
        hour, minute = (int(part) for part in time_str.split(":"))
    except ValueError:
        return None
    if year < 100:
        year += 2000
    meridiem = (ampm or "").upper()
    if meridiem == "PM" and hour < 12:
        hour += 12
    if meridiem == "AM" and hour == 12:
        hour = 0
    offset = _TZ_OFFSETS.get((tz or _DEFAULT_TZ).upper(), _TZ_OFFSETS[_DEFAULT_TZ])
    try:
        local = datetime(year, month, day, hour, minute, tzinfo=timezone(timedelta(hours=offset)))
    except ValueError:
        return None
    return local.astimezone(timezone.utc)


def _join_time(match: re.Match[str]) -> str:
    parts = [match.group("time"), match.group("ampm"), match.group("tz")]
    return " ".join(part.upper() for part in parts if part)


def _collapse(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


# ── Email source (parsed once, shared by every extractor) ──────────────────────

class _EmailSource:
    def __init__(self, subject: str, body_html: str, body_text: str) -> None:
        self.subject = _collapse(subject)
        self.body_html = body_html
        self.body_text = body_text

    @cached_property
    def lines(self) -> list[str]:
        return body_lines(self.body_html, self.body_text)

    @cached_property
    def text(self) -> str:
        return "\n".join(self.lines)

    @cached_property
    def raw_html(self) -> str:
        if self.body_html and self.body_html.strip():
            return self.body_html
        if self.body_text and _LOOKS_LIKE_HTML_RE.search(self.body_text):
            return self.body_text
        return ""

    @cached_property
    def labels(self) -> dict[str, str]:
        return _labeled_values(self.lines)

    @cached_property
    def route(self) -> re.Match[str] | None:
        return _SUBJECT_ROUTE_RE.search(self.subject)

    @cached_property
    def pickup_box(self) -> list[str]:
        return _leg_box(self.lines, _PICKUP_HEADER_RE)

    @cached_property
    def delivery_box(self) -> list[str]:
        return _leg_box(self.lines, _DELIVERY_HEADER_RE)

    @cached_property
    def posted_by(self) -> tuple[str | None, str | None]:
        """(customer, broker_company) from the subject's "Posted by" segment."""
        match = _POSTED_BY_RE.search(self.subject)
        if not match:
            return None, None
        raw_customer = match.group("customer").strip()
        if raw_customer.startswith("-"):
            after_dash = raw_customer[1:].strip()
            return (after_dash or None), (after_dash or None)
        if " - " in raw_customer:
            first, _, second = raw_customer.partition(" - ")
            first, second = first.strip(), second.strip()
            return (first or second or None), (second or first or None)
        return (raw_customer or None), (raw_customer or None)

    def label(self, name: str) -> str | None:
        return self.labels.get(name)


def _box_location(box: list[str]) -> re.Match[str] | None:
    for line in box:
        match = _LOCATION_RE.search(line)
        if match:
            return match
    return None


def _box_zip(box: list[str]) -> str | None:
    for line in box:
        match = _ZIP_RE.search(line)
        if match:
            return match.group(2)
    return None


def _box_timing(box: list[str]) -> tuple[str | None, str | None]:
    """(date, time) from the second box line, falling back to the first.

    The time slot carries a free-text instruction ("ASAP") when the box has
    no clock time.
    """
    for line in box[1:] + box[:1]:
        match = _DATE_TIME_RE.search(line)
        if match:
            return match.group("date"), _join_time(match)
        date_match = _DATE_RE.search(line)
        if date_match:
            instruction = _INSTRUCTION_RE.search(line[date_match.end():])
            return date_match.group(0), (_collapse(instruction.group(1)) if instruction else None)
        instruction = _INSTRUCTION_RE.search(line)
        if instruction and not _LOCATION_RE.search(line):
            return None, _collapse(instruction.group(1))
    return None, None


# ── Field extractors ───────────────────────────────────────────────────────────

def _broker_email(src: _EmailSource) -> str | None:
    match = _BROKER_EMAIL_RE.search(src.subject)
    return match.group(1).strip() if match else None


def _vehicle_type(src: _EmailSource) -> str | None:
    match = _SUBJECT_VEHICLE_RE.search(src.subject)
    if match:
        return _normalise_vehicle(match.group("vehicle"))
    match = _BODY_VEHICLE_RE.search(src.text)
    return _normalise_vehicle(match.group("vehicle")) if match else None


def _origin_city(src: _EmailSource) -> str | None:
    if src.route:
        return src.route.group("origin_city").strip()
    location = _box_location(src.pickup_box)
    return location.group("city").strip() if location else None


def _origin_state(src: _EmailSource) -> str | None:
    if src.route:
        return src.route.group("origin_state").upper()
    location = _box_location(src.pickup_box)
    return location.group("state") if location else None


def _origin_zip(src: _EmailSource) -> str | None:
    return _box_zip(src.pickup_box)


def _destination_city(src: _EmailSource) -> str | None:
    if src.route:
        return src.route.group("destination_city").strip()
    location = _box_location(src.delivery_box)
    return location.group("city").strip() if location else None


def _destination_state(src: _EmailSource) -> str | None:
    if src.route:
        return src.route.group("destination_state").upper()
    location = _box_location(src.delivery_box)
    return location.group("state") if location else None


def _destination_zip(src: _EmailSource) -> str | None:
    return _box_zip(src.delivery_box)


def _loaded_miles(src: _EmailSource) -> int | None:
    match = _MILES_RE.search(src.subject)
    return _to_int(match.group("miles")) if match else None


def _weight_lbs(src: _EmailSource) -> int | None:
    match = _LBS_RE.search(src.subject)
    if match:
        return _to_int(match.group("lbs"))
    return _to_int(src.label("weight"))


def _order_number(src: _EmailSource) -> str | None:
    for haystack in (src.subject, src.text):
        match = _BID_ORDER_RE.search(haystack)
        if match:
            return match.group(1)
    for pattern in _ORDER_FALLBACK_RES:
        match = pattern.search(src.text)
        if match:
            return match.group(1)
    return None


def _customer_name(src: _EmailSource) -> str | None:
    customer, _ = src.posted_by
    return customer or src.label("broker company")


def _broker_company(src: _EmailSource) -> str | None:
    _, company = src.posted_by
    return src.label("broker company") or company


def _broker_name(src: _EmailSource) -> str | None:
    return src.label("broker name")


def _broker_phone(src: _EmailSource) -> str | None:
    return src.label("broker phone")


def _rate(src: _EmailSource) -> Decimal | None:
    amount = _to_money(src.label("posted amount"))
    if amount is None or amount <= 0:
        return None
    return amount


def _load_type(src: _EmailSource) -> str | None:
    return src.label("load type")


def _pickup_date(src: _EmailSource) -> str | None:
    return _box_timing(src.pickup_box)[0]


def _pickup_time(src: _EmailSource) -> str | None:
    return _box_timing(src.pickup_box)[1]


def _delivery_date(src: _EmailSource) -> str | None:
    return _box_timing(src.delivery_box)[0]


def _delivery_time(src: _EmailSource) -> str | None:
    return _box_timing(src.delivery_box)[1]


def _stamp(src: _EmailSource, label: str) -> re.Match[str] | None:
    raw = src.label(label)
    return _DATE_TIME_RE.search(raw) if raw else None


def _posted_datetime(src: _EmailSource) -> str | None:
    match = _stamp(src, "posted")
    return _collapse(match.group(0)) if match else None


def _posted_at(src: _EmailSource) -> datetime | None:
    match = _stamp(src, "posted")
    if not match:
        return None
    return _local_to_utc(match.group("date"), match.group("time"), match.group("ampm"), match.group("tz"))


def _expires_datetime(src: _EmailSource) -> str | None:
    match = _stamp(src, "expires")
    return _collapse(match.group(0)) if match else None


def _expires_at(src: _EmailSource) -> datetime | None:
    match = _stamp(src, "expires")
    if not match:
        return None
    return _local_to_utc(match.group("date"), match.group("time"), match.group("ampm"), match.group("tz"))


def _pieces(src: _EmailSource) -> int | None:
    return _to_int(src.label("pieces"))


def _dimensions(src: _EmailSource) -> str | None:
    raw = src.label("dimensions")
    parts: tuple[str, str, str] | None = None
    if raw:
        match = _DIMENSIONS_RE.search(raw)
        if match:
            parts = (match.group("l"), match.group("w"), match.group("h"))
    if parts is None:
        tokens = [src.label(name) for name in ("length", "width", "height")]
        numbers = [_NUMBER_RE.search(token or "") for token in tokens]
        if all(numbers):
            parts = tuple(number.group(0).replace(",", "") for number in numbers)  # type: ignore[union-attr]
    if parts is None:
        return None
    if all(Decimal(part) == 0 for part in parts):
        return None
    return "x".join(_format_dimension(part) for part in parts)


def _dock_level(src: _EmailSource) -> bool | None:
    return _to_flag(src.label("dock level"))


def _hazmat(src: _EmailSource) -> bool | None:
    return _to_flag(src.label("hazmat"))


def _stackable(src: _EmailSource) -> bool | None:
    return _to_flag(src.label("stackable"))


def _has_multiple_stops(src: _EmailSource) -> bool:
    return bool(_TWO_STOPS_RE.search(src.subject) or _TWO_STOPS_RE.search(src.text))


def _stop_count(src: _EmailSource) -> int | None:
    # Only the "2 stops" marker exists in this format.
    return 2 if _has_multiple_stops(src) else None


def _notes(src: _EmailSource) -> str | None:
    section = _NOTES_SECTION_RE.search(src.raw_html) if src.raw_html else None
    if section:
        fragments = [_clean_fragment(fragment) for fragment in _PARAGRAPH_RE.findall(section.group(1))]
        if not fragments:
            fragments = [_clean_fragment(section.group(1))]
        joined = ", ".join(fragment for fragment in fragments if fragment)
        if joined:
            return joined
    return src.label("notes")


_FIELD_EXTRACTORS: tuple[tuple[str, Callable[[_EmailSource], Any]], ...] = (
    ("broker_email", _broker_email),
    ("vehicle_type", _vehicle_type),
    ("origin_city", _origin_city),
    ("origin_state", _origin_state),
    ("origin_zip", _origin_zip),
    ("destination_city", _destination_city),
    ("destination_state", _destination_state),
    ("destination_zip", _destination_zip),
    ("loaded_miles", _loaded_miles),
    ("weight_lbs", _weight_lbs),
    ("order_number", _order_number),
    ("customer_name", _customer_name),
    ("broker_name", _broker_name),
    ("broker_company", _broker_company),
    ("broker_phone", _broker_phone),
    ("rate", _rate),
    ("load_type", _load_type),
    ("pickup_date", _pickup_date),
    ("pickup_time", _pickup_time),
    ("delivery_date", _delivery_date),
    ("delivery_time", _delivery_time),
    ("posted_datetime", _posted_datetime),
    ("posted_at", _posted_at),
    ("expires_datetime", _expires_datetime),
    ("expires_at", _expires_at),
    ("pieces", _pieces),
    ("dimensions", _dimensions),
    ("dock_level", _dock_level),
    ("hazmat", _hazmat),
    ("stackable", _stackable),
    ("has_multiple_stops", _has_multiple_stops),
    ("stop_count", _stop_count),
    ("notes", _notes),
)

EXTRACTED_FIELDS: tuple[str, ...] = tuple(name for name, _ in _FIELD_EXTRACTORS)


def extract_load(
    subject: str,
    body_html: str | None = None,
    body_text: str | None = None,
) -> ExtractionResult:
    """Parse one Sylectus email into a ``ParsedLoad`` or a rejection."""
    source = _EmailSource(subject or "", body_html or "", body_text or "")

    values: dict[str, Any] = {}
    for field_name, extractor in _FIELD_EXTRACTORS:
        try:
            value = extractor(source)
        except Exception:
            logger.exception("sylectus: extractor failed field=%s; left unknown", field_name)
            continue
        if value is not None and value != "":
            values[field_name] = value

    partial = ParsedLoad(**values)
    if not partial.broker_email:
        logger.info("sylectus: rejected, no broker email in subject=%r", source.subject[:120])
        return ExtractionResult(
            partial=partial,
            missing_fields=["broker_email"],
            reason=MISSING_BROKER_EMAIL,
        )
    return ExtractionResult(load=partial, partial=partial)
