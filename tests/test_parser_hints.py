"""Tests for load_hunter/services/parser_hints.py

Run with:  pytest tests/test_parser_hints.py -v
"""

from decimal import Decimal
from types import SimpleNamespace

from load_hunter.logic.sylectus import ParsedLoad
from load_hunter.models.lookups import ParserHint
from load_hunter.services.parser_hints import apply_parser_hints, load_active_hints

BODY = "Shipper Ref: PO-7781\nRate Confirmation Amount: 650\nWeight Est: heavy\nReply to: other@broker.com"


def _hint(field_name, pattern, priority=0, is_active=True, hint_id=1):
    return SimpleNamespace(id=hint_id, field_name=field_name, pattern=pattern, priority=priority, is_active=is_active)


class TestApplyParserHints:
    def test_fills_absent_field(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        updated = apply_parser_hints(load, [_hint("order_number", r"Shipper Ref:\s*(\S+)")], BODY)
        assert updated.order_number == "PO-7781"

    def test_whole_match_when_no_group(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        updated = apply_parser_hints(load, [_hint("order_number", r"PO-\d+")], BODY)
        assert updated.order_number == "PO-7781"

    def test_never_overwrites(self):
        load = ParsedLoad(broker_email="broker@acme.com", rate=Decimal("500"))
        updated = apply_parser_hints(load, [_hint("rate", r"Amount:\s*(\d+)")], BODY)
        assert updated.rate == Decimal("500")

    def test_value_coerced_to_field_type(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        updated = apply_parser_hints(load, [_hint("rate", r"Amount:\s*(\d+)")], BODY)
        assert updated.rate == Decimal("650")

    def test_type_mismatch_skipped(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        updated = apply_parser_hints(load, [_hint("weight_lbs", r"Weight Est:\s*(\w+)")], BODY)
        assert updated.weight_lbs is None

    def test_protected_fields_untouched(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        hints = [
            _hint("broker_email", r"Reply to:\s*(\S+)"),
            _hint("load_id", r"(PO-\d+)"),
        ]
        updated = apply_parser_hints(load, hints, BODY)
        assert updated.broker_email == "broker@acme.com"
        assert updated.load_id is None

    def test_invalid_regex_skipped(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        hints = [_hint("order_number", r"Shipper Ref:\s*(", hint_id=1), _hint("notes", r"Weight Est:\s*(\w+)", hint_id=2)]
        updated = apply_parser_hints(load, hints, BODY)
        assert updated.order_number is None
        assert updated.notes == "heavy"

    def test_highest_priority_wins(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        hints = [
            _hint("order_number", r"(PO-\d+)", priority=1),
            _hint("order_number", r"Amount:\s*(\d+)", priority=10),
        ]
        assert apply_parser_hints(load, hints, BODY).order_number == "650"

    def test_inactive_and_unknown_fields_ignored(self):
        load = ParsedLoad(broker_email="broker@acme.com")
        hints = [_hint("order_number", r"(PO-\d+)", is_active=False), _hint("not_a_field", r"(PO-\d+)")]
        assert apply_parser_hints(load, hints, BODY) == load


def test_load_active_hints_orders_by_priority(db_session):
    db_session.add_all(
        [
            ParserHint(field_name="notes", pattern="a", priority=1),
            ParserHint(field_name="notes", pattern="b", priority=5),
            ParserHint(field_name="notes", pattern="c", priority=9, is_active=False),
            ParserHint(field_name="notes", pattern="d", priority=3, source="other"),
        ]
    )
    db_session.commit()

    assert [hint.pattern for hint in load_active_hints(db_session)] == ["b", "a"]
