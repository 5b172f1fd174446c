"""Tests for load_hunter/services/ingest.py

Run with:  pytest tests/test_ingest_pipeline.py -v
"""

from datetime import datetime, timezone

import pytest

from load_hunter.core.config import settings
from load_hunter.logic.geo import Coordinates
from load_hunter.models.hunt import HuntPlan, LoadHuntMatch
from load_hunter.models.load_email import LoadEmail
from load_hunter.models.lookups import ParserHint, VehicleTypeMapping
from load_hunter.services.ingest import (
    ISSUE_GEOCODE_FAILED,
    ISSUE_MISSING_BROKER_EMAIL,
    ingest_email,
    reparse_load_email,
)
from samples import COLUMBUS, SAMPLE_HTML, SAMPLE_SUBJECT

RECEIVED = datetime(2026, 1, 30, 12, 0, tzinfo=timezone.utc)


class _FixedGeocoder:
    def __init__(self, coords=Coordinates(COLUMBUS["lat"], COLUMBUS["lng"]), zip_result=None):
        self.coords = coords
        self.zip_result = zip_result
        self.calls = 0

    def geocode(self, city, state):
        self.calls += 1
        return self.coords

    def lookup_city_from_zip(self, zip_code, state=None):
        return self.zip_result


@pytest.fixture()
def plans(db_session):
    plan_a = HuntPlan(vehicle_id="TRK-A", plan_name="Columbus vans", vehicle_size="VAN", hunt_coordinates=COLUMBUS, pickup_radius=75)
    plan_b = HuntPlan(vehicle_id="TRK-B", plan_name="Up north", vehicle_size="VAN", hunt_coordinates={"lat": 47.2, "lng": -82.9988}, pickup_radius=200)
    db_session.add_all([plan_a, plan_b])
    db_session.commit()
    return plan_a, plan_b


def _ingest(db, email_id="msg-1", subject=SAMPLE_SUBJECT, body_html=SAMPLE_HTML, geocoder=None, **kwargs):
    return ingest_email(
        db,
        email_id=email_id,
        subject=subject,
        body_html=body_html,
        received_at=RECEIVED,
        geocoder=geocoder or _FixedGeocoder(),
        **kwargs,
    )


class TestAccepted:
    def test_example_email_matches_only_nearby_plan(self, db_session, plans):
        plan_a, _ = plans
        summary = _ingest(db_session)

        assert summary["status"] == "accepted"
        assert summary["load_id"] == "LH-260130-001"
        assert [m["hunt_plan_id"] for m in summary["matches"]] == [plan_a.id]
        assert summary["issues"] == []

        row = db_session.query(LoadEmail).filter_by(email_id="msg-1").one()
        assert row.status == "new"
        assert row.parsed_data["broker_email"] == "broker@acme.com"
        assert row.parsed_data["rate"] == 500.0
        assert row.parsed_data["pickup_coordinates"] == COLUMBUS
        assert row.content_fingerprint and len(row.content_fingerprint) == 64
        assert row.dedup_eligible is True

        match = db_session.query(LoadHuntMatch).one()
        assert match.vehicle_id == "TRK-A"
        assert float(match.match_score) == 1
        assert match.is_active is True

    def test_reingest_is_idempotent(self, db_session, plans):
        _ingest(db_session)
        again = _ingest(db_session)

        assert again["status"] == "duplicate"
        assert again["load_id"] == "LH-260130-001"
        assert again["existing_matches"] == 1
        assert db_session.query(LoadEmail).count() == 1
        assert db_session.query(LoadHuntMatch).count() == 1

    def test_load_ids_are_sequential(self, db_session):
        first = _ingest(db_session, email_id="msg-1")
        second = _ingest(db_session, email_id="msg-2")
        assert (first["load_id"], second["load_id"]) == ("LH-260130-001", "LH-260130-002")

    def test_expiry_defaults_from_receipt(self, db_session):
        summary = _ingest(db_session, body_html="<p>Posted Amount: $500</p>")
        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.expires_at.replace(tzinfo=None) == datetime(2026, 1, 30, 12, 30)

    def test_explicit_expiry_kept(self, db_session):
        summary = _ingest(db_session)
        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.expires_at.replace(tzinfo=None) == datetime(2026, 1, 31, 4, 0)

    def test_backlogged_email_never_stored_expired(self, db_session):
        received = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)
        summary = ingest_email(
            db_session,
            email_id="msg-late",
            subject=SAMPLE_SUBJECT,
            body_html=SAMPLE_HTML,
            received_at=received,
            geocoder=_FixedGeocoder(),
        )
        row = db_session.get(LoadEmail, summary["load_email_id"])
        # Expires 01/30/26 11:00 PM EST is already past on receipt.
        assert row.expires_at.replace(tzinfo=None) == datetime(2026, 2, 2, 12, 30)

    def test_geocode_failure_flags_issue_and_skips_matching(self, db_session, plans):
        summary = _ingest(db_session, geocoder=_FixedGeocoder(coords=None))
        assert summary["status"] == "accepted"
        assert summary["matches"] == []
        assert ISSUE_GEOCODE_FAILED in summary["issues"]
        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.has_issues is True

    def test_geocode_cache_reused_across_emails(self, db_session):
        geocoder = _FixedGeocoder()
        _ingest(db_session, email_id="msg-1", geocoder=geocoder)
        _ingest(db_session, email_id="msg-2", geocoder=geocoder)
        assert geocoder.calls == 1

    def test_vehicle_mapping_applied_before_matching(self, db_session, plans):
        db_session.add(VehicleTypeMapping(original_value="CARGO VAN", canonical_value="VAN"))
        db_session.commit()
        subject = SAMPLE_SUBJECT.replace("VAN needed", "CARGO VAN needed")

        summary = _ingest(db_session, subject=subject)

        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.parsed_data["vehicle_type"] == "VAN"
        assert len(summary["matches"]) == 1

    def test_parser_hint_fills_gap(self, db_session):
        db_session.add(ParserHint(field_name="load_type", pattern=r"Service:\s*(\w+)"))
        db_session.commit()

        summary = _ingest(db_session, body_html="<p>Service: Expedite</p>")

        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.parsed_data["load_type"] == "Expedite"

    def test_origin_city_from_zip(self, db_session):
        subject = "VAN Posted by Acme (broker@acme.com)"
        body = "<p>Pick-Up</p><p>OH 43215</p><p>ASAP</p>"
        geocoder = _FixedGeocoder(zip_result=("Columbus", "OH"))

        summary = _ingest(db_session, subject=subject, body_html=body, geocoder=geocoder)

        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.parsed_data["origin_zip"] == "43215"
        assert row.parsed_data["origin_city"] == "Columbus"
        assert row.parsed_data["origin_state"] == "OH"

    def test_matching_can_be_disabled(self, db_session, plans, monkeypatch):
        monkeypatch.setattr(settings, "MATCHING_ENABLED", False)
        summary = _ingest(db_session)
        assert summary["matches"] == []
        assert db_session.query(LoadHuntMatch).count() == 0


class TestRejected:
    def test_missing_broker_email_is_stored_flagged(self, db_session, plans):
        subject = SAMPLE_SUBJECT.replace(" (broker@acme.com)", "")
        summary = _ingest(db_session, subject=subject)

        assert summary["status"] == "rejected"
        assert summary["load_id"] is None
        assert summary["matches"] == []

        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.status == "rejected"
        assert row.has_issues is True
        assert row.issue_notes == ISSUE_MISSING_BROKER_EMAIL
        assert row.parsed_data["origin_city"] == "Columbus"
        assert db_session.query(LoadHuntMatch).count() == 0


class TestReparse:
    def test_reparse_overwrites_parsed_data(self, db_session):
        summary = _ingest(db_session)
        row = db_session.get(LoadEmail, summary["load_email_id"])
        stale = dict(row.parsed_data)
        stale["rate"] = 1.0
        stale["broker_name"] = None
        row.parsed_data = stale
        db_session.commit()

        outcome = reparse_load_email(db_session, row, hints=[])
        db_session.commit()

        assert outcome["changed_fields"] == ["broker_name", "rate"]
        assert row.parsed_data["rate"] == 500.0
        assert row.parsed_data["pickup_coordinates"] == COLUMBUS
        assert row.load_id == "LH-260130-001"

    def test_reparse_unchanged_reports_nothing(self, db_session):
        summary = _ingest(db_session)
        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert reparse_load_email(db_session, row, hints=[])["changed_fields"] == []

    def test_reparse_geocodes_origin_found_by_hint(self, db_session):
        geocoder = _FixedGeocoder()
        summary = _ingest(
            db_session,
            subject="VAN Posted by Acme (broker@acme.com)",
            body_html="<p>Origin: Columbus, OH</p>",
            geocoder=geocoder,
        )
        row = db_session.get(LoadEmail, summary["load_email_id"])
        assert row.parsed_data["pickup_coordinates"] is None
        assert geocoder.calls == 0

        hints = [
            ParserHint(field_name="origin_city", pattern=r"Origin:\s*([^,\n]+),", is_active=True),
            ParserHint(field_name="origin_state", pattern=r"Origin:\s*[^,\n]+,\s*([A-Z]{2})", is_active=True),
        ]
        outcome = reparse_load_email(db_session, row, hints=hints, geocoder=geocoder)
        db_session.commit()

        assert "pickup_coordinates" in outcome["changed_fields"]
        assert row.parsed_data["origin_city"] == "Columbus"
        assert row.parsed_data["pickup_coordinates"] == COLUMBUS
        assert ISSUE_GEOCODE_FAILED not in (row.issue_notes or "")
        assert geocoder.calls == 1

    def test_reparse_regeocodes_changed_origin(self, db_session):
        summary = _ingest(db_session)
        row = db_session.get(LoadEmail, summary["load_email_id"])
        stale = dict(row.parsed_data)
        stale["origin_city"] = "Dayton"
        stale["pickup_coordinates"] = {"lat": 39.7589, "lng": -84.1916}
        row.parsed_data = stale
        db_session.commit()

        reparse_load_email(db_session, row, hints=[], geocoder=_FixedGeocoder(coords=None))

        # Columbus is already in the geocode cache from the first ingest.
        assert row.parsed_data["origin_city"] == "Columbus"
        assert row.parsed_data["pickup_coordinates"] == COLUMBUS
