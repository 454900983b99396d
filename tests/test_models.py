"""Tests for the guest record model and creation helpers."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from checkin.data.models import GuestRecord, format_entry_time, new_guest, parse_companions
from checkin.errors import GuestValidationError


class TestParseCompanions:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, 0),
            ("", 0),
            ("abc", 0),
            ("2", 2),
            (" 4 ", 4),
            ("3 personas", 3),
            (5, 5),
            (2.9, 2),
            (-1, 0),
            ("-7", 0),
            (True, 0),
            (float("nan"), 0),
        ],
    )
    def test_coercion(self, raw, expected):
        assert parse_companions(raw) == expected


class TestFormatEntryTime:
    def test_es_es_style(self):
        moment = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        assert format_entry_time(moment, "UTC") == "1/1/2024, 10:00:00"

    def test_single_digit_hour_not_padded(self):
        moment = datetime(2026, 10, 18, 9, 5, 3, tzinfo=timezone.utc)
        assert format_entry_time(moment, "UTC") == "18/10/2026, 9:05:03"

    def test_converts_to_requested_zone(self):
        moment = datetime(2024, 7, 1, 22, 30, 0, tzinfo=timezone.utc)
        # Madrid is UTC+2 in summer, which rolls over to the next day.
        assert format_entry_time(moment, "Europe/Madrid") == "2/7/2024, 0:30:00"


class TestNewGuest:
    def test_generates_id_and_timestamps(self):
        moment = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        guest = new_guest("  Ana ", " 555 ", "2", now=moment, tz_name="UTC")
        assert guest.id
        assert guest.name == "Ana"
        assert guest.phone == "555"
        assert guest.companions == 2
        assert guest.timestamp == moment
        assert guest.entry_time == "1/1/2024, 10:00:00"

    def test_ids_are_unique(self):
        ids = {new_guest("Ana").id for _ in range(50)}
        assert len(ids) == 50

    def test_absent_phone_and_companions(self):
        guest = new_guest("Luis")
        assert guest.phone == ""
        assert guest.companions == 0

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_empty_name_rejected(self, name):
        with pytest.raises(GuestValidationError):
            new_guest(name)


class TestGuestRecordDocument:
    def test_document_uses_entry_time_key(self):
        guest = new_guest("Ana", "555", 1, tz_name="UTC")
        doc = guest.to_document()
        assert set(doc) == {"id", "name", "phone", "companions", "timestamp", "entryTime"}
        assert isinstance(doc["timestamp"], str)

    def test_document_round_trip_preserves_id(self):
        guest = new_guest("Ana", "555", 1)
        assert GuestRecord.from_document(guest.to_document()) == guest

    def test_naive_timestamp_treated_as_utc(self):
        doc = {"id": "x", "name": "Ana", "timestamp": "2024-01-01T10:00:00", "entryTime": ""}
        guest = GuestRecord.from_document(doc)
        assert guest.timestamp.tzinfo is not None

    def test_missing_companions_defaults_to_zero(self):
        doc = {"id": "x", "name": "Ana", "timestamp": "2024-01-01T10:00:00Z"}
        assert GuestRecord.from_document(doc).companions == 0

    def test_empty_name_document_invalid(self):
        with pytest.raises(ValidationError):
            GuestRecord.from_document({"id": "x", "name": " ", "timestamp": "2024-01-01T10:00:00Z"})
