"""Tests for payload construction."""

import pytest

from knock_user_sync.exceptions import PayloadError
from knock_user_sync.models import SourceUserRecord, SyncPayloadEntry
from knock_user_sync.sync.payload import build_display_name, build_entry, build_payload


class TestBuildDisplayName:
    """Tests for name concatenation."""

    @pytest.mark.parametrize(
        ("parts", "expected"),
        [
            (("Jane", None, "Doe"), "Jane Doe"),
            (("Jane", "Q", "Doe"), "Jane Q Doe"),
            ((" Jane ", "", "  Doe"), "Jane Doe"),
            ((None, None, "Doe"), "Doe"),
            ((None, "Q", None), "Q"),
            ((None, None, None), None),
            (("", "  ", ""), None),
        ],
    )
    def test_concatenation(self, parts, expected):
        assert build_display_name(*parts) == expected


class TestBuildEntry:
    """Tests for mapping source records to payload entries."""

    def test_full_record(self):
        record = SourceUserRecord(
            person_id="u2",
            email="a@rentpure.com",
            preferred_language="es",
            first_name="A",
            last_name="B",
            phone_number="+15551234567",
        )

        entry = build_entry(record)

        assert entry == SyncPayloadEntry(id="u2", email="a@rentpure.com", name="A B", phone_number="+15551234567")
        assert entry.to_dict() == {
            "id": "u2",
            "email": "a@rentpure.com",
            "name": "A B",
            "phone_number": "+15551234567",
        }

    def test_optional_fields_omitted(self):
        """Test absent name and phone are left out rather than sent empty."""
        entry = build_entry(SourceUserRecord(person_id="u3", email="c@purepm.co", first_name="", phone_number=""))

        assert entry.to_dict() == {"id": "u3", "email": "c@purepm.co"}

    def test_preferred_language_not_sent(self):
        entry = build_entry(SourceUserRecord(person_id="u4", email="d@purepm.co", preferred_language="en"))

        assert "preferred_language" not in entry.to_dict()

    def test_empty_email_rejected(self):
        with pytest.raises(PayloadError, match="no email"):
            build_entry(SourceUserRecord(person_id="u5", email=""))

    def test_empty_id_rejected(self):
        with pytest.raises(PayloadError, match="no person_id"):
            build_entry(SourceUserRecord(person_id="", email="e@purepm.co"))


class TestBuildPayload:
    """Tests for the whole request body."""

    def test_single_users_array_in_order(self):
        records = [
            SourceUserRecord(person_id="u2", email="a@rentpure.com", first_name="A", last_name="B"),
            SourceUserRecord(person_id="u9", email="z@rentpure.com"),
        ]

        assert build_payload(records) == {
            "users": [
                {"id": "u2", "email": "a@rentpure.com", "name": "A B"},
                {"id": "u9", "email": "z@rentpure.com"},
            ],
        }

    def test_empty(self):
        assert build_payload([]) == {"users": []}
