"""Tests for directory parsing and the exclusion set."""

import json
import logging

import pytest

from knock_user_sync.exceptions import ConfigurationError, DirectoryFetchError
from knock_user_sync.models import RemoteUserRecord
from knock_user_sync.sync.directory import (
    BasicDirectoryParser,
    JsonDirectoryParser,
    build_exclusion_set,
    fetch_directory,
    select_parser,
)

DIRECTORY_BODY = json.dumps(
    {
        "entries": [
            {"id": "u1", "email": "one@rentpure.com", "name": "One"},
            {"id": "u2", "properties": {"email": "two@purepm.co", "name": "Two"}},
            {"id": "u1", "email": "one@rentpure.com"},
            {"id": None, "email": "ghost@rentpure.com"},
            {"id": "u3", "email": "", "properties": {"email": "three@rentpure.com"}},
        ],
        "page_info": {"after": None},
    },
)


class StubClient:
    def __init__(self, body):
        self.body = body

    def list_users(self):
        return self.body


class TestJsonDirectoryParser:
    """Tests for structured parsing."""

    def test_parses_entries_with_property_fallbacks(self):
        """Test email/name fall back to properties and null ids are skipped."""
        records = JsonDirectoryParser().parse(DIRECTORY_BODY)

        assert records == [
            RemoteUserRecord(id="u1", email="one@rentpure.com", name="One"),
            RemoteUserRecord(id="u2", email="two@purepm.co", name="Two"),
            RemoteUserRecord(id="u1", email="one@rentpure.com", name=None),
            RemoteUserRecord(id="u3", email="three@rentpure.com", name=None),
        ]

    def test_invalid_json(self):
        """Test a non-JSON body is a fetch failure."""
        with pytest.raises(DirectoryFetchError, match="Invalid JSON"):
            JsonDirectoryParser().parse("<html>oops</html>")

    def test_missing_entries(self):
        """Test a JSON body without an entries list is a fetch failure."""
        with pytest.raises(DirectoryFetchError, match="no 'entries' list"):
            JsonDirectoryParser().parse('{"data": []}')

    def test_pretty_prints_json(self):
        """Test response echo is indented."""
        assert JsonDirectoryParser().pretty('{"a":1}') == '{\n  "a": 1\n}'

    def test_pretty_leaves_text_alone(self):
        assert JsonDirectoryParser().pretty("accepted") == "accepted"


class TestBasicDirectoryParser:
    """Tests for identifier-only parsing."""

    def test_extracts_ids_only(self):
        """Test ids are found and emails/names are not recovered."""
        records = BasicDirectoryParser().parse('{"entries":[{"id":"u1","email":"x@y"},{"id": "u2"}]}')

        assert records == [RemoteUserRecord(id="u1"), RemoteUserRecord(id="u2")]

    def test_pretty_is_verbatim(self):
        assert BasicDirectoryParser().pretty('{"a":1}') == '{"a":1}'


class TestSelectParser:
    """Tests for parser selection at startup."""

    def test_default_is_json(self):
        assert isinstance(select_parser(), JsonDirectoryParser)

    def test_basic_warns(self, caplog):
        """Test choosing the degraded parser logs a warning."""
        with caplog.at_level(logging.WARNING):
            parser = select_parser("basic")

        assert isinstance(parser, BasicDirectoryParser)
        assert "basic directory parsing" in caplog.text

    def test_unknown_mode(self):
        with pytest.raises(ConfigurationError, match="Unknown directory parser"):
            select_parser("xml")


class TestExclusionSet:
    """Tests for the exclusion set."""

    def test_duplicates_collapse(self):
        """Test N unique ids give exactly N elements."""
        records = [RemoteUserRecord(id=i) for i in ("a", "b", "a", "c", "b")]

        assert build_exclusion_set(records) == frozenset({"a", "b", "c"})

    def test_empty_ids_dropped(self):
        assert build_exclusion_set([RemoteUserRecord(id="")]) == frozenset()

    @pytest.mark.parametrize("parser", [JsonDirectoryParser(), BasicDirectoryParser()])
    def test_fetch_directory_dedupes(self, parser):
        """Test both parsers yield the same exclusion set."""
        snapshot = fetch_directory(StubClient(DIRECTORY_BODY), parser)

        assert snapshot.user_ids == frozenset({"u1", "u2", "u3"})
