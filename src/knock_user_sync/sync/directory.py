"""Parsing the Knock user directory and building the exclusion set."""

import json
import logging
import re
from typing import Any, Iterable, Optional, Union

from ..exceptions import ConfigurationError, DirectoryFetchError
from ..models import DirectorySnapshot, RemoteUserRecord

logger = logging.getLogger(__name__)

PARSER_JSON = "json"
PARSER_BASIC = "basic"

# Matches "id":"<value>" anywhere in the body, including nested objects
ID_PATTERN = re.compile(r'"id"\s*:\s*"([^"]*)"')


def _first_text(*values: Any) -> Optional[str]:
    """Return the first non-empty value as a string."""
    for value in values:
        if value is not None and value != "":
            return str(value)
    return None


class JsonDirectoryParser:
    """Reads ``entries[]`` from the directory response as structured JSON."""

    name = PARSER_JSON
    structured = True

    def parse(self, body: str) -> list[RemoteUserRecord]:
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON in Knock users response: {e}"
            raise DirectoryFetchError(msg, body=body) from e

        entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            msg = "Knock users response has no 'entries' list"
            raise DirectoryFetchError(msg, body=body)

        records = []
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("id") is None:
                continue
            properties = entry.get("properties") or {}
            records.append(
                RemoteUserRecord(
                    id=str(entry["id"]),
                    email=_first_text(entry.get("email"), properties.get("email")),
                    name=_first_text(entry.get("name"), properties.get("name")),
                ),
            )
        return records

    def pretty(self, body: str) -> str:
        """Indent a JSON body for display; leave anything else untouched."""
        try:
            return json.dumps(json.loads(body), indent=2)
        except json.JSONDecodeError:
            return body


class BasicDirectoryParser:
    """
    Degraded parser that only pulls identifiers out of the raw text.

    Enough to build the exclusion set; emails and names are not recovered,
    so directory tables and logs carry empty columns.
    """

    name = PARSER_BASIC
    structured = False

    def parse(self, body: str) -> list[RemoteUserRecord]:
        return [RemoteUserRecord(id=user_id) for user_id in ID_PATTERN.findall(body)]

    def pretty(self, body: str) -> str:
        return body


DirectoryParser = Union[JsonDirectoryParser, BasicDirectoryParser]


def select_parser(mode: str = PARSER_JSON) -> DirectoryParser:
    """
    Pick the directory parser once at startup.

    Args:
        mode: 'json' for structured parsing, 'basic' for identifier-only extraction

    Raises:
        ConfigurationError: If the mode is unknown
    """
    mode = (mode or PARSER_JSON).lower()
    if mode == PARSER_JSON:
        return JsonDirectoryParser()
    if mode == PARSER_BASIC:
        logger.warning("Using basic directory parsing: emails and names will be missing from output")
        return BasicDirectoryParser()
    msg = f"Unknown directory parser {mode!r} (expected '{PARSER_JSON}' or '{PARSER_BASIC}')"
    raise ConfigurationError(msg)


def build_exclusion_set(records: Iterable[RemoteUserRecord]) -> frozenset[str]:
    """Unique, non-empty identifiers of users already in the directory."""
    return frozenset(record.id for record in records if record.id)


def fetch_directory(client, parser: DirectoryParser) -> DirectorySnapshot:
    """
    Read the directory and build its snapshot.

    Args:
        client: KnockClient (or a test double exposing ``list_users()``)
        parser: Parser chosen by ``select_parser``

    Returns:
        DirectorySnapshot with the parsed records and the exclusion set
    """
    body = client.list_users()
    records = parser.parse(body)
    return DirectorySnapshot(records=records, user_ids=build_exclusion_set(records))
