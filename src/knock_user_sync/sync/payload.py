"""Build the bulk identify request body from source records."""

from collections.abc import Iterable
from typing import Any, Optional

from ..exceptions import PayloadError
from ..models import SourceUserRecord, SyncPayloadEntry


def build_display_name(
    first_name: Optional[str],
    middle_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Optional[str]:
    """
    Join name parts with single spaces, skipping empty ones.

    Returns:
        The display name, or None when every part is empty
    """
    parts = [part.strip() for part in (first_name, middle_name, last_name) if part and part.strip()]
    return " ".join(parts) or None


def build_entry(record: SourceUserRecord) -> SyncPayloadEntry:
    """Map one source record to its payload entry."""
    if not record.person_id:
        msg = f"Source record for {record.email!r} has no person_id"
        raise PayloadError(msg)
    if not record.email:
        msg = f"Source record {record.person_id} has no email"
        raise PayloadError(msg)

    return SyncPayloadEntry(
        id=record.person_id,
        email=record.email,
        name=build_display_name(record.first_name, record.middle_name, record.last_name),
        phone_number=record.phone_number or None,
    )


def build_entries(records: Iterable[SourceUserRecord]) -> list[SyncPayloadEntry]:
    return [build_entry(record) for record in records]


def build_payload(records: Iterable[SourceUserRecord]) -> dict[str, Any]:
    """
    Materialize the complete request body.

    Knock's bulk identify endpoint only accepts a whole batch, so every
    entry is built before anything is sent.
    """
    return {"users": [entry.to_dict() for entry in build_entries(records)]}
