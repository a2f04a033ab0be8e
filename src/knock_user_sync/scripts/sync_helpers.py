"""
Helper functions for the Knock user sync workflow.

These functions implement the individual steps of the sync process and are called
from the main workflow in sync.py. Extracting them here keeps the main sync.py
file focused on the high-level workflow logic.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Optional

from knock_user_sync.models import DirectorySnapshot, SourceUserRecord
from knock_user_sync.sync.directory import fetch_directory
from knock_user_sync.sync.payload import build_display_name, build_payload

TOTAL_STEPS = 5


def _log(message: str, logger: Optional[logging.Logger] = None):
    """Log message using logger if provided, otherwise print."""
    if logger:
        logger.info(message)
    else:
        print(message)


def _format_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Align columns the way ``column -t`` does."""
    table = [[str(h) for h in headers]] + [["" if v is None else str(v) for v in row] for row in rows]
    widths = [max(len(row[i]) for row in table) for i in range(len(headers))]
    return "\n".join("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip() for row in table)


def _fetch_directory(client, parser, run_log, logger=None) -> DirectorySnapshot:
    """Fetch existing Knock users and record them in the directory log."""
    _log(f"\n[1/{TOTAL_STEPS}] Fetching existing users from Knock API...", logger)
    snapshot = fetch_directory(client, parser)

    if parser.structured:
        _log("\nExisting Knock users:", logger)
        _log(_format_table(("id", "email", "name"), ((r.id, r.email, r.name) for r in snapshot.records)), logger)

    _log(f"  ✓ Found {len(snapshot.user_ids)} existing Knock users", logger)
    path = run_log.write_directory_users(snapshot.records)
    _log(f"  ✓ Knock users written to {path}", logger)
    return snapshot


def _query_source(source_store, snapshot, logger=None) -> list[SourceUserRecord]:
    """Query the source store for users not yet in the directory."""
    _log(f"\n[2/{TOTAL_STEPS}] Fetching users from PostgreSQL...", logger)
    records = source_store.fetch_users(snapshot.user_ids)
    _log(
        f"  ✓ Fetched {len(records)} users from PostgreSQL "
        f"(excluding {len(snapshot.user_ids)} Knock user IDs)",
        logger,
    )
    return records


def _show_source_users(records, logger=None):
    """Print the users about to be synced."""
    _log("\nPostgreSQL users to sync:", logger)
    rows = (
        (
            r.email,
            build_display_name(r.first_name, r.middle_name, r.last_name),
            r.person_id,
            r.preferred_language,
            r.phone_number,
        )
        for r in records
    )
    _log(_format_table(("Email", "Name", "Person ID", "Preferred Language", "Phone Number"), rows), logger)


def _build_payload(records, logger=None) -> dict:
    """Build the bulk identify request body."""
    _log(f"\n[3/{TOTAL_STEPS}] Preparing bulk identify payload...", logger)
    payload = build_payload(records)
    _log(f"  ✓ Payload contains {len(payload['users'])} users", logger)
    return payload


def _submit_payload(client, parser, payload, logger=None) -> str:
    """Send the payload and echo Knock's response."""
    _log(f"\n[4/{TOTAL_STEPS}] Sending users to Knock API...", logger)
    body = client.bulk_identify(payload)
    _log(f"  ✓ Successfully sent {len(payload['users'])} users to Knock API", logger)
    _log(f"Response:\n{parser.pretty(body)}", logger)
    return body


def _write_source_log(run_log, records, logger=None):
    """Record the queried users in the source log."""
    _log(f"\n[5/{TOTAL_STEPS}] Writing run log...", logger)
    path = run_log.write_source_users(records)
    _log(f"  ✓ {len(records)} users written to {path}", logger)
    return path


def _print_summary(result, logger=None):
    """Print sync summary."""
    _log("\nSync complete!", logger)
    _log("=" * 60, logger)
    _log(f"Knock users fetched: {result.fetched}", logger)
    _log(f"Knock user IDs excluded: {result.excluded}", logger)
    _log(f"Users submitted: {result.submitted}", logger)
    _log("=" * 60, logger)
