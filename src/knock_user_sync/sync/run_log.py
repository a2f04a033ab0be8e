"""Append-only, per-day log files of the records seen in each run."""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..models import RemoteUserRecord, SourceUserRecord
from .payload import build_display_name

CATEGORY_DIRECTORY = "directory"
CATEGORY_SOURCE = "source"

DIRECTORY_COLUMNS = ("id", "email", "name")
SOURCE_COLUMNS = ("email", "person_id", "name", "preferred_language", "phone_number")


def _field(value: Any) -> str:
    if value is None:
        return ""
    return str(value).replace("\t", " ").replace("\r", " ").replace("\n", " ")


def _row(values: Iterable[Any]) -> str:
    return "\t".join(_field(value) for value in values)


class RunLogWriter:
    """
    Writes one section per run to ``{log_dir}/{YYYY-MM-DD}_{category}_users.log``.

    The date is the UTC day the run started. Files are only ever appended to,
    so several runs on the same day stack their sections in one file.
    """

    def __init__(self, log_dir: str, started_at: Optional[datetime] = None):
        self.log_dir = Path(log_dir)
        started_at = started_at or datetime.now(timezone.utc)
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)
        self.started_at = started_at.astimezone(timezone.utc)

    @property
    def date_str(self) -> str:
        return self.started_at.strftime("%Y-%m-%d")

    @property
    def timestamp(self) -> str:
        return self.started_at.strftime("%Y-%m-%dT%H:%M:%SZ")

    def path_for(self, category: str) -> Path:
        return self.log_dir / f"{self.date_str}_{category}_users.log"

    def _append_section(self, category: str, columns: Sequence[str], rows: Iterable[Iterable[Any]]) -> Path:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(category)
        lines = [f"=== {self.timestamp} ===", _row(columns)]
        lines.extend(_row(row) for row in rows)
        with path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        return path

    def write_directory_users(self, records: Iterable[RemoteUserRecord]) -> Path:
        """Append the users fetched from Knock."""
        rows = ((record.id, record.email, record.name) for record in records)
        return self._append_section(CATEGORY_DIRECTORY, DIRECTORY_COLUMNS, rows)

    def write_source_users(self, records: Iterable[SourceUserRecord]) -> Path:
        """Append the users queried from the source store (may be empty)."""
        rows = (
            (
                record.email,
                record.person_id,
                build_display_name(record.first_name, record.middle_name, record.last_name),
                record.preferred_language,
                record.phone_number,
            )
            for record in records
        )
        return self._append_section(CATEGORY_SOURCE, SOURCE_COLUMNS, rows)
