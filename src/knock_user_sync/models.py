"""Record types passed between the sync stages."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class RemoteUserRecord:
    """A user already present in the Knock directory."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class SourceUserRecord:
    """A user row from the source store (``core.person`` joined to ``core.phone``)."""

    person_id: str
    email: str
    preferred_language: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None


@dataclass(frozen=True)
class SyncPayloadEntry:
    """One user object in the bulk identify request body."""

    id: str
    email: str
    name: Optional[str] = None
    phone_number: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the API, omitting absent optional fields."""
        data = {"id": self.id, "email": self.email}
        if self.name:
            data["name"] = self.name
        if self.phone_number:
            data["phone_number"] = self.phone_number
        return data


@dataclass(frozen=True)
class DirectorySnapshot:
    """Directory contents as fetched at the start of a run."""

    records: list[RemoteUserRecord]
    user_ids: frozenset[str]


@dataclass
class SyncResult:
    """Counts reported at the end of a run."""

    fetched: int = 0
    excluded: int = 0
    queried: int = 0
    submitted: int = 0
    response_body: str = ""
    log_files: list[str] = field(default_factory=list)
