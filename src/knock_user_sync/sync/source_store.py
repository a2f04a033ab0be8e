"""Query the PostgreSQL source store for users missing from Knock."""

import logging
from collections.abc import Iterable
from typing import Any, Optional

from ..config import DEFAULT_EMAIL_DOMAINS, DEFAULT_ROW_LIMIT, Config
from ..exceptions import MissingDependencyError, SourceQueryError
from ..models import SourceUserRecord

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = (
    "email",
    "person_id",
    "preferred_language",
    "first_name",
    "middle_name",
    "last_name",
    "phone_number",
)

USERS_QUERY = """
SELECT DISTINCT
    p.email,
    p.person_id,
    p.preferred_language,
    p.first_name,
    p.middle_name,
    p.last_name,
    ph.phone_number
FROM
    "core"."person" AS p
LEFT JOIN
    "core"."phone" AS ph
    ON ph.person_id = p.person_id
WHERE
    p.email IS NOT NULL
    AND p.active = TRUE
    AND p.is_external = FALSE
    AND ({domain_filter})
    {exclusion_clause}
ORDER BY
    p.email ASC
LIMIT %(row_limit)s
"""


def _import_psycopg2():
    """Import psycopg2 or fail with an install hint."""
    try:
        import psycopg2  # noqa: PLC0415
    except ImportError as e:
        msg = "psycopg2 not installed. Install with: pip install psycopg2-binary"
        raise MissingDependencyError(msg) from e
    return psycopg2


def check_dependencies():
    """Fail before any network or database activity if the driver is missing."""
    _import_psycopg2()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_domain_filter(domains: Iterable[str]) -> tuple[str, dict[str, str]]:
    """
    Build the email domain allow-list condition.

    Each domain matches as a case-insensitive suffix of the email address.

    Returns:
        (sql_condition, params) with one named parameter per domain
    """
    conditions = []
    params = {}
    for index, domain in enumerate(domains):
        key = f"domain_{index}"
        conditions.append(f"lower(p.email) LIKE %({key})s")
        params[key] = "%" + _escape_like(domain.lower())
    if not conditions:
        msg = "At least one email domain is required"
        raise ValueError(msg)
    return " OR ".join(conditions), params


def build_exclusion_clause(user_ids: Iterable[str]) -> tuple[str, dict[str, Any]]:
    """
    Build the filter that drops users already present in Knock.

    An empty set yields no clause at all, so the query applies no exclusion.
    Identifiers are compared as text, so non-UUID directory ids never break the cast.

    Returns:
        (sql_fragment, params)
    """
    ids = sorted(set(user_ids))
    if not ids:
        return "", {}
    return "AND NOT (p.person_id::text = ANY(%(excluded_ids)s))", {"excluded_ids": ids}


def build_users_query(
    user_ids: Iterable[str],
    domains: Iterable[str] = DEFAULT_EMAIL_DOMAINS,
    row_limit: int = DEFAULT_ROW_LIMIT,
) -> tuple[str, dict[str, Any]]:
    """Assemble the source query and its parameters."""
    domain_filter, params = build_domain_filter(domains)
    exclusion_clause, exclusion_params = build_exclusion_clause(user_ids)
    params.update(exclusion_params)
    params["row_limit"] = row_limit
    sql = USERS_QUERY.format(domain_filter=domain_filter, exclusion_clause=exclusion_clause)
    return sql, params


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def rows_to_records(rows: Iterable[tuple]) -> list[SourceUserRecord]:
    """
    Map query rows to records, keeping the first row per person.

    The phone join can return one row per phone number; the earliest row
    in email order wins.
    """
    records = []
    seen = set()
    for row in rows:
        values = dict(zip(SOURCE_COLUMNS, row))
        person_id = _text(values["person_id"])
        if person_id in seen:
            logger.debug(f"Skipping duplicate source row for person {person_id}")
            continue
        seen.add(person_id)
        records.append(
            SourceUserRecord(
                person_id=person_id,
                email=_text(values["email"]),
                preferred_language=_text(values["preferred_language"]),
                first_name=_text(values["first_name"]),
                middle_name=_text(values["middle_name"]),
                last_name=_text(values["last_name"]),
                phone_number=_text(values["phone_number"]),
            ),
        )
    return records


class SourceStore:
    """Read-only access to user records in the source PostgreSQL database."""

    def __init__(self, config: Config):
        self.config = config
        self.conn = None

    def connect(self):
        """Establish database connection."""
        psycopg2 = _import_psycopg2()
        try:
            self.conn = psycopg2.connect(**self.config.connection_params())
        except psycopg2.Error as e:
            msg = f"Failed to connect to PostgreSQL: {e}"
            raise SourceQueryError(msg) from e

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry - the connection opens on first query."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close connection."""
        self.close()
        return False

    def fetch_users(self, excluded_ids: Iterable[str]) -> list[SourceUserRecord]:
        """
        Fetch active internal users that are not yet in Knock.

        Args:
            excluded_ids: Identifiers already present in the directory

        Returns:
            Records ordered by email, at most ``config.row_limit`` rows

        Raises:
            SourceQueryError: If the query fails
        """
        psycopg2 = _import_psycopg2()
        if not self.conn:
            self.connect()

        sql, params = build_users_query(excluded_ids, self.config.email_domains, self.config.row_limit)
        try:
            with self.conn.cursor() as cursor:
                cursor.execute(sql, params)
                rows = cursor.fetchall()
        except psycopg2.Error as e:
            msg = f"Failed to query PostgreSQL: {e}"
            raise SourceQueryError(msg) from e

        if len(rows) >= self.config.row_limit:
            logger.warning(
                f"Source query hit the row limit ({self.config.row_limit}); "
                "remaining users will be picked up by a later run"
            )
        return rows_to_records(rows)
