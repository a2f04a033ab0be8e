"""Configuration loading for the Knock user sync."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_API_URL = "https://api.knock.app/v1"
DEFAULT_DB_PORT = 5432
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_EMAIL_DOMAINS = ("rentpure.com", "purepm.co")
# Upper bound on rows pulled from the source store per run. There is no
# pagination: users beyond the cap are picked up by later runs only once
# earlier ones are present in the directory.
DEFAULT_ROW_LIMIT = 1000
DEFAULT_LOG_DIR = "logs"
DEFAULT_PARSER = "json"

REQUIRED_VARIABLES = ("KNOCK_API_KEY", "DB_HOST", "DB_NAME", "DB_USER", "DB_PASSWORD")


@dataclass(frozen=True)
class Config:
    """Configuration for the Knock API and the source database."""

    knock_api_key: str = field(repr=False)
    db_host: str
    db_name: str
    db_user: str
    db_password: str = field(repr=False)
    db_port: int = DEFAULT_DB_PORT
    api_url: str = DEFAULT_API_URL
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    email_domains: tuple[str, ...] = DEFAULT_EMAIL_DOMAINS
    row_limit: int = DEFAULT_ROW_LIMIT
    log_dir: str = DEFAULT_LOG_DIR
    parser: str = DEFAULT_PARSER

    def connection_params(self) -> dict:
        """Keyword arguments for ``psycopg2.connect``."""
        return {
            "host": self.db_host,
            "port": self.db_port,
            "dbname": self.db_name,
            "user": self.db_user,
            "password": self.db_password,
        }


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from None
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigurationError(msg)
    return value


def _parse_domains(raw: Optional[str]) -> tuple[str, ...]:
    """Split a comma-separated domain list, dropping blanks and leading '@'."""
    if not raw:
        return DEFAULT_EMAIL_DOMAINS
    domains = tuple(part.strip().lstrip("@").lower() for part in raw.split(",") if part.strip().lstrip("@"))
    if not domains:
        msg = "SYNC_EMAIL_DOMAINS must list at least one domain"
        raise ConfigurationError(msg)
    return domains


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Load configuration from environment variables.

    Environment variable loading precedence:
    1. If env_file provided via CLI, load from that path
    2. Otherwise, check for .env in current working directory
    3. Otherwise, use system environment variables

    Args:
        env_file: Optional path to .env file (CLI parameter)

    Returns:
        Config object with loaded settings

    Raises:
        ConfigurationError: If required configuration is missing or invalid
    """
    if env_file:
        if not Path(env_file).exists():
            msg = f"Environment file not found: {env_file}"
            raise ConfigurationError(msg)
        load_dotenv(env_file)
    elif Path(".env").exists():
        load_dotenv(".env")

    missing = [name for name in REQUIRED_VARIABLES if not os.getenv(name)]
    if missing:
        msg = f"Missing required environment variables: {', '.join(missing)}"
        raise ConfigurationError(msg)

    return Config(
        knock_api_key=os.environ["KNOCK_API_KEY"],
        db_host=os.environ["DB_HOST"],
        db_name=os.environ["DB_NAME"],
        db_user=os.environ["DB_USER"],
        db_password=os.environ["DB_PASSWORD"],
        db_port=_get_int("DB_PORT", DEFAULT_DB_PORT),
        api_url=(os.getenv("KNOCK_API_URL") or DEFAULT_API_URL).rstrip("/"),
        timeout_seconds=_get_int("KNOCK_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        email_domains=_parse_domains(os.getenv("SYNC_EMAIL_DOMAINS")),
        row_limit=_get_int("SYNC_ROW_LIMIT", DEFAULT_ROW_LIMIT),
        log_dir=os.getenv("SYNC_LOG_DIR") or DEFAULT_LOG_DIR,
        parser=(os.getenv("DIRECTORY_PARSER") or DEFAULT_PARSER).lower(),
    )
