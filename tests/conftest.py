"""Shared pytest fixtures for all tests."""

from datetime import datetime, timezone

import pytest

from knock_user_sync.config import Config
from knock_user_sync.models import SourceUserRecord

ENV_VARIABLES = (
    "KNOCK_API_KEY",
    "KNOCK_API_URL",
    "KNOCK_TIMEOUT_SECONDS",
    "DB_HOST",
    "DB_PORT",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "SYNC_EMAIL_DOMAINS",
    "SYNC_ROW_LIMIT",
    "SYNC_LOG_DIR",
    "DIRECTORY_PARSER",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove sync settings from the environment and run from an empty directory."""
    for name in ENV_VARIABLES:
        # setenv first so values loaded by dotenv are also undone
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def log_dir(tmp_path):
    """Directory for run logs."""
    return tmp_path / "logs"


@pytest.fixture
def test_config(log_dir):
    """Create test configuration writing logs to a temporary directory."""
    return Config(
        knock_api_key="sk_test_knock_key",
        db_host="db.example.internal",
        db_name="pmhub",
        db_user="sync",
        db_password="db-secret-password",  # noqa: S106
        log_dir=str(log_dir),
    )


@pytest.fixture
def started_at():
    """Fixed run timestamp."""
    return datetime(2024, 3, 5, 14, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def source_users():
    """Source rows used across workflow tests."""
    return [
        SourceUserRecord(person_id="u1", email="existing@rentpure.com", first_name="Old", last_name="User"),
        SourceUserRecord(person_id="u2", email="a@rentpure.com", first_name="A", last_name="B"),
    ]
