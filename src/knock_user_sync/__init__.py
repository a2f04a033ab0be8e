"""Incremental sync of PostgreSQL users into the Knock user directory."""

from knock_user_sync.scripts.sync import run_sync

__version__ = "0.1.0"

__all__ = ["__version__", "run_sync"]
