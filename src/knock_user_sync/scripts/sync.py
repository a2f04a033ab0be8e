#!/usr/bin/env python3
"""
PostgreSQL to Knock User Sync

Fetches the users already present in Knock, queries PostgreSQL for active
internal users that are missing, and sends them to Knock in one bulk
identify call.

Usage:
    sync-knock-users                       # Normal sync
    sync-knock-users --env-file prod.env   # Load settings from a specific .env
    sync-knock-users --parser basic        # Identifier-only directory parsing

Exit codes:
    0 - Sync completed successfully (including "no new users to sync")
    1 - Sync failed (configuration, dependency, Knock API or database error)
"""

import argparse
import dataclasses
import logging
import sys
import traceback
from datetime import datetime
from typing import Optional

from knock_user_sync.config import Config, load_config
from knock_user_sync.exceptions import KnockAPIError, SyncError
from knock_user_sync.knock_client import KnockClient
from knock_user_sync.models import SyncResult
from knock_user_sync.scripts.sync_helpers import (
    _build_payload,
    _fetch_directory,
    _log,
    _print_summary,
    _query_source,
    _show_source_users,
    _submit_payload,
    _write_source_log,
)
from knock_user_sync.sync.directory import select_parser
from knock_user_sync.sync.run_log import CATEGORY_DIRECTORY, RunLogWriter
from knock_user_sync.sync.source_store import SourceStore, check_dependencies


def run_sync_workflow(client, source_store, run_log, parser, logger=None) -> SyncResult:
    """
    Core sync workflow - extracted for testability.

    Stages run strictly in order and any stage error propagates. Logs are
    only written for stages that completed, so a failed fetch leaves no
    logs and a failed submit leaves no source log.

    Args:
        client: KnockClient (real or fake for testing)
        source_store: SourceStore (real or fake for testing)
        run_log: RunLogWriter for the directory and source logs
        parser: Directory parser chosen by ``select_parser``
        logger: Optional logger for output (if None, uses print)

    Returns:
        SyncResult with the run's counts
    """
    result = SyncResult()

    snapshot = _fetch_directory(client, parser, run_log, logger)
    result.fetched = len(snapshot.records)
    result.excluded = len(snapshot.user_ids)
    result.log_files.append(str(run_log.path_for(CATEGORY_DIRECTORY)))

    records = _query_source(source_store, snapshot, logger)
    result.queried = len(records)

    if not records:
        _log("\nNo new users to sync", logger)
        result.log_files.append(str(run_log.write_source_users([])))
        return result

    _show_source_users(records, logger)
    payload = _build_payload(records, logger)
    result.response_body = _submit_payload(client, parser, payload, logger)
    result.submitted = len(payload["users"])

    result.log_files.append(str(_write_source_log(run_log, records, logger)))
    _print_summary(result, logger)
    return result


def run_sync(
    config: Config,
    logger: Optional[logging.Logger] = None,
    started_at: Optional[datetime] = None,
) -> SyncResult:
    """
    Programmatic entry point for the Knock user sync.

    Checks dependencies and selects the directory parser before any
    network or database activity, then runs the workflow with real clients.

    Args:
        config: Loaded configuration
        logger: Optional Python logger for output. If None, prints to stdout.
        started_at: Run timestamp used for the log file names (default: now, UTC)

    Returns:
        SyncResult with the run's counts

    Raises:
        SyncError: On any fatal condition
    """
    check_dependencies()
    parser = select_parser(config.parser)
    run_log = RunLogWriter(config.log_dir, started_at)

    with KnockClient(config) as client, SourceStore(config) as source_store:
        return run_sync_workflow(client, source_store, run_log, parser, logger)


def _console_logger() -> logging.Logger:
    """Create a simple logger that prints to console."""
    console_logger = logging.getLogger("sync")
    console_logger.setLevel(logging.INFO)
    console_logger.propagate = False
    # Rebind on every call so the handler always writes to the current stdout
    console_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    console_logger.addHandler(handler)
    return console_logger


def sync_main(env_file=None, log_dir=None, parser=None) -> int:
    """
    CLI entry point - wraps run_sync() with CLI-specific concerns.

    Returns:
        Process exit code
    """
    print("=" * 60)
    print("POSTGRESQL TO KNOCK USER SYNC")
    print("=" * 60)

    try:
        config = load_config(env_file=env_file)
        overrides = {}
        if log_dir:
            overrides["log_dir"] = log_dir
        if parser:
            overrides["parser"] = parser
        if overrides:
            config = dataclasses.replace(config, **overrides)
        print("✓ Configuration loaded")

        run_sync(config, logger=_console_logger())
        print("\n✓ Sync completed successfully")
        return 0

    except KnockAPIError as e:
        print(f"\n❌ {e}")
        if e.body:
            print(e.body)
        return 1
    except SyncError as e:
        print(f"\n❌ SYNC FAILED: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 1
    except Exception as e:
        print(f"\n❌ SYNC FAILED: {e}")
        traceback.print_exc()
        return 1


def main():
    """CLI entry point for sync-knock-users command."""
    parser = argparse.ArgumentParser(description="Sync PostgreSQL users missing from Knock")
    parser.add_argument(
        "--env-file",
        help="Path to .env file (default: .env in working dir or system env vars)",
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for the per-day run logs (default: SYNC_LOG_DIR or ./logs)",
    )
    parser.add_argument(
        "--parser",
        choices=["json", "basic"],
        help="Directory response parser (default: DIRECTORY_PARSER or json)",
    )
    args = parser.parse_args()

    sys.exit(sync_main(env_file=args.env_file, log_dir=args.log_dir, parser=args.parser))


if __name__ == "__main__":
    main()
