#!/usr/bin/env python3
"""
Expire overdue batches and list stock that is about to expire.

Runs one expiry sweep against the configured database, prints every batch
written off and every per-batch failure, then lists active batches that
expire within the alert window.

Usage:
    python -m scripts.check_expired_batches
    python -m scripts.check_expired_batches --config settings.yaml
    python -m scripts.check_expired_batches --as-of 2024-06-01 --days-ahead 3
    python -m scripts.check_expired_batches --database-url sqlite:///stock.db --create-tables

Exit codes:
    0  sweep completed with no per-batch errors
    1  sweep completed but some batches failed
    2  configuration or database connection failure
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from typing import Sequence

import yaml
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from inventory_config import load_settings
from inventory_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.exceptions import InventoryError
from inventory_kernel.logging_config import configure_logging
from inventory_kernel.services.batch_queries import BatchQueryService
from inventory_kernel.services.expiry_sweep import ExpirySweep
from inventory_kernel.services.transaction_coordinator import TransactionCoordinator

EXIT_OK = 0
EXIT_BATCH_ERRORS = 1
EXIT_SETUP_FAILED = 2


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Expire overdue inventory batches")
    parser.add_argument("--config", help="YAML settings file overriding the defaults")
    parser.add_argument("--database-url", help="Database URL (overrides settings)")
    parser.add_argument("--as-of", type=_parse_date, help="Sweep date, YYYY-MM-DD (default: today)")
    parser.add_argument("--days-ahead", type=int, help="Expiry alert window in days")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError, KeyError, yaml.YAMLError) as exc:
        print(f"ERROR: Could not load settings: {exc}", file=sys.stderr)
        return EXIT_SETUP_FAILED

    days_ahead = args.days_ahead if args.days_ahead is not None else settings.expiry_alert_days
    if days_ahead < 0:
        print("ERROR: --days-ahead must not be negative", file=sys.stderr)
        return EXIT_SETUP_FAILED

    configure_logging(level=settings.log_level)
    database_url = args.database_url or settings.database_url

    try:
        engine = init_engine_from_url(
            database_url, echo=settings.echo_sql, pool_size=settings.pool_size
        )
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        if args.create_tables:
            create_tables(engine)
    except (SQLAlchemyError, ValueError) as exc:
        print(f"ERROR: Could not connect to database: {exc}", file=sys.stderr)
        reset_engine()
        return EXIT_SETUP_FAILED

    register_immutability_listeners()
    coordinator = TransactionCoordinator(
        get_session_factory(),
        default_timeout_seconds=settings.transaction_timeout_seconds,
    )

    try:
        report = ExpirySweep(coordinator).sweep(args.as_of)
        expiring = coordinator.run(
            "check_expired_batches.expiring",
            lambda session: BatchQueryService(session).expiring_within(days_ahead, args.as_of),
        )
    except InventoryError as exc:
        print(f"ERROR: Sweep failed: {exc}", file=sys.stderr)
        return EXIT_SETUP_FAILED
    finally:
        reset_engine()

    print(f"Expiry sweep as of {report.as_of.isoformat()}")
    print(f"  Checked: {report.total_checked}")
    print(f"  Expired: {len(report.updated)} batches, {report.quantity_removed} units")
    for batch in report.updated:
        print(
            f"    {batch.batch_number}  qty={batch.quantity_removed}  "
            f"expired={batch.expiry_date.isoformat()}"
        )
    if report.errors:
        print(f"  Errors: {len(report.errors)}")
        for failure in report.errors:
            print(f"    {failure.batch_number}  [{failure.error_code}] {failure.message}")

    print()
    print(f"Expiring within {days_ahead} days: {len(expiring)}")
    for batch in expiring:
        print(
            f"    {batch.batch_number}  qty={batch.current_quantity}  "
            f"expires={batch.expiry_date.isoformat()} ({batch.days_until_expiry}d)  "
            f"value={batch.value_at_risk}"
        )

    return EXIT_OK if report.is_clean else EXIT_BATCH_ERRORS


if __name__ == "__main__":
    sys.exit(main())
