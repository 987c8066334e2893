"""
Tests for the SQLite database and transaction boundary

Verifies:
- Commit on success, rollback on any exception
- Foreign key violations propagate as sqlite3.IntegrityError
- Read-only transactions see committed data
"""

import sqlite3
from datetime import datetime, timezone

import pytest

from design_pipeline.kernel.database import Database
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def insert_design(trx, design_id: str = "design-1") -> None:
    trx.execute(
        "INSERT INTO designs (id, user_id, collection_id, title, complexity, created_at) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (design_id, "designer-1", "collection-1", "Jacket", "SIMPLE", to_db_timestamp(NOW)),
    )


def count_designs(database: Database) -> int:
    with database.transaction(read_only=True) as trx:
        return trx.fetchone("SELECT COUNT(*) FROM designs")[0]


def test_schema_is_created(database: Database) -> None:
    """Every pipeline table exists after construction"""
    with database.transaction(read_only=True) as trx:
        tables = {
            row["name"]
            for row in trx.fetchall("SELECT name FROM sqlite_master WHERE type = 'table'")
        }

    assert {
        "designs",
        "bids",
        "design_events",
        "design_approval_steps",
        "design_approval_submissions",
        "invoices",
        "credit_notes",
    } <= tables


def test_reopening_database_keeps_data(temp_db) -> None:
    """Schema creation is idempotent and never drops data"""
    first = Database(temp_db)
    with first.transaction() as trx:
        insert_design(trx)

    second = Database(temp_db)
    assert count_designs(second) == 1


def test_transaction_commits_on_success(database: Database) -> None:
    with database.transaction() as trx:
        insert_design(trx)

    assert count_designs(database) == 1


def test_transaction_rolls_back_on_exception(database: Database) -> None:
    """Nothing written inside a failed transaction survives"""
    with pytest.raises(RuntimeError):
        with database.transaction() as trx:
            insert_design(trx)
            raise RuntimeError("boom")

    assert count_designs(database) == 0


def test_foreign_key_violation_propagates(database: Database) -> None:
    """Database errors are not wrapped and roll back the transaction"""
    with pytest.raises(sqlite3.IntegrityError):
        with database.transaction() as trx:
            insert_design(trx)
            trx.execute(
                "INSERT INTO pricing_quotes (id, design_id, units, unit_cost_cents, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                ("quote-1", "missing-design", 1, 1, to_db_timestamp(NOW)),
            )

    assert count_designs(database) == 0


def test_timestamps_round_trip_in_utc() -> None:
    """Stored timestamps are fixed-width UTC so text order is time order"""
    earlier = to_db_timestamp(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))
    later = to_db_timestamp(datetime(2025, 1, 15, 12, 0, 0, 1, tzinfo=timezone.utc))

    assert earlier < later
    assert from_db_timestamp(earlier) == NOW
    assert to_db_timestamp(None) is None
