"""Tests for Database transaction nesting."""

from __future__ import annotations

import pytest

from itineraries.storage.database import Database


def _insert(db: Database, key: str) -> None:
    with db.transaction() as conn:
        conn.execute(
            "INSERT INTO disclosure_state (booking_id, itinerary_id, state, last_sequence,"
            " updated_at) VALUES (?, NULL, 'OBFUSCATED', 1, '2026-01-01T00:00:00+00:00')",
            (key,),
        )


def _count(db: Database) -> int:
    row = db.fetch_one("SELECT COUNT(*) AS n FROM disclosure_state")
    assert row is not None
    return int(row["n"])


class TestTransactions:
    def test_nested_transactions_commit_together(self, db: Database) -> None:
        with db.transaction():
            _insert(db, "bk_1")
            _insert(db, "bk_2")

        assert _count(db) == 2

    def test_inner_failure_rolls_back_outer_writes(self, db: Database) -> None:
        with pytest.raises(RuntimeError), db.transaction():
            _insert(db, "bk_1")
            with db.transaction():
                raise RuntimeError("boom")

        assert _count(db) == 0

    def test_snapshot_inside_transaction_sees_pending_writes(self, db: Database) -> None:
        with db.transaction():
            _insert(db, "bk_1")
            with db.snapshot() as conn:
                row = conn.execute("SELECT COUNT(*) AS n FROM disclosure_state").fetchone()

        assert row["n"] == 1

    def test_connection_usable_after_rollback(self, db: Database) -> None:
        with pytest.raises(RuntimeError), db.transaction():
            raise RuntimeError("boom")

        _insert(db, "bk_1")
        assert _count(db) == 1
