"""Tests for SQLite audit store: init, insert, query, and SQL injection prevention."""

from pathlib import Path

from itineraries.audit.models import AuditEntry, AuditEventType, EntityType
from itineraries.audit.store import (
    close_audit_db,
    init_audit_db,
    insert_audit_entry,
    query_audit_trail,
)
from itineraries.domain.types import ActorRole


def _entry(
    entity_id: str = "sub_1",
    event_type: AuditEventType = AuditEventType.SUBMISSION_CREATED,
    entity_type: EntityType = EntityType.SUBMISSION,
    actor_id: str = "agent_1",
) -> AuditEntry:
    return AuditEntry(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        actor_role=ActorRole.AGENT,
        field_changes={"status": {"from": None, "to": "PENDING"}},
        metadata={"source": "FREE_TEXT"},
    )


class TestInitAuditDB:
    """Tests for database initialization."""

    def test_creates_database_file(self, tmp_path: Path):
        db_path = tmp_path / "audit.db"
        conn = init_audit_db(db_path)
        assert db_path.exists()
        close_audit_db(conn)

    def test_wal_mode_enabled(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "audit.db")
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"
        close_audit_db(conn)

    def test_is_idempotent(self, tmp_path: Path):
        db_path = tmp_path / "audit.db"
        close_audit_db(init_audit_db(db_path))
        conn = init_audit_db(db_path)
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='audit_log'"
        )
        assert cursor.fetchone() is not None
        close_audit_db(conn)


class TestInsertAndQuery:
    """Tests for inserting and filtering audit entries."""

    def test_insert_returns_row_id(self, audit_conn):
        assert insert_audit_entry(audit_conn, _entry()) > 0

    def test_json_columns_are_decoded(self, audit_conn):
        insert_audit_entry(audit_conn, _entry())

        row = query_audit_trail(audit_conn)[0]

        assert row["field_changes"] == {"status": {"from": None, "to": "PENDING"}}
        assert row["metadata"] == {"source": "FREE_TEXT"}
        assert row["actor_role"] == "AGENT"

    def test_filters_combine(self, audit_conn):
        insert_audit_entry(audit_conn, _entry("sub_1"))
        insert_audit_entry(audit_conn, _entry("sub_2"))
        insert_audit_entry(
            audit_conn,
            _entry(
                "itin_1",
                event_type=AuditEventType.VERSION_CREATED,
                entity_type=EntityType.ITINERARY,
                actor_id="agent_2",
            ),
        )

        assert len(query_audit_trail(audit_conn, entity_type="submission")) == 2
        assert len(query_audit_trail(audit_conn, entity_id="sub_2")) == 1
        assert len(query_audit_trail(audit_conn, actor_id="agent_2")) == 1
        assert (
            len(query_audit_trail(audit_conn, event_type="itinerary.version_created")) == 1
        )

    def test_newest_first_and_limit(self, audit_conn):
        for i in range(5):
            insert_audit_entry(audit_conn, _entry(f"sub_{i}"))

        rows = query_audit_trail(audit_conn, limit=2)

        assert [r["entity_id"] for r in rows] == ["sub_4", "sub_3"]

    def test_date_range(self, audit_conn):
        insert_audit_entry(audit_conn, _entry())

        assert len(query_audit_trail(audit_conn, from_date="2000-01-01")) == 1
        assert query_audit_trail(audit_conn, to_date="2000-01-01") == []

    def test_injection_attempt_is_treated_as_literal(self, audit_conn):
        insert_audit_entry(audit_conn, _entry())

        results = query_audit_trail(audit_conn, entity_id="sub_1' OR '1'='1")

        assert results == []
        assert len(query_audit_trail(audit_conn)) == 1
