"""Append-only SQLite storage for audit entries.

The audit trail lives in its own database file so a slow or broken audit
store never holds locks on the primary database.  Every query is
parameterized; filter values are never interpolated into SQL.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from itineraries.audit.models import AuditEntry

_SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    event_type TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    actor_id TEXT NOT NULL,
    actor_role TEXT NOT NULL,
    field_changes TEXT,
    correlation_id TEXT,
    metadata TEXT
);
CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_log (entity_type, entity_id);
CREATE INDEX IF NOT EXISTS idx_audit_actor ON audit_log (actor_id);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_correlation ON audit_log (correlation_id);
"""

# Filter keyword -> SQL predicate.
_FILTERS: dict[str, str] = {
    "entity_type": "entity_type = ?",
    "entity_id": "entity_id = ?",
    "actor_id": "actor_id = ?",
    "event_type": "event_type = ?",
    "correlation_id": "correlation_id = ?",
    "from_date": "timestamp >= ?",
    "to_date": "timestamp <= ?",
}

_JSON_COLUMNS = ("field_changes", "metadata")


def init_audit_db(db_path: Path | str) -> sqlite3.Connection:
    """Open (creating if needed) the audit database in WAL mode.

    Args:
        db_path: Database file path, or ``":memory:"``.

    Returns:
        A connection usable from any thread; callers serialize writes.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.executescript(_SCHEMA)
    conn.commit()
    return conn


def insert_audit_entry(conn: sqlite3.Connection, entry: AuditEntry) -> int:
    """Write *entry* and return its row id.

    JSON columns are stored as text; the timestamp is second-resolution UTC
    so it sorts and compares lexically.
    """
    row = entry.model_dump(mode="json")
    for column in _JSON_COLUMNS:
        if row[column] is not None:
            row[column] = json.dumps(row[column], default=str)
    row["timestamp"] = datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

    columns = list(row)
    cursor = conn.execute(
        f"INSERT INTO audit_log ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)})",
        [row[c] for c in columns],
    )
    conn.commit()
    return cursor.lastrowid or 0


def _decode(row: sqlite3.Row) -> dict[str, Any]:
    result = dict(row)
    for column in _JSON_COLUMNS:
        if result.get(column) is not None:
            result[column] = json.loads(result[column])
    return result


def query_audit_trail(
    conn: sqlite3.Connection,
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    actor_id: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    event_type: str | None = None,
    correlation_id: str | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Return matching entries, newest first.

    Every filter is optional and exact-match, except ``from_date`` and
    ``to_date`` which bound the ISO 8601 timestamp inclusively.
    ``field_changes`` and ``metadata`` come back decoded.
    """
    values = {
        "entity_type": entity_type,
        "entity_id": entity_id,
        "actor_id": actor_id,
        "event_type": event_type,
        "correlation_id": correlation_id,
        "from_date": from_date,
        "to_date": to_date,
    }
    active = [
        (clause, values[name]) for name, clause in _FILTERS.items() if values[name] is not None
    ]

    sql = "SELECT * FROM audit_log"
    if active:
        sql += " WHERE " + " AND ".join(clause for clause, _ in active)
    sql += " ORDER BY timestamp DESC, id DESC LIMIT ?"

    cursor = conn.execute(sql, [value for _, value in active] + [limit])
    cursor.row_factory = sqlite3.Row
    return [_decode(row) for row in cursor.fetchall()]


def close_audit_db(conn: sqlite3.Connection) -> None:
    conn.close()
