"""SQLite schema for submissions, itinerary versions, and disclosure state.

Provides the DDL function to create all primary tables following the same
pattern as ``init_audit_db()`` in ``itineraries.audit.store``.  Immutability
rules that must hold for audit and legal reasons are enforced by triggers in
the database itself rather than by application code alone.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

_TABLES = """
CREATE TABLE IF NOT EXISTS submissions (
    id TEXT PRIMARY KEY,
    request_id TEXT NOT NULL,
    agent_id TEXT NOT NULL,
    traveler_id TEXT NOT NULL,
    source TEXT NOT NULL,
    original_content TEXT NOT NULL,
    content_hash TEXT NOT NULL UNIQUE,
    status TEXT NOT NULL,
    resulting_itinerary_id TEXT,
    error_message TEXT,
    row_version INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    processed_at TEXT,
    CHECK ((status = 'COMPLETED') = (resulting_itinerary_id IS NOT NULL)),
    CHECK (status != 'FAILED' OR error_message IS NOT NULL)
);

CREATE INDEX IF NOT EXISTS idx_submissions_request ON submissions (request_id);
CREATE INDEX IF NOT EXISTS idx_submissions_agent ON submissions (agent_id);

CREATE TABLE IF NOT EXISTS itinerary_versions (
    id TEXT PRIMARY KEY,
    itinerary_id TEXT NOT NULL,
    version_number INTEGER NOT NULL,
    items_json TEXT NOT NULL,
    classifications_json TEXT NOT NULL,
    snapshot_hash TEXT NOT NULL,
    source_submission_id TEXT,
    created_by TEXT NOT NULL,
    created_by_role TEXT NOT NULL,
    change_reason TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (itinerary_id, version_number)
);

CREATE TABLE IF NOT EXISTS disclosure_state (
    booking_id TEXT PRIMARY KEY,
    itinerary_id TEXT,
    state TEXT NOT NULL,
    last_sequence INTEGER NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_disclosure_itinerary ON disclosure_state (itinerary_id);
"""

_TRIGGERS = """
CREATE TRIGGER IF NOT EXISTS submissions_content_immutable
BEFORE UPDATE OF original_content, content_hash, source ON submissions
WHEN NEW.original_content IS NOT OLD.original_content
    OR NEW.content_hash IS NOT OLD.content_hash
    OR NEW.source IS NOT OLD.source
BEGIN
    SELECT RAISE(ABORT, 'submission content is immutable');
END;

CREATE TRIGGER IF NOT EXISTS submissions_link_set_once
BEFORE UPDATE OF resulting_itinerary_id ON submissions
WHEN OLD.resulting_itinerary_id IS NOT NULL
    AND NEW.resulting_itinerary_id IS NOT OLD.resulting_itinerary_id
BEGIN
    SELECT RAISE(ABORT, 'submission itinerary link is already set');
END;

CREATE TRIGGER IF NOT EXISTS submissions_terminal_status
BEFORE UPDATE OF status ON submissions
WHEN OLD.status IN ('FAILED', 'COMPLETED') AND NEW.status IS NOT OLD.status
BEGIN
    SELECT RAISE(ABORT, 'submission is in a terminal state');
END;

CREATE TRIGGER IF NOT EXISTS itinerary_versions_no_update
BEFORE UPDATE ON itinerary_versions
BEGIN
    SELECT RAISE(ABORT, 'itinerary versions are append-only');
END;

CREATE TRIGGER IF NOT EXISTS itinerary_versions_no_delete
BEFORE DELETE ON itinerary_versions
BEGIN
    SELECT RAISE(ABORT, 'itinerary versions are append-only');
END;
"""


def connect(db_path: Path | str) -> sqlite3.Connection:
    """Open a connection configured for explicit transaction control.

    The connection runs in autocommit mode (``isolation_level=None``) so the
    stores issue ``BEGIN IMMEDIATE`` / ``COMMIT`` themselves, and may be used
    from worker threads because every access goes through
    :class:`itineraries.storage.database.Database`'s lock.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        An open sqlite3.Connection with WAL mode enabled.
    """
    conn = sqlite3.connect(str(db_path), isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


def init_itinerary_db(db_path: Path | str) -> sqlite3.Connection:
    """Create and initialize the primary database.

    Creates the ``submissions``, ``itinerary_versions`` and
    ``disclosure_state`` tables, their indexes, and the immutability triggers.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        An open, initialized sqlite3.Connection.
    """
    conn = connect(db_path)
    conn.executescript(_TABLES)
    conn.executescript(_TRIGGERS)
    return conn
