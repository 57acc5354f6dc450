"""Append-only SQLite store for itinerary versions.

Version numbers are assigned inside the INSERT itself
(``COALESCE(MAX(version_number), 0) + 1``) under ``BEGIN IMMEDIATE``, so two
appenders for the same itinerary can never compute the same number; the
``UNIQUE (itinerary_id, version_number)`` constraint backs that up.  Rows
cannot be updated or deleted (enforced by triggers).
"""

from __future__ import annotations

import json
import sqlite3

from itineraries.domain.models import ItineraryItem, ItineraryVersion, VersionSummary
from itineraries.storage.database import Database


def row_to_version(row: sqlite3.Row) -> ItineraryVersion:
    return ItineraryVersion(
        id=row["id"],
        itinerary_id=row["itinerary_id"],
        version_number=row["version_number"],
        items=[ItineraryItem.model_validate(i) for i in json.loads(row["items_json"])],
        source_submission_id=row["source_submission_id"],
        created_by=row["created_by"],
        created_by_role=row["created_by_role"],
        change_reason=row["change_reason"],
        classifications=json.loads(row["classifications_json"]),
        snapshot_hash=row["snapshot_hash"],
        created_at=row["created_at"],
    )


def fetch_version(
    conn: sqlite3.Connection, itinerary_id: str, version_number: int | None = None
) -> ItineraryVersion | None:
    """Read one version (the latest when *version_number* is ``None``) on *conn*.

    Exposed at module level so callers can combine it with other reads inside
    a single :meth:`Database.snapshot`.
    """
    if version_number is None:
        row = conn.execute(
            """
            SELECT * FROM itinerary_versions WHERE itinerary_id = ?
            ORDER BY version_number DESC LIMIT 1
            """,
            (itinerary_id,),
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT * FROM itinerary_versions WHERE itinerary_id = ? AND version_number = ?",
            (itinerary_id, version_number),
        ).fetchone()
    return row_to_version(row) if row is not None else None


class VersionStore:
    """Persist and retrieve itinerary versions."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def append(
        self,
        *,
        version_id: str,
        itinerary_id: str,
        items_json: str,
        classifications_json: str,
        snapshot_hash: str,
        source_submission_id: str | None,
        created_by: str,
        created_by_role: str,
        change_reason: str | None,
        created_at: str,
    ) -> int:
        """Append a version and return the number assigned to it."""
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO itinerary_versions (
                    id, itinerary_id, version_number, items_json,
                    classifications_json, snapshot_hash, source_submission_id,
                    created_by, created_by_role, change_reason, created_at
                )
                SELECT ?, ?, COALESCE(MAX(version_number), 0) + 1, ?, ?, ?, ?, ?, ?, ?, ?
                FROM itinerary_versions WHERE itinerary_id = ?
                """,
                (
                    version_id,
                    itinerary_id,
                    items_json,
                    classifications_json,
                    snapshot_hash,
                    source_submission_id,
                    created_by,
                    created_by_role,
                    change_reason,
                    created_at,
                    itinerary_id,
                ),
            )
            row = conn.execute(
                "SELECT version_number FROM itinerary_versions WHERE id = ?", (version_id,)
            ).fetchone()
        return int(row["version_number"])

    def get(self, itinerary_id: str, version_number: int | None = None) -> ItineraryVersion | None:
        with self._db.snapshot() as conn:
            return fetch_version(conn, itinerary_id, version_number)

    def exists(self, itinerary_id: str) -> bool:
        row = self._db.fetch_one(
            "SELECT 1 FROM itinerary_versions WHERE itinerary_id = ? LIMIT 1", (itinerary_id,)
        )
        return row is not None

    def list_summaries(self, itinerary_id: str) -> list[VersionSummary]:
        """Return a summary of every version, newest first."""
        rows = self._db.fetch_all(
            """
            SELECT version_number, items_json, source_submission_id, created_by,
                   change_reason, created_at
            FROM itinerary_versions WHERE itinerary_id = ?
            ORDER BY version_number DESC
            """,
            (itinerary_id,),
        )
        return [
            VersionSummary(
                version_number=row["version_number"],
                item_count=len(json.loads(row["items_json"])),
                source_submission_id=row["source_submission_id"],
                created_by=row["created_by"],
                change_reason=row["change_reason"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
