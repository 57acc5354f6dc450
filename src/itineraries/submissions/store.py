"""SQLite-backed submission store.

Accepts a shared :class:`Database`, uses parameterized queries exclusively,
and leans on the schema's constraints for the guarantees that must survive
concurrent writers: the UNIQUE content hash closes the dedup race, status
writes are compare-and-set on ``(status, row_version)``, and linking is a
single conditional UPDATE.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from pydantic import TypeAdapter

from itineraries.domain.errors import DuplicateSubmission
from itineraries.domain.models import Submission, SubmissionContent
from itineraries.domain.types import SubmissionStatus
from itineraries.storage.database import Database

_CONTENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(SubmissionContent)


def row_to_submission(row: sqlite3.Row) -> Submission:
    """Rebuild a :class:`Submission` from a ``submissions`` row."""
    return Submission(
        id=row["id"],
        request_id=row["request_id"],
        agent_id=row["agent_id"],
        traveler_id=row["traveler_id"],
        source=row["source"],
        content=_CONTENT_ADAPTER.validate_json(row["original_content"]),
        status=row["status"],
        content_hash=row["content_hash"],
        original_content=row["original_content"],
        resulting_itinerary_id=row["resulting_itinerary_id"],
        error_message=row["error_message"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        processed_at=row["processed_at"],
        row_version=row["row_version"],
    )


class SubmissionStore:
    """Persist and retrieve submissions."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def insert(self, submission: Submission) -> None:
        """Insert a new submission.

        Raises:
            DuplicateSubmission: If another submission already holds the
                content hash, including one committed by a concurrent writer
                between the caller's lookup and this insert.
        """
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO submissions (
                        id, request_id, agent_id, traveler_id, source,
                        original_content, content_hash, status,
                        resulting_itinerary_id, error_message, row_version,
                        created_at, updated_at, processed_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, NULL, NULL, 1, ?, ?, NULL)
                    """,
                    (
                        submission.id,
                        submission.request_id,
                        submission.agent_id,
                        submission.traveler_id,
                        submission.source.value,
                        submission.original_content,
                        submission.content_hash,
                        submission.status.value,
                        submission.created_at.isoformat(),
                        submission.updated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if "content_hash" not in str(exc):
                raise
            existing = self.get_by_hash(submission.content_hash)
            if existing is None:
                raise
            raise DuplicateSubmission(existing.id, submission.content_hash) from None

    def compare_and_set_status(
        self,
        submission_id: str,
        expected_status: SubmissionStatus,
        expected_row_version: int,
        new_status: SubmissionStatus,
        now: str,
        *,
        error_message: str | None = None,
        stamp_processed: bool = False,
    ) -> bool:
        """Move a submission to *new_status* only if it is still as the caller read it.

        Returns:
            True if exactly one row changed; False if the status or row
            version moved underneath the caller.
        """
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE submissions
                SET status = ?,
                    error_message = COALESCE(?, error_message),
                    processed_at = CASE WHEN ? THEN ? ELSE processed_at END,
                    updated_at = ?,
                    row_version = row_version + 1
                WHERE id = ? AND status = ? AND row_version = ?
                """,
                (
                    new_status.value,
                    error_message,
                    int(stamp_processed),
                    now,
                    now,
                    submission_id,
                    expected_status.value,
                    expected_row_version,
                ),
            )
            return cursor.rowcount == 1

    def link(self, submission_id: str, itinerary_id: str, now: str) -> bool:
        """Set the itinerary link and COMPLETED status in one statement.

        Only a PARSED, not-yet-linked submission is changed, so no reader can
        ever see one of the two fields without the other.

        Returns:
            True if the submission was linked.
        """
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE submissions
                SET resulting_itinerary_id = ?,
                    status = 'COMPLETED',
                    processed_at = ?,
                    updated_at = ?,
                    row_version = row_version + 1
                WHERE id = ? AND status = 'PARSED' AND resulting_itinerary_id IS NULL
                """,
                (itinerary_id, now, now, submission_id),
            )
            return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get(self, submission_id: str) -> Submission | None:
        row = self._db.fetch_one("SELECT * FROM submissions WHERE id = ?", (submission_id,))
        return row_to_submission(row) if row is not None else None

    def get_by_hash(self, content_hash: str) -> Submission | None:
        row = self._db.fetch_one(
            "SELECT * FROM submissions WHERE content_hash = ?", (content_hash,)
        )
        return row_to_submission(row) if row is not None else None

    def search(
        self,
        *,
        request_id: str | None = None,
        agent_id: str | None = None,
        status: SubmissionStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Submission], int]:
        """List submissions matching the filters, newest first.

        Returns:
            A ``(page, total)`` tuple where *total* counts every match.
        """
        conditions: list[str] = []
        params: list[Any] = []
        if request_id is not None:
            conditions.append("request_id = ?")
            params.append(request_id)
        if agent_id is not None:
            conditions.append("agent_id = ?")
            params.append(agent_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(status.value)

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        with self._db.snapshot() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM submissions {where_clause}", params
            ).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM submissions {where_clause} "
                "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()

        return [row_to_submission(row) for row in rows], int(total)
