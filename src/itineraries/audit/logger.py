"""Convenience class for emitting audit trail entries.

One typed method per mutation kind.  Audit delivery is a side channel: every
method catches and logs its own failure and returns ``None`` instead of
raising, so a broken audit store never fails or delays the primary write.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Any

import structlog

from itineraries.audit.models import AuditEntry, AuditEventType, EntityType
from itineraries.audit.store import insert_audit_entry
from itineraries.domain.types import ActorRole

logger = structlog.get_logger()


def current_correlation_id() -> str | None:
    """Return the request id bound to structlog contextvars, if any."""
    value = structlog.contextvars.get_contextvars().get("request_id")
    return str(value) if value is not None else None


class AuditLogger:
    """Typed, failure-tolerant API for inserting audit entries.

    Args:
        conn: An open SQLite connection to the audit database.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def record(self, entry: AuditEntry) -> int | None:
        """Insert *entry*, returning its row id or ``None`` on failure."""
        if entry.correlation_id is None:
            entry = entry.model_copy(update={"correlation_id": current_correlation_id()})
        try:
            with self._lock:
                return insert_audit_entry(self._conn, entry)
        except Exception:
            logger.warning(
                "Audit emission failed",
                audit_event=entry.event_type.value,
                entity_id=entry.entity_id,
                exc_info=True,
            )
            return None

    def log_submission_created(
        self,
        submission_id: str,
        actor_id: str,
        request_id: str,
        source: str,
        content_hash: str,
        actor_role: ActorRole = ActorRole.AGENT,
        correlation_id: str | None = None,
    ) -> int | None:
        return self.record(
            AuditEntry(
                event_type=AuditEventType.SUBMISSION_CREATED,
                entity_type=EntityType.SUBMISSION,
                entity_id=submission_id,
                actor_id=actor_id,
                actor_role=actor_role,
                field_changes={"status": {"from": None, "to": "PENDING"}},
                correlation_id=correlation_id,
                metadata={
                    "request_id": request_id,
                    "source": source,
                    "content_hash": content_hash,
                },
            )
        )

    def log_status_changed(
        self,
        submission_id: str,
        actor_id: str,
        actor_role: ActorRole,
        from_status: str,
        to_status: str,
        error_message: str | None = None,
        correlation_id: str | None = None,
    ) -> int | None:
        """Log a submission status transition as a ``status`` field change."""
        field_changes: dict[str, dict[str, Any]] = {
            "status": {"from": from_status, "to": to_status},
        }
        if error_message is not None:
            field_changes["error_message"] = {"from": None, "to": error_message}
        return self.record(
            AuditEntry(
                event_type=AuditEventType.SUBMISSION_STATUS_CHANGED,
                entity_type=EntityType.SUBMISSION,
                entity_id=submission_id,
                actor_id=actor_id,
                actor_role=actor_role,
                field_changes=field_changes,
                correlation_id=correlation_id,
            )
        )

    def log_submission_linked(
        self,
        submission_id: str,
        itinerary_id: str,
        actor_id: str,
        from_status: str,
        actor_role: ActorRole = ActorRole.SYSTEM,
        correlation_id: str | None = None,
    ) -> int | None:
        """Log the atomic link + COMPLETED change as two field changes."""
        return self.record(
            AuditEntry(
                event_type=AuditEventType.SUBMISSION_LINKED,
                entity_type=EntityType.SUBMISSION,
                entity_id=submission_id,
                actor_id=actor_id,
                actor_role=actor_role,
                field_changes={
                    "resulting_itinerary_id": {"from": None, "to": itinerary_id},
                    "status": {"from": from_status, "to": "COMPLETED"},
                },
                correlation_id=correlation_id,
            )
        )

    def log_version_created(
        self,
        itinerary_id: str,
        version_number: int,
        actor_id: str,
        actor_role: ActorRole,
        source_submission_id: str | None = None,
        correlation_id: str | None = None,
    ) -> int | None:
        metadata = {"version_number": str(version_number)}
        if source_submission_id is not None:
            metadata["source_submission_id"] = source_submission_id
        return self.record(
            AuditEntry(
                event_type=AuditEventType.VERSION_CREATED,
                entity_type=EntityType.ITINERARY,
                entity_id=itinerary_id,
                actor_id=actor_id,
                actor_role=actor_role,
                field_changes={
                    "version_number": {
                        "from": version_number - 1 if version_number > 1 else None,
                        "to": version_number,
                    }
                },
                correlation_id=correlation_id,
                metadata=metadata,
            )
        )

    def log_disclosure_changed(
        self,
        booking_id: str,
        itinerary_id: str,
        from_state: str | None,
        to_state: str,
        sequence: int,
        correlation_id: str | None = None,
    ) -> int | None:
        """Log a disclosure flip driven by a booking signal."""
        return self.record(
            AuditEntry(
                event_type=AuditEventType.DISCLOSURE_CHANGED,
                entity_type=EntityType.BOOKING,
                entity_id=booking_id,
                actor_id="system",
                actor_role=ActorRole.SYSTEM,
                field_changes={"disclosure_state": {"from": from_state, "to": to_state}},
                correlation_id=correlation_id,
                metadata={"itinerary_id": itinerary_id, "sequence": str(sequence)},
            )
        )
