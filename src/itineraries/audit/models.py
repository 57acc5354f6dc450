"""Audit trail models: one entry per create, status change, link, version, or disclosure flip."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from itineraries.domain.types import ActorRole


class AuditEventType(StrEnum):
    """Types of mutations tracked in the audit trail."""

    SUBMISSION_CREATED = "submission.created"
    SUBMISSION_STATUS_CHANGED = "submission.status_changed"
    SUBMISSION_LINKED = "submission.linked_to_itinerary"
    VERSION_CREATED = "itinerary.version_created"
    DISCLOSURE_CHANGED = "itinerary.disclosure_changed"


class EntityType(StrEnum):
    SUBMISSION = "submission"
    ITINERARY = "itinerary"
    BOOKING = "booking"


class AuditEntry(BaseModel):
    """A single audit trail entry.

    ``field_changes`` maps a field name to ``{"from": ..., "to": ...}``.
    """

    event_type: AuditEventType
    entity_type: EntityType
    entity_id: str
    actor_id: str
    actor_role: ActorRole
    field_changes: dict[str, dict[str, Any]] | None = None
    correlation_id: str | None = None
    metadata: dict[str, str] | None = None
