"""VersionService: append-only itinerary history.

Creating a version prepares everything (item ids, write-time field
classifications, snapshot hash) before touching the database, so only the
version-number assignment is serialized.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from itineraries.audit.logger import AuditLogger
from itineraries.disclosure.classification import classify_items, dump_items
from itineraries.domain.errors import VersionNotFound
from itineraries.domain.models import (
    ItineraryItem,
    ItineraryItemInput,
    ItineraryVersion,
    VersionComparison,
    VersionSummary,
    ensure_unique_slots,
)
from itineraries.domain.types import ActorRole
from itineraries.events.bus import EventPublisher, publish_safely
from itineraries.events.models import DomainEvent, EventType
from itineraries.observability.metrics import VERSIONS_CREATED
from itineraries.resilience.side_effects import best_effort
from itineraries.versions.store import VersionStore

logger = structlog.get_logger()

# Namespace for item ids: the same (itinerary, day, sequence) slot keeps its
# id across versions so versions can be compared item by item.
ITEM_ID_NAMESPACE = uuid.UUID("3f6d1c9e-2b7a-4e85-9c0d-7a1e5b2f8c44")


def item_id_for(itinerary_id: str, day_number: int, sequence: int) -> str:
    return str(uuid.uuid5(ITEM_ID_NAMESPACE, f"{itinerary_id}/{day_number}/{sequence}"))


def compute_snapshot_hash(items: Sequence[ItineraryItem]) -> str:
    """SHA-256 over the exact stored item content."""
    payload = json.dumps(dump_items(items), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _comparable(item: ItineraryItem) -> dict[str, object]:
    return item.model_dump(mode="json", exclude={"itinerary_id"})


class VersionService:
    """Create and read itinerary versions.

    Raw reads return full vendor detail and are for agent, admin, and
    internal callers only.  Traveler reads go through
    :class:`itineraries.disclosure.service.DisclosureService`.
    """

    def __init__(
        self,
        store: VersionStore,
        audit_logger: AuditLogger | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self._store = store
        self._audit = audit_logger
        self._publisher = publisher

    def create_version(
        self,
        itinerary_id: str,
        items: Sequence[ItineraryItemInput],
        actor_id: str,
        actor_role: ActorRole = ActorRole.AGENT,
        source_submission_id: str | None = None,
        change_reason: str | None = None,
        correlation_id: str | None = None,
    ) -> ItineraryVersion:
        """Append a new version numbered one past the current maximum.

        Args:
            itinerary_id: Itinerary to append to (created implicitly by the
                first version).
            items: The complete item list for the new version.
            actor_id: Acting user or service.
            actor_role: Role of the actor.
            source_submission_id: Submission the content came from, if any.
            change_reason: Free-text reason shown in version history.
            correlation_id: Request correlation id for side channels.

        Returns:
            The stored version.

        Raises:
            ValueError: If *items* is empty or two items share a slot.
        """
        version = self.record_version(
            itinerary_id,
            items,
            actor_id,
            actor_role=actor_role,
            source_submission_id=source_submission_id,
            change_reason=change_reason,
        )
        self.announce_version(version, actor_id, actor_role, correlation_id)
        return version

    def record_version(
        self,
        itinerary_id: str,
        items: Sequence[ItineraryItemInput],
        actor_id: str,
        actor_role: ActorRole = ActorRole.AGENT,
        source_submission_id: str | None = None,
        change_reason: str | None = None,
    ) -> ItineraryVersion:
        """Append the version without emitting side effects.

        Joins an enclosing ``Database.transaction()`` when one is open; the
        caller then runs :meth:`announce_version` after it commits.

        Raises:
            ValueError: If *items* is empty or two items share a slot.
        """
        if not items:
            raise ValueError("a version requires at least one itinerary item")
        ensure_unique_slots(list(items))

        stored_items = [
            ItineraryItem.model_validate(
                {
                    **item.model_dump(),
                    "id": item_id_for(itinerary_id, item.day_number, item.sequence),
                    "itinerary_id": itinerary_id,
                }
            )
            for item in sorted(items, key=lambda i: i.slot)
        ]
        classifications = classify_items(stored_items)

        version_number = self._store.append(
            version_id=str(uuid.uuid4()),
            itinerary_id=itinerary_id,
            items_json=json.dumps(dump_items(stored_items)),
            classifications_json=json.dumps({k: v.value for k, v in classifications.items()}),
            snapshot_hash=compute_snapshot_hash(stored_items),
            source_submission_id=source_submission_id,
            created_by=actor_id,
            created_by_role=ActorRole(actor_role).value,
            change_reason=change_reason,
            created_at=datetime.now(tz=UTC).isoformat(),
        )
        return self.get_version(itinerary_id, version_number)

    def announce_version(
        self,
        version: ItineraryVersion,
        actor_id: str,
        actor_role: ActorRole = ActorRole.AGENT,
        correlation_id: str | None = None,
    ) -> None:
        """Count, log, audit, and publish a version that has been committed."""
        VERSIONS_CREATED.inc()
        logger.info(
            "Itinerary version created",
            itinerary_id=version.itinerary_id,
            version_number=version.version_number,
            item_count=len(version.items),
        )
        if self._audit is not None:
            best_effort(
                "audit.version_created",
                self._audit.log_version_created,
                itinerary_id=version.itinerary_id,
                version_number=version.version_number,
                actor_id=actor_id,
                actor_role=ActorRole(actor_role),
                source_submission_id=version.source_submission_id,
                correlation_id=correlation_id,
            )

        payload = {
            "itinerary_id": version.itinerary_id,
            "version_id": version.id,
            "version_number": version.version_number,
            "source_submission_id": version.source_submission_id,
            "item_count": len(version.items),
        }
        publish_safely(
            self._publisher,
            DomainEvent.create(EventType.ITINERARY_VERSION_CREATED, payload, correlation_id),
        )
        if version.version_number > 1:
            publish_safely(
                self._publisher,
                DomainEvent.create(
                    EventType.ITINERARY_UPDATED,
                    {**payload, "previous_version_number": version.version_number - 1},
                    correlation_id,
                ),
            )

    # ------------------------------------------------------------------
    # Raw reads (agent / admin / internal)
    # ------------------------------------------------------------------

    def get_version(self, itinerary_id: str, version_number: int) -> ItineraryVersion:
        version = self._store.get(itinerary_id, version_number)
        if version is None:
            raise VersionNotFound(itinerary_id, version_number)
        return version

    def get_latest(self, itinerary_id: str) -> ItineraryVersion:
        version = self._store.get(itinerary_id)
        if version is None:
            raise VersionNotFound(itinerary_id)
        return version

    def list_versions(self, itinerary_id: str) -> list[VersionSummary]:
        """Return the version history of an itinerary, newest first.

        Raises:
            VersionNotFound: If the itinerary has no versions.
        """
        summaries = self._store.list_summaries(itinerary_id)
        if not summaries:
            raise VersionNotFound(itinerary_id)
        return summaries

    def compare_versions(
        self, itinerary_id: str, from_version: int, to_version: int
    ) -> VersionComparison:
        """Diff two versions by item id.

        Raises:
            ValueError: If the two version numbers are equal.
            VersionNotFound: If either version does not exist.
        """
        if from_version == to_version:
            raise ValueError("cannot compare a version with itself")
        before = self.get_version(itinerary_id, from_version)
        after = self.get_version(itinerary_id, to_version)
        old = {item.id: _comparable(item) for item in before.items}
        new = {item.id: _comparable(item) for item in after.items}

        return VersionComparison(
            itinerary_id=itinerary_id,
            from_version=from_version,
            to_version=to_version,
            added_item_ids=sorted(new.keys() - old.keys()),
            removed_item_ids=sorted(old.keys() - new.keys()),
            modified_item_ids=sorted(k for k in new.keys() & old.keys() if new[k] != old[k]),
        )

    @staticmethod
    def verify_integrity(version: ItineraryVersion) -> bool:
        """Return True if *version*'s items still match its snapshot hash."""
        return compute_snapshot_hash(version.items) == version.snapshot_hash
