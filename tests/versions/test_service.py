"""Tests for VersionService: numbering, immutability, comparison, and side effects."""

from __future__ import annotations

import sqlite3
import threading
from typing import Any

import pytest

from itineraries.audit.logger import AuditLogger
from itineraries.audit.store import query_audit_trail
from itineraries.domain.errors import VersionNotFound
from itineraries.domain.models import ItineraryItemInput
from itineraries.domain.types import ActorRole, FieldSensitivity
from itineraries.events.models import DomainEvent, EventType
from itineraries.storage.database import Database
from itineraries.versions.service import VersionService, item_id_for
from itineraries.versions.store import VersionStore


class TestCreateVersion:
    def test_first_version_is_one(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version = version_service.create_version("itin_1", sample_items, actor_id="agent_1")

        assert version.version_number == 1
        assert version.itinerary_id == "itin_1"
        assert version.created_by == "agent_1"
        assert version.created_by_role == ActorRole.AGENT
        assert len(version.items) == 3

    def test_numbers_are_sequential(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        numbers = [
            version_service.create_version("itin_1", sample_items, actor_id="a").version_number
            for _ in range(3)
        ]
        assert numbers == [1, 2, 3]

    def test_numbering_is_per_itinerary(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version_service.create_version("itin_1", sample_items, actor_id="a")
        other = version_service.create_version("itin_2", sample_items, actor_id="a")
        assert other.version_number == 1

    def test_items_get_stable_slot_ids(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        v1 = version_service.create_version("itin_1", sample_items, actor_id="a")
        v2 = version_service.create_version("itin_1", sample_items, actor_id="a")

        assert [i.id for i in v1.items] == [i.id for i in v2.items]
        assert v1.items[0].id == item_id_for("itin_1", 1, 0)
        assert all(i.itinerary_id == "itin_1" for i in v1.items)

    def test_items_are_ordered_by_slot(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version = version_service.create_version(
            "itin_1", list(reversed(sample_items)), actor_id="a"
        )
        assert [i.slot for i in version.items] == [(1, 0), (1, 1), (2, 0)]

    def test_classifications_are_stored(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version = version_service.create_version("itin_1", sample_items, actor_id="a")

        assert version.classifications["items[0].vendor.name"] == FieldSensitivity.VENDOR_IDENTITY
        assert version.classifications["items[0].agent_notes"] == FieldSensitivity.INTERNAL
        assert version.classifications["items[0].title"] == FieldSensitivity.PUBLIC

    def test_empty_items_rejected(self, version_service: VersionService) -> None:
        with pytest.raises(ValueError, match="at least one"):
            version_service.create_version("itin_1", [], actor_id="a")

    def test_duplicate_slots_rejected(self, version_service: VersionService) -> None:
        items = [
            ItineraryItemInput(type="MEAL", day_number=1, title="Lunch"),
            ItineraryItemInput(type="MEAL", day_number=1, title="Dinner"),
        ]
        with pytest.raises(ValueError, match="duplicate item position"):
            version_service.create_version("itin_1", items, actor_id="a")

    def test_integrity_hash_matches(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version = version_service.create_version("itin_1", sample_items, actor_id="a")
        assert VersionService.verify_integrity(version) is True

        tampered = version.model_copy(
            update={"items": [version.items[0].model_copy(update={"title": "Changed"})]}
        )
        assert VersionService.verify_integrity(tampered) is False


class TestConcurrentAppends:
    def test_concurrent_creates_get_distinct_numbers(
        self, sample_items: list[ItineraryItemInput], tmp_path: Any
    ) -> None:
        from itineraries.storage.schema import init_itinerary_db

        db = Database(init_itinerary_db(tmp_path / "versions.db"))
        service = VersionService(VersionStore(db))
        numbers: list[int] = []
        lock = threading.Lock()

        def append() -> None:
            version = service.create_version("itin_1", sample_items, actor_id="a")
            with lock:
                numbers.append(version.version_number)

        threads = [threading.Thread(target=append) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(numbers) == list(range(1, 9))
        db.close()


class TestReads:
    def test_get_version_and_latest(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version_service.create_version("itin_1", sample_items, actor_id="a")
        second = version_service.create_version("itin_1", sample_items[:1], actor_id="a")

        assert version_service.get_latest("itin_1").id == second.id
        assert len(version_service.get_version("itin_1", 1).items) == 3

    def test_missing_version(self, version_service: VersionService) -> None:
        with pytest.raises(VersionNotFound):
            version_service.get_version("itin_1", 1)
        with pytest.raises(VersionNotFound):
            version_service.get_latest("itin_1")

    def test_list_versions_newest_first(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version_service.create_version("itin_1", sample_items, actor_id="a")
        version_service.create_version(
            "itin_1", sample_items[:2], actor_id="b", change_reason="Dropped walk"
        )

        summaries = version_service.list_versions("itin_1")

        assert [s.version_number for s in summaries] == [2, 1]
        assert summaries[0].item_count == 2
        assert summaries[0].change_reason == "Dropped walk"

    def test_list_versions_unknown_itinerary(self, version_service: VersionService) -> None:
        with pytest.raises(VersionNotFound):
            version_service.list_versions("ghost")

    def test_stored_version_is_immutable(
        self,
        db: Database,
        version_service: VersionService,
        sample_items: list[ItineraryItemInput],
    ) -> None:
        version_service.create_version("itin_1", sample_items, actor_id="a")
        with pytest.raises(sqlite3.IntegrityError), db.transaction() as conn:
            conn.execute("UPDATE itinerary_versions SET items_json = '[]'")
        assert len(version_service.get_version("itin_1", 1).items) == 3


class TestCompareVersions:
    def test_detects_added_removed_modified(
        self, version_service: VersionService, sample_item_data: list[dict[str, Any]]
    ) -> None:
        v1_items = [ItineraryItemInput.model_validate(d) for d in sample_item_data]
        changed = dict(sample_item_data[0], title="Check in at the palace")
        extra = {"type": "MEAL", "day_number": 2, "sequence": 1, "title": "Farewell dinner"}
        v2_items = [
            ItineraryItemInput.model_validate(d)
            for d in [changed, sample_item_data[1], extra]
        ]
        version_service.create_version("itin_1", v1_items, actor_id="a")
        version_service.create_version("itin_1", v2_items, actor_id="a")

        diff = version_service.compare_versions("itin_1", 1, 2)

        assert diff.added_item_ids == [item_id_for("itin_1", 2, 1)]
        assert diff.removed_item_ids == [item_id_for("itin_1", 2, 0)]
        assert diff.modified_item_ids == [item_id_for("itin_1", 1, 0)]
        assert diff.has_changes is True

    def test_identical_versions_have_no_changes(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version_service.create_version("itin_1", sample_items, actor_id="a")
        version_service.create_version("itin_1", sample_items, actor_id="a")

        assert version_service.compare_versions("itin_1", 1, 2).has_changes is False

    def test_same_version_rejected(self, version_service: VersionService) -> None:
        with pytest.raises(ValueError):
            version_service.compare_versions("itin_1", 1, 1)

    def test_missing_version_raises(
        self, version_service: VersionService, sample_items: list[ItineraryItemInput]
    ) -> None:
        version_service.create_version("itin_1", sample_items, actor_id="a")
        with pytest.raises(VersionNotFound):
            version_service.compare_versions("itin_1", 1, 5)


class TestSideEffects:
    def test_audit_and_events(
        self,
        version_service: VersionService,
        audit_conn: sqlite3.Connection,
        published: list[DomainEvent],
        sample_items: list[ItineraryItemInput],
    ) -> None:
        version_service.create_version(
            "itin_1", sample_items, actor_id="a", source_submission_id="sub_1"
        )
        version_service.create_version("itin_1", sample_items, actor_id="a")

        entries = query_audit_trail(audit_conn, entity_id="itin_1")
        assert len(entries) == 2
        assert {e["event_type"] for e in entries} == {"itinerary.version_created"}

        assert [e.type for e in published] == [
            EventType.ITINERARY_VERSION_CREATED,
            EventType.ITINERARY_VERSION_CREATED,
            EventType.ITINERARY_UPDATED,
        ]
        assert published[0].payload["source_submission_id"] == "sub_1"
        assert published[2].payload["previous_version_number"] == 1

    def test_audit_failure_does_not_fail_create(
        self,
        version_service: VersionService,
        published: list[DomainEvent],
        sample_items: list[ItineraryItemInput],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def broken(self: AuditLogger, **kwargs: Any) -> None:
            raise ValueError("metadata rejected")

        monkeypatch.setattr(AuditLogger, "log_version_created", broken)

        version = version_service.create_version("itin_1", sample_items, actor_id="a")

        assert version_service.get_latest("itin_1").id == version.id
        assert [e.type for e in published] == [EventType.ITINERARY_VERSION_CREATED]

    def test_record_version_emits_nothing(
        self,
        version_service: VersionService,
        audit_conn: sqlite3.Connection,
        published: list[DomainEvent],
        sample_items: list[ItineraryItemInput],
    ) -> None:
        version = version_service.record_version("itin_1", sample_items, actor_id="a")

        assert version.version_number == 1
        assert query_audit_trail(audit_conn, entity_id="itin_1") == []
        assert published == []
