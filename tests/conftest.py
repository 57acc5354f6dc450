"""Shared pytest fixtures for the itineraries service test suite."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from typing import Any

import pytest

from itineraries.audit.logger import AuditLogger
from itineraries.audit.store import close_audit_db, init_audit_db
from itineraries.disclosure.service import DisclosureService
from itineraries.disclosure.store import DisclosureStore
from itineraries.domain.models import (
    CreateSubmissionRequest,
    FreeTextSubmission,
    ItineraryItemInput,
    StructuredSubmission,
)
from itineraries.domain.types import ItineraryItemType
from itineraries.events.bus import InMemoryEventBus
from itineraries.events.models import DomainEvent
from itineraries.storage.database import Database
from itineraries.storage.schema import init_itinerary_db
from itineraries.submissions.service import SubmissionService
from itineraries.submissions.store import SubmissionStore
from itineraries.versions.service import VersionService
from itineraries.versions.store import VersionStore


@pytest.fixture
def db() -> Iterator[Database]:
    """A fresh in-memory primary database."""
    database = Database(init_itinerary_db(":memory:"))
    yield database
    database.close()


@pytest.fixture
def audit_conn() -> Iterator[sqlite3.Connection]:
    """A fresh in-memory audit database."""
    conn = init_audit_db(":memory:")
    yield conn
    close_audit_db(conn)


@pytest.fixture
def audit_logger(audit_conn: sqlite3.Connection) -> AuditLogger:
    return AuditLogger(audit_conn)


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def published(event_bus: InMemoryEventBus) -> list[DomainEvent]:
    """Every event published on ``event_bus``, in order."""
    events: list[DomainEvent] = []
    event_bus.subscribe("*", events.append)
    return events


@pytest.fixture
def submission_service(
    db: Database, audit_logger: AuditLogger, event_bus: InMemoryEventBus
) -> SubmissionService:
    return SubmissionService(SubmissionStore(db), audit_logger=audit_logger, publisher=event_bus)


@pytest.fixture
def version_service(
    db: Database, audit_logger: AuditLogger, event_bus: InMemoryEventBus
) -> VersionService:
    return VersionService(VersionStore(db), audit_logger=audit_logger, publisher=event_bus)


@pytest.fixture
def disclosure_service(
    db: Database, audit_logger: AuditLogger, event_bus: InMemoryEventBus
) -> DisclosureService:
    return DisclosureService(
        db, DisclosureStore(db), audit_logger=audit_logger, publisher=event_bus
    )


@pytest.fixture
def sample_item_data() -> list[dict[str, Any]]:
    """Three items in the JSON shape an agent would submit."""
    return [
        {
            "type": "ACCOMMODATION",
            "day_number": 1,
            "sequence": 0,
            "title": "Check in at Taj Lake Palace",
            "description": "Two nights at Taj Lake Palace on Lake Pichola.",
            "location": {"city": "Udaipur", "country": "India"},
            "vendor": {
                "name": "Taj Lake Palace",
                "category": "hotel",
                "star_rating": 5,
                "contact_email": "reservations@tajlakepalace.example",
                "contact_phone": "+91 294 242 8800",
                "booking_reference": "TLP-88231",
            },
            "accommodation_details": {"room_type": "Luxury Lake View", "board_basis": "B&B"},
            "agent_notes": "Net rate includes 12% commission",
        },
        {
            "type": "TRANSPORT",
            "day_number": 1,
            "sequence": 1,
            "title": "Evening flight to Jaipur",
            "vendor": {"name": "IndiGo", "category": "airline"},
            "transport_details": {
                "mode": "FLIGHT",
                "carrier": "IndiGo",
                "flight_number": "6E 2134",
                "seat_class": "Economy",
            },
        },
        {
            "type": "ACTIVITY",
            "day_number": 2,
            "sequence": 0,
            "title": "Old city heritage walk",
            "location": {"city": "Jaipur", "country": "India"},
            "vendor": {"name": "Pink City Walks"},
            "activity_details": {"duration_minutes": 180, "meeting_point": "Hawa Mahal gate"},
            "traveler_notes": "Wear comfortable shoes",
        },
    ]


@pytest.fixture
def sample_items(sample_item_data: list[dict[str, Any]]) -> list[ItineraryItemInput]:
    return [ItineraryItemInput.model_validate(d) for d in sample_item_data]


@pytest.fixture
def hotel_item() -> ItineraryItemInput:
    return ItineraryItemInput(
        type=ItineraryItemType.ACCOMMODATION,
        day_number=1,
        title="Stay at Oberoi Udaivilas",
        vendor={"name": "Oberoi Udaivilas", "category": "resort", "star_rating": 5},
    )


@pytest.fixture
def structured_request(sample_item_data: list[dict[str, Any]]) -> CreateSubmissionRequest:
    return CreateSubmissionRequest(
        request_id="req_001",
        agent_id="agent_001",
        traveler_id="trav_001",
        content=StructuredSubmission(
            data={"title": "Rajasthan in style", "items": sample_item_data}
        ),
    )


@pytest.fixture
def free_text_request() -> CreateSubmissionRequest:
    return CreateSubmissionRequest(
        request_id="req_001",
        agent_id="agent_002",
        traveler_id="trav_001",
        content=FreeTextSubmission(content="Day 1: Udaipur palace stay. Day 2: Jaipur walk."),
    )
