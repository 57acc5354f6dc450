"""Domain event envelope and the event types produced and consumed by the service."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SERVICE_NAME = "itineraries-service"


class EventType(StrEnum):
    """Outbound and inbound domain event types."""

    # Outbound
    ITINERARY_SUBMITTED = "itinerary.submitted"
    ITINERARY_UPDATED = "itinerary.updated"
    ITINERARY_VERSION_CREATED = "itinerary.version.created"
    ITINERARY_DISCLOSED = "itinerary.disclosed"
    # Inbound
    BOOKING_PAID = "booking.paid"
    BOOKING_CANCELLED = "booking.cancelled"


class EventMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    correlation_id: str | None = None
    source: str = SERVICE_NAME


class DomainEvent(BaseModel):
    """Envelope shared by every event crossing the service boundary."""

    model_config = ConfigDict(frozen=True)

    type: str
    payload: dict[str, Any]
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    @classmethod
    def create(
        cls,
        event_type: EventType,
        payload: dict[str, Any],
        correlation_id: str | None = None,
    ) -> DomainEvent:
        """Build an event stamped with the current time and this service as source."""
        return cls(
            type=event_type.value,
            payload=payload,
            metadata=EventMetadata(correlation_id=correlation_id),
        )


class BookingSignal(BaseModel):
    """Payload of an inbound ``booking.paid`` / ``booking.cancelled`` event.

    ``sequence`` is the booking's own monotonically increasing event counter;
    it, not receipt time, orders signals for the same booking.
    """

    model_config = ConfigDict(frozen=True)

    booking_id: str
    itinerary_id: str | None = None
    sequence: int = Field(ge=0)
    correlation_id: str | None = None
