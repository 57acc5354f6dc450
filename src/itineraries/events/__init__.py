"""Domain events: envelope, in-process bus, and booking signal consumer."""

from itineraries.events.bus import EventPublisher, InMemoryEventBus, publish_safely
from itineraries.events.consumer import BookingEventConsumer
from itineraries.events.models import BookingSignal, DomainEvent, EventMetadata, EventType

__all__ = [
    "BookingEventConsumer",
    "BookingSignal",
    "DomainEvent",
    "EventMetadata",
    "EventPublisher",
    "EventType",
    "InMemoryEventBus",
    "publish_safely",
]
