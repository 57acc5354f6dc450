"""Consumer for inbound ``booking.paid`` / ``booking.cancelled`` events.

Delivery is at-least-once and unordered; the disclosure reducer makes
handling idempotent.  A signal that names no itinerary still advances the
booking's sequence watermark.  Malformed signals, and signals naming an
unknown or conflicting itinerary, are logged and dropped rather than raised
back to the transport.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from itineraries.domain.errors import DisclosureSignalUnresolvable
from itineraries.events.models import BookingSignal, DomainEvent, EventType

if TYPE_CHECKING:
    from itineraries.disclosure.service import DisclosureService
    from itineraries.disclosure.store import DisclosureChange
    from itineraries.events.bus import InMemoryEventBus

logger = structlog.get_logger()

# Accepted spellings of payload keys from upstream producers.
_PAYLOAD_ALIASES: dict[str, tuple[str, ...]] = {
    "booking_id": ("booking_id", "bookingId"),
    "itinerary_id": ("itinerary_id", "itineraryId"),
    "sequence": ("sequence", "sequenceNumber", "sequence_number"),
}


def parse_booking_signal(event: DomainEvent) -> BookingSignal:
    """Build a :class:`BookingSignal` from an event payload.

    Raises:
        ValidationError: If required fields are missing or malformed.
    """
    fields: dict[str, Any] = {}
    for name, aliases in _PAYLOAD_ALIASES.items():
        for alias in aliases:
            if alias in event.payload:
                fields[name] = event.payload[alias]
                break
    fields["correlation_id"] = event.metadata.correlation_id
    return BookingSignal.model_validate(fields)


class BookingEventConsumer:
    """Dispatch booking events to the disclosure handlers by event type."""

    def __init__(self, disclosure: DisclosureService) -> None:
        self._handlers: dict[str, Callable[[BookingSignal], DisclosureChange]] = {
            EventType.BOOKING_PAID: disclosure.on_payment_captured,
            EventType.BOOKING_CANCELLED: disclosure.on_booking_cancelled,
        }

    def subscribe(self, bus: InMemoryEventBus) -> None:
        for event_type in self._handlers:
            bus.subscribe(event_type, self.handle)

    def handle(self, event: DomainEvent) -> DisclosureChange | None:
        """Apply one booking event.

        Returns:
            The reducer outcome, or ``None`` if the event was ignored.
        """
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.info("Ignoring unsupported booking event", event_type=event.type)
            return None

        try:
            signal = parse_booking_signal(event)
        except ValidationError as exc:
            logger.warning(
                "Malformed booking event", event_type=event.type, errors=exc.errors()
            )
            return None

        try:
            return handler(signal)
        except DisclosureSignalUnresolvable as exc:
            logger.warning(
                "Unresolvable disclosure signal",
                event_type=event.type,
                booking_id=exc.booking_id,
                itinerary_id=exc.itinerary_id,
                reason=exc.reason,
            )
            return None
