"""Tests for the booking event consumer."""

from __future__ import annotations

import pytest

from itineraries.disclosure.service import DisclosureService
from itineraries.domain.models import ItineraryItemInput
from itineraries.domain.types import DisclosureState
from itineraries.events.bus import InMemoryEventBus
from itineraries.events.consumer import BookingEventConsumer, parse_booking_signal
from itineraries.events.models import DomainEvent, EventType
from itineraries.versions.service import VersionService


@pytest.fixture
def consumer(
    disclosure_service: DisclosureService,
    version_service: VersionService,
    hotel_item: ItineraryItemInput,
) -> BookingEventConsumer:
    version_service.create_version("itin_1", [hotel_item], actor_id="agent_1")
    return BookingEventConsumer(disclosure_service)


def _event(event_type: EventType, **payload: object) -> DomainEvent:
    return DomainEvent.create(event_type, dict(payload), correlation_id="corr-9")


class TestParseBookingSignal:
    def test_snake_case_payload(self) -> None:
        signal = parse_booking_signal(
            _event(EventType.BOOKING_PAID, booking_id="bk_1", itinerary_id="it", sequence=2)
        )
        assert (signal.booking_id, signal.itinerary_id, signal.sequence) == ("bk_1", "it", 2)
        assert signal.correlation_id == "corr-9"

    def test_camel_case_payload(self) -> None:
        signal = parse_booking_signal(
            _event(EventType.BOOKING_PAID, bookingId="bk_1", itineraryId="it", sequenceNumber=7)
        )
        assert (signal.booking_id, signal.itinerary_id, signal.sequence) == ("bk_1", "it", 7)


class TestBookingEventConsumer:
    def test_paid_then_cancelled(
        self, consumer: BookingEventConsumer, disclosure_service: DisclosureService
    ) -> None:
        paid = consumer.handle(
            _event(EventType.BOOKING_PAID, bookingId="bk_1", itineraryId="itin_1", sequence=1)
        )
        assert paid is not None and paid.state == DisclosureState.REVEALED

        consumer.handle(_event(EventType.BOOKING_CANCELLED, bookingId="bk_1", sequence=2))

        assert disclosure_service.get_state("bk_1") == DisclosureState.OBFUSCATED

    def test_unsupported_event_is_ignored(self, consumer: BookingEventConsumer) -> None:
        assert consumer.handle(_event(EventType.ITINERARY_UPDATED, bookingId="bk_1")) is None

    def test_malformed_payload_is_dropped(self, consumer: BookingEventConsumer) -> None:
        assert consumer.handle(_event(EventType.BOOKING_PAID, itineraryId="itin_1")) is None

    def test_unresolvable_signal_is_dropped(
        self, consumer: BookingEventConsumer, disclosure_service: DisclosureService
    ) -> None:
        result = consumer.handle(
            _event(EventType.BOOKING_PAID, bookingId="bk_1", itineraryId="itin_ghost", sequence=1)
        )

        assert result is None
        assert disclosure_service.get_state("bk_1") == DisclosureState.OBFUSCATED

    def test_cancel_without_itinerary_before_payment(
        self, consumer: BookingEventConsumer, disclosure_service: DisclosureService
    ) -> None:
        cancelled = consumer.handle(
            _event(EventType.BOOKING_CANCELLED, bookingId="bk_1", sequence=2)
        )
        assert cancelled is not None and cancelled.bound is False

        consumer.handle(
            _event(EventType.BOOKING_PAID, bookingId="bk_1", itineraryId="itin_1", sequence=1)
        )

        assert disclosure_service.get_state("bk_1") == DisclosureState.OBFUSCATED
        view = disclosure_service.render_itinerary_for_traveler("itin_1", booking_id="bk_1")
        assert view.items[0]["vendor"]["name"] == "5-Star Resort"

    def test_subscribe_wires_bus(
        self,
        consumer: BookingEventConsumer,
        event_bus: InMemoryEventBus,
        disclosure_service: DisclosureService,
    ) -> None:
        consumer.subscribe(event_bus)

        event_bus.publish(
            _event(EventType.BOOKING_PAID, bookingId="bk_1", itineraryId="itin_1", sequence=1)
        )

        assert disclosure_service.get_state("bk_1") == DisclosureState.REVEALED
