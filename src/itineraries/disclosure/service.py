"""DisclosureService: booking-signal handlers and state-gated traveler reads.

Traveler reads load the version and the booking's disclosure state inside
one read transaction and render against that single snapshot, so a response
can never mix content from one disclosure state with a gate from another.
"""

from __future__ import annotations

import structlog

from itineraries.audit.logger import AuditLogger
from itineraries.disclosure.engine import render_for_traveler
from itineraries.disclosure.store import DisclosureChange, DisclosureStore, fetch_state
from itineraries.domain.errors import VersionNotFound
from itineraries.domain.models import ItineraryVersion, TravelerView
from itineraries.domain.types import DisclosureState
from itineraries.events.bus import EventPublisher, publish_safely
from itineraries.events.models import BookingSignal, DomainEvent, EventType
from itineraries.observability.metrics import DISCLOSURE_CHANGES
from itineraries.resilience.side_effects import best_effort
from itineraries.storage.database import Database
from itineraries.versions.store import fetch_version

logger = structlog.get_logger()


class DisclosureService:
    """Owns per-booking disclosure state and every traveler-facing read.

    Args:
        db: The shared primary database.
        store: Disclosure state persistence.
        audit_logger: Audit collaborator (``None`` disables auditing).
        publisher: Domain event publisher (``None`` disables events).
    """

    def __init__(
        self,
        db: Database,
        store: DisclosureStore,
        audit_logger: AuditLogger | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self._db = db
        self._store = store
        self._audit = audit_logger
        self._publisher = publisher

    # ------------------------------------------------------------------
    # Signal handlers
    # ------------------------------------------------------------------

    def on_payment_captured(self, signal: BookingSignal) -> DisclosureChange:
        """Reveal vendor identity for the booking.  Idempotent.

        Raises:
            DisclosureSignalUnresolvable: If the signal cannot be matched.
        """
        return self._apply(signal, DisclosureState.REVEALED)

    def on_booking_cancelled(self, signal: BookingSignal) -> DisclosureChange:
        """Mask vendor identity for the booking again.  Idempotent.

        Raises:
            DisclosureSignalUnresolvable: If the signal cannot be matched.
        """
        return self._apply(signal, DisclosureState.OBFUSCATED)

    def _apply(self, signal: BookingSignal, target: DisclosureState) -> DisclosureChange:
        change = self._store.apply(signal.booking_id, signal.itinerary_id, target, signal.sequence)

        if not change.applied:
            logger.info(
                "Ignored stale or duplicate disclosure signal",
                booking_id=signal.booking_id,
                sequence=signal.sequence,
                target_state=target.value,
            )
            return change

        if not change.bound:
            # Watermark only; the traveler keeps seeing OBFUSCATED until a
            # later signal names the itinerary.
            logger.warning(
                "Disclosure signal recorded without itinerary",
                booking_id=change.booking_id,
                sequence=change.sequence,
                target_state=target.value,
            )
            return change

        logger.info(
            "Disclosure signal applied",
            booking_id=change.booking_id,
            itinerary_id=change.itinerary_id,
            sequence=change.sequence,
            state=change.state.value,
            changed=change.changed,
        )
        if change.changed:
            self._after_change(change, signal.correlation_id)
        return change

    def _after_change(self, change: DisclosureChange, correlation_id: str | None) -> None:
        DISCLOSURE_CHANGES.labels(state=change.state.value).inc()
        if self._audit is not None:
            best_effort(
                "audit.disclosure_changed",
                self._audit.log_disclosure_changed,
                booking_id=change.booking_id,
                itinerary_id=change.itinerary_id,
                from_state=change.previous_state.value if change.previous_state else None,
                to_state=change.state.value,
                sequence=change.sequence,
                correlation_id=correlation_id,
            )
        if change.state == DisclosureState.REVEALED:
            publish_safely(
                self._publisher,
                DomainEvent.create(
                    EventType.ITINERARY_DISCLOSED,
                    {
                        "itinerary_id": change.itinerary_id,
                        "booking_id": change.booking_id,
                        "sequence": change.sequence,
                    },
                    correlation_id,
                ),
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_state(self, booking_id: str) -> DisclosureState:
        """Return the booking's disclosure state.

        A booking that was never signalled, or whose signals have not yet
        named an itinerary, reads as OBFUSCATED.
        """
        record = self._store.get(booking_id)
        if record is None or record[0] is None:
            return DisclosureState.OBFUSCATED
        return record[1]

    def render_itinerary_for_traveler(
        self,
        itinerary_id: str,
        booking_id: str | None = None,
        version_number: int | None = None,
    ) -> TravelerView:
        """Render a version for a traveler, gated by the booking's disclosure state.

        Without a booking the view is always obfuscated.

        Args:
            itinerary_id: Itinerary to render.
            booking_id: The traveler's booking for this itinerary, if any.
            version_number: Specific version; the latest when ``None``.

        Raises:
            VersionNotFound: If the requested version does not exist.
        """
        with self._db.snapshot() as conn:
            version = fetch_version(conn, itinerary_id, version_number)
            state = DisclosureState.OBFUSCATED
            if booking_id is not None:
                state = fetch_state(conn, booking_id, itinerary_id)

        if version is None:
            raise VersionNotFound(itinerary_id, version_number)
        return render_for_traveler(version, state)

    def render_itinerary_raw(
        self, itinerary_id: str, version_number: int | None = None
    ) -> ItineraryVersion:
        """Return the unredacted version for agent, admin, or internal callers."""
        with self._db.snapshot() as conn:
            version = fetch_version(conn, itinerary_id, version_number)
        if version is None:
            raise VersionNotFound(itinerary_id, version_number)
        return version
