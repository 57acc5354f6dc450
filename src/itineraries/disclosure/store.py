"""SQLite-backed disclosure state: an idempotent reducer keyed by booking id.

Each booking row remembers the highest signal sequence applied to it.  A
signal is applied only if its sequence is strictly greater, which makes
duplicate deliveries no-ops and lets out-of-order deliveries converge on the
causally latest signal.  Rows are created even before any signal names the
booking's itinerary, so the watermark holds from the first delivery.
"""

from __future__ import annotations

import sqlite3

from pydantic import BaseModel, ConfigDict

from itineraries.domain.errors import DisclosureSignalUnresolvable
from itineraries.domain.types import DisclosureState
from itineraries.storage.database import Database, utc_now


class DisclosureChange(BaseModel):
    """Outcome of applying one signal to the reducer.

    ``previous_state`` and ``state`` are what a traveler would see before and
    after: a booking not yet bound to an itinerary reads as OBFUSCATED no
    matter which state its watermark row holds.
    """

    model_config = ConfigDict(frozen=True)

    booking_id: str
    itinerary_id: str | None
    sequence: int
    previous_state: DisclosureState | None
    state: DisclosureState
    applied: bool

    @property
    def bound(self) -> bool:
        return self.itinerary_id is not None

    @property
    def changed(self) -> bool:
        return self.applied and self.bound and self.previous_state != self.state


def fetch_state(
    conn: sqlite3.Connection, booking_id: str, itinerary_id: str
) -> DisclosureState:
    """Return the booking's state for *itinerary_id*, defaulting to OBFUSCATED.

    A booking recorded against a different itinerary, or not yet bound to
    one, is reported as OBFUSCATED.
    """
    row = conn.execute(
        "SELECT itinerary_id, state FROM disclosure_state WHERE booking_id = ?",
        (booking_id,),
    ).fetchone()
    if row is None or row["itinerary_id"] != itinerary_id:
        return DisclosureState.OBFUSCATED
    return DisclosureState(row["state"])


class DisclosureStore:
    """Persist per-booking disclosure state."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def apply(
        self,
        booking_id: str,
        itinerary_id: str | None,
        target: DisclosureState,
        sequence: int,
    ) -> DisclosureChange:
        """Apply a signal moving *booking_id* to *target* at *sequence*.

        A first signal without an itinerary id still records its sequence, so
        an earlier signal delivered later cannot overtake it.  The row binds
        to the first itinerary any signal names, whatever that signal's
        sequence.

        Raises:
            DisclosureSignalUnresolvable: If the named itinerary has no
                versions, or contradicts the one the booking is bound to.
        """
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT itinerary_id, state, last_sequence FROM disclosure_state "
                "WHERE booking_id = ?",
                (booking_id,),
            ).fetchone()
            bound_to = row["itinerary_id"] if row is not None else None

            if itinerary_id is not None and bound_to is None:
                known = conn.execute(
                    "SELECT 1 FROM itinerary_versions WHERE itinerary_id = ? LIMIT 1",
                    (itinerary_id,),
                ).fetchone()
                if known is None:
                    raise DisclosureSignalUnresolvable(
                        booking_id, itinerary_id, "itinerary has no versions"
                    )
            elif itinerary_id is not None and bound_to != itinerary_id:
                raise DisclosureSignalUnresolvable(
                    booking_id,
                    itinerary_id,
                    f"booking is recorded against itinerary '{bound_to}'",
                )

            resolved_itinerary = bound_to or itinerary_id
            previous = DisclosureState(row["state"]) if bound_to is not None else None
            now = utc_now()

            cursor = conn.execute(
                """
                INSERT INTO disclosure_state (
                    booking_id, itinerary_id, state, last_sequence, updated_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (booking_id) DO UPDATE SET
                    itinerary_id = excluded.itinerary_id,
                    state = excluded.state,
                    last_sequence = excluded.last_sequence,
                    updated_at = excluded.updated_at
                WHERE excluded.last_sequence > disclosure_state.last_sequence
                """,
                (booking_id, resolved_itinerary, target.value, sequence, now),
            )
            applied = cursor.rowcount == 1

            if not applied and bound_to is None and resolved_itinerary is not None:
                # Stale for state, but still the first signal naming the itinerary.
                conn.execute(
                    "UPDATE disclosure_state SET itinerary_id = ?, updated_at = ? "
                    "WHERE booking_id = ? AND itinerary_id IS NULL",
                    (resolved_itinerary, now, booking_id),
                )
                applied = True

            current = conn.execute(
                "SELECT state, last_sequence FROM disclosure_state WHERE booking_id = ?",
                (booking_id,),
            ).fetchone()

        state = DisclosureState(current["state"])
        return DisclosureChange(
            booking_id=booking_id,
            itinerary_id=resolved_itinerary,
            sequence=int(current["last_sequence"]),
            previous_state=previous,
            state=state if resolved_itinerary is not None else DisclosureState.OBFUSCATED,
            applied=applied,
        )

    def get(self, booking_id: str) -> tuple[str | None, DisclosureState, int] | None:
        """Return ``(itinerary_id, state, last_sequence)`` for a booking, if recorded.

        ``itinerary_id`` is ``None`` while no signal has named one; the state
        is then the stored watermark state, not what a traveler sees.
        """
        row = self._db.fetch_one(
            "SELECT itinerary_id, state, last_sequence FROM disclosure_state "
            "WHERE booking_id = ?",
            (booking_id,),
        )
        if row is None:
            return None
        return row["itinerary_id"], DisclosureState(row["state"]), int(row["last_sequence"])
