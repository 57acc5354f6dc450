"""Pure derivation of the traveler-facing view of an itinerary version.

``render_for_traveler(version, state)`` reads nothing but its arguments.  It
walks the stored item content and, for each leaf, consults the sensitivity
recorded when the version was written:

- ``INTERNAL`` fields are never shown to travelers.
- ``VENDOR_IDENTITY`` fields are replaced by non-identifying descriptors
  while the booking is ``OBFUSCATED`` and pass through once ``REVEALED``.
- ``PUBLIC`` fields pass through, except while ``OBFUSCATED``:

  - any whole-word occurrence of one of the version's vendor-identity values
    inside a public text field is replaced by the same descriptor;
  - in free-text fields (title, description, traveler notes, and the
    details blocks) email addresses, URLs, phone numbers, and
    booking-reference codes are replaced by placeholders, even when the
    agent never entered them in a vendor field.

A leaf with no recorded sensitivity is treated as ``INTERNAL``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from itineraries.disclosure.classification import dump_items, field_key, iter_leaves
from itineraries.domain.models import ItineraryVersion, TravelerView
from itineraries.domain.types import DisclosureState, FieldSensitivity, ItineraryItemType

CONTACT_PLACEHOLDER = "[Contact details after payment]"
REFERENCE_PLACEHOLDER = "[Reference provided after payment]"
DEFAULT_PROVIDER = "Licensed Provider"

# Searched in free-text fields while OBFUSCATED, after the vendor-value scrub.
CONTACT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    re.compile(r"https?://\S+"),
    # International numbers: +91 294 242 8800, +1 (212) 555-0100
    re.compile(r"(?<![\w+])\+\d{1,4}(?:[\s.-]?\(?\d{1,4}\)?){1,4}[\s.-]?\d{2,9}(?!\w)"),
    # Local numbers with separators: (0294) 242 8800, 0294-242-8800
    re.compile(r"(?<!\w)\(?\d{2,5}\)?[\s.-]\d{3,4}[\s.-]\d{3,5}(?!\w)"),
)
BOOKING_REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Prefixed codes: TJ48213, TLP-88231, AA1234A
    re.compile(r"\b[A-Z]{2,4}-?\d{4,8}[A-Z]?\b"),
    # Six-character locators mixing letters and digits: X7K2QP
    re.compile(r"\b(?=[A-Z]*\d)(?=\d*[A-Z])[A-Z0-9]{6}\b"),
    re.compile(r"\b[A-Z0-9]{6}-[A-Z0-9]{4}\b"),
    re.compile(r"\b\d{9,12}\b"),
)

# Item-relative keys of free-text fields searched with the patterns above.
_FREE_TEXT_FIELDS = frozenset({"title", "description", "traveler_notes"})
_DETAIL_BLOCKS = ("accommodation_details.", "transport_details.", "activity_details.")


def is_free_text(path: str) -> bool:
    key = field_key(path)
    return key in _FREE_TEXT_FIELDS or key.startswith(_DETAIL_BLOCKS)


def mask_contact_details(text: str) -> str:
    """Replace contact details and booking references in *text* with placeholders.

    >>> mask_contact_details("email desk@example.com, ref TJ48213")
    'email [Contact details after payment], ref [Reference provided after payment]'
    """
    for pattern in CONTACT_PATTERNS:
        text = pattern.sub(CONTACT_PLACEHOLDER, text)
    for pattern in BOOKING_REFERENCE_PATTERNS:
        text = pattern.sub(REFERENCE_PLACEHOLDER, text)
    return text

_TYPE_DESCRIPTORS: dict[str, str] = {
    ItineraryItemType.ACCOMMODATION: "Accommodation",
    ItineraryItemType.TRANSPORT: "Transport Provider",
    ItineraryItemType.ACTIVITY: "Activity Provider",
    ItineraryItemType.MEAL: "Restaurant",
    ItineraryItemType.TRANSFER: "Transfer Service",
    ItineraryItemType.OTHER: DEFAULT_PROVIDER,
}

_CARRIER_DESCRIPTORS: dict[str, str] = {
    "FLIGHT": "Scheduled Airline",
    "TRAIN": "Rail Operator",
    "BUS": "Coach Operator",
    "FERRY": "Ferry Operator",
    "CAR": "Car Rental Provider",
}


def vendor_descriptor(item: dict[str, Any]) -> str:
    """Describe an item's vendor by category and rating, never by name.

    >>> vendor_descriptor({"vendor": {"category": "hotel", "star_rating": 5}})
    '5-Star Hotel'
    """
    vendor = item.get("vendor") or {}
    category = (vendor.get("category") or "").strip()
    stars = vendor.get("star_rating")
    if category:
        noun = category.title()
    else:
        noun = _TYPE_DESCRIPTORS.get(item.get("type", ""), DEFAULT_PROVIDER)
    if stars:
        return f"{stars}-Star {noun}"
    return noun


def carrier_descriptor(item: dict[str, Any]) -> str:
    mode = str((item.get("transport_details") or {}).get("mode", "")).upper()
    return _CARRIER_DESCRIPTORS.get(mode, "Transport Operator")


_DESCRIPTORS: dict[str, Callable[[dict[str, Any]], str]] = {
    "vendor.name": vendor_descriptor,
    "vendor.contact_email": lambda _item: CONTACT_PLACEHOLDER,
    "vendor.contact_phone": lambda _item: CONTACT_PLACEHOLDER,
    "vendor.booking_reference": lambda _item: REFERENCE_PLACEHOLDER,
    "vendor.confirmation_number": lambda _item: REFERENCE_PLACEHOLDER,
    "transport_details.carrier": carrier_descriptor,
    "transport_details.flight_number": lambda _item: REFERENCE_PLACEHOLDER,
}


def descriptor_for(path: str, item: dict[str, Any]) -> str:
    """Return the masked replacement for the identity field at *path*."""
    describe = _DESCRIPTORS.get(field_key(path))
    return describe(item) if describe is not None else DEFAULT_PROVIDER


class _Renderer:
    """Single-use walker over one version's dumped items."""

    def __init__(self, version: ItineraryVersion, state: DisclosureState) -> None:
        self.classifications = version.classifications
        self.obfuscated = state == DisclosureState.OBFUSCATED
        self.items = dump_items(version.items)
        self.redacted: list[str] = []
        self.scrub_pattern: re.Pattern[str] | None = None
        self.scrub_replacements: dict[str, str] = {}
        if self.obfuscated:
            self._prepare_scrub()

    def _prepare_scrub(self) -> None:
        for index, item in enumerate(self.items):
            for path, value in iter_leaves(item, f"items[{index}]"):
                if self._sensitivity(path) != FieldSensitivity.VENDOR_IDENTITY:
                    continue
                if isinstance(value, str) and len(value.strip()) >= 3:
                    self.scrub_replacements.setdefault(
                        value.strip().casefold(), descriptor_for(path, item)
                    )
        if self.scrub_replacements:
            alternatives = sorted(self.scrub_replacements, key=len, reverse=True)
            # Whole words only, so "Inn" leaves "Dinner" alone.
            self.scrub_pattern = re.compile(
                r"(?<!\w)(?:" + "|".join(re.escape(a) for a in alternatives) + r")(?!\w)",
                re.IGNORECASE,
            )

    def _sensitivity(self, path: str) -> FieldSensitivity:
        return self.classifications.get(path, FieldSensitivity.INTERNAL)

    def _scrub(self, text: str, path: str) -> str:
        if self.scrub_pattern is not None:
            text = self.scrub_pattern.sub(
                lambda m: self.scrub_replacements.get(m.group(0).casefold(), DEFAULT_PROVIDER),
                text,
            )
        if is_free_text(path):
            text = mask_contact_details(text)
        return text

    def render(self) -> list[dict[str, Any]]:
        rendered = []
        for index, item in enumerate(self.items):
            kept, value = self._walk(item, f"items[{index}]", item)
            rendered.append(value if kept else {})
        return rendered

    def _walk(self, value: Any, path: str, item: dict[str, Any]) -> tuple[bool, Any]:
        if isinstance(value, dict) and value:
            out: dict[str, Any] = {}
            for key, child in value.items():
                kept, rendered = self._walk(child, f"{path}.{key}", item)
                if kept:
                    out[key] = rendered
            return True, out
        if isinstance(value, list) and value:
            items_out = []
            for index, child in enumerate(value):
                kept, rendered = self._walk(child, f"{path}[{index}]", item)
                if kept:
                    items_out.append(rendered)
            return True, items_out
        return self._leaf(value, path, item)

    def _leaf(self, value: Any, path: str, item: dict[str, Any]) -> tuple[bool, Any]:
        sensitivity = self._sensitivity(path)
        if sensitivity == FieldSensitivity.INTERNAL:
            return False, None
        if not self.obfuscated:
            return True, value
        if sensitivity == FieldSensitivity.VENDOR_IDENTITY:
            self.redacted.append(path)
            return True, descriptor_for(path, item)
        if isinstance(value, str):
            scrubbed = self._scrub(value, path)
            if scrubbed != value:
                self.redacted.append(path)
            return True, scrubbed
        return True, value


def render_for_traveler(version: ItineraryVersion, state: DisclosureState) -> TravelerView:
    """Derive the traveler-facing view of *version* under one disclosure *state*.

    Args:
        version: A stored version, including its write-time classifications.
        state: The booking's disclosure state, read in the same snapshot as
            *version*.

    Returns:
        The rendered :class:`TravelerView`.
    """
    renderer = _Renderer(version, state)
    items = renderer.render()
    return TravelerView(
        itinerary_id=version.itinerary_id,
        version_number=version.version_number,
        disclosure_state=state,
        items=items,
        redacted_fields=renderer.redacted,
    )
