"""Write-time field classification for itinerary versions.

Every leaf field of every stored item is tagged with a
:class:`FieldSensitivity` when the version is written.  The tags are
persisted with the version, so the traveler renderer never decides at read
time whether a field identifies a vendor.

Paths look like ``items[0].vendor.name`` or
``items[2].accommodation_details.amenities[1]``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from typing import Any

from itineraries.domain.models import ItineraryItem
from itineraries.domain.types import FieldSensitivity

# Item-relative field paths (list indices removed) that are not PUBLIC.
SENSITIVE_FIELDS: dict[str, FieldSensitivity] = {
    "vendor.name": FieldSensitivity.VENDOR_IDENTITY,
    "vendor.contact_email": FieldSensitivity.VENDOR_IDENTITY,
    "vendor.contact_phone": FieldSensitivity.VENDOR_IDENTITY,
    "vendor.booking_reference": FieldSensitivity.VENDOR_IDENTITY,
    "vendor.confirmation_number": FieldSensitivity.VENDOR_IDENTITY,
    "transport_details.carrier": FieldSensitivity.VENDOR_IDENTITY,
    "transport_details.flight_number": FieldSensitivity.VENDOR_IDENTITY,
    "agent_notes": FieldSensitivity.INTERNAL,
}

_ITEM_PREFIX = re.compile(r"^items\[\d+\]\.?")
_LIST_INDEX = re.compile(r"\[\d+\]")


def iter_leaves(value: Any, prefix: str = "") -> Iterator[tuple[str, Any]]:
    """Yield ``(path, value)`` for every scalar (or empty container) under *value*."""
    if isinstance(value, dict) and value:
        for key, child in value.items():
            yield from iter_leaves(child, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(value, list) and value:
        for index, child in enumerate(value):
            yield from iter_leaves(child, f"{prefix}[{index}]")
    else:
        yield prefix, value


def field_key(path: str) -> str:
    """Reduce a version path to the item-relative key used in ``SENSITIVE_FIELDS``.

    >>> field_key("items[3].vendor.name")
    'vendor.name'
    """
    return _LIST_INDEX.sub("", _ITEM_PREFIX.sub("", path))


def classify_path(path: str) -> FieldSensitivity:
    return SENSITIVE_FIELDS.get(field_key(path), FieldSensitivity.PUBLIC)


def dump_items(items: Sequence[ItineraryItem]) -> list[dict[str, Any]]:
    """Dump items in the exact JSON shape that is stored and rendered."""
    return [item.model_dump(mode="json", exclude_none=True) for item in items]


def classify_items(items: Sequence[ItineraryItem]) -> dict[str, FieldSensitivity]:
    """Tag every stored leaf field of *items* with its sensitivity.

    Args:
        items: The items about to be written as one version.

    Returns:
        A mapping of version field path to sensitivity.
    """
    return {
        path: classify_path(path)
        for path, _ in iter_leaves({"items": dump_items(items)})
    }
