"""Progressive disclosure: write-time classification, pure rendering, and signal handling."""

from itineraries.disclosure.classification import SENSITIVE_FIELDS, classify_items
from itineraries.disclosure.engine import render_for_traveler
from itineraries.disclosure.service import DisclosureService
from itineraries.disclosure.store import DisclosureChange, DisclosureStore

__all__ = [
    "SENSITIVE_FIELDS",
    "DisclosureChange",
    "DisclosureService",
    "DisclosureStore",
    "classify_items",
    "render_for_traveler",
]
