"""Append-only itinerary version store and service."""

from itineraries.versions.service import VersionService, compute_snapshot_hash, item_id_for
from itineraries.versions.store import VersionStore, fetch_version

__all__ = [
    "VersionService",
    "VersionStore",
    "compute_snapshot_hash",
    "fetch_version",
    "item_id_for",
]
