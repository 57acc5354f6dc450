"""SQLite persistence for submissions, versions, and disclosure state."""

from itineraries.storage.database import Database, utc_now
from itineraries.storage.schema import connect, init_itinerary_db

__all__ = [
    "Database",
    "connect",
    "init_itinerary_db",
    "utc_now",
]
