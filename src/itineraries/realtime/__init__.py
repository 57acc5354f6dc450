"""Best-effort realtime push to travelers' live sessions."""

from itineraries.realtime.client import RealtimeNotifier, is_transient

__all__ = [
    "RealtimeNotifier",
    "is_transient",
]
