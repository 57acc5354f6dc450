"""HTTP routers for submissions, itinerary versions, and booking webhooks."""

from itineraries.api.itineraries import router as itineraries_router
from itineraries.api.submissions import router as submissions_router
from itineraries.api.webhooks import router as webhooks_router

__all__ = [
    "itineraries_router",
    "submissions_router",
    "webhooks_router",
]
