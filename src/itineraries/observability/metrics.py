"""Prometheus metrics.

HTTP latency and counts come from prometheus-fastapi-instrumentator.  The
business counters below are incremented by the services at the point of
mutation, so a counter only moves when a row was actually written.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

_PREFIX = "itineraries"

# Probe and scrape traffic would drown out real requests.
UNINSTRUMENTED_PATHS = ["/health", "/ready", "/metrics"]

SUBMISSIONS_CREATED = Counter(
    f"{_PREFIX}_submissions_created_total",
    "Submissions accepted, by source format",
    ["source"],
)
DUPLICATE_SUBMISSIONS = Counter(
    f"{_PREFIX}_duplicate_submissions_total",
    "Submissions rejected because their content hash was already stored",
)
VERSIONS_CREATED = Counter(
    f"{_PREFIX}_versions_created_total",
    "Itinerary versions appended",
)
DISCLOSURE_CHANGES = Counter(
    f"{_PREFIX}_disclosure_changes_total",
    "Booking disclosure transitions applied, by resulting state",
    ["state"],
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* and serve the registry at ``/metrics``."""
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=UNINSTRUMENTED_PATHS,
    )
    instrumentator.instrument(app)
    instrumentator.expose(app, include_in_schema=False, should_gzip=True)
