"""Application entry point for the itineraries service.

Configures:
- **structlog** with JSON rendering (production) or colored console (development),
  forwarding ERROR events to Sentry when a DSN is set
- **SQLite** primary database (submissions, versions, disclosure state) and a
  separate audit database
- **Domain services** wired to the audit logger, the in-process event bus, and
  the realtime gateway notifier
- **Booking-event consumer** subscribed to the bus so signed booking webhooks
  drive disclosure state
- **FastAPI** routers, health probes, request-id middleware, and Prometheus metrics
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from itineraries.api import itineraries_router, submissions_router, webhooks_router
from itineraries.audit.logger import AuditLogger
from itineraries.audit.store import close_audit_db, init_audit_db
from itineraries.config import Settings, get_settings, validate_credentials
from itineraries.disclosure.service import DisclosureService
from itineraries.disclosure.store import DisclosureStore
from itineraries.events.bus import InMemoryEventBus
from itineraries.events.consumer import BookingEventConsumer
from itineraries.events.models import SERVICE_NAME
from itineraries.health import register_health_routes
from itineraries.observability.metrics import setup_metrics
from itineraries.observability.middleware import RequestIdMiddleware
from itineraries.observability.sentry import get_sentry_processor, init_sentry
from itineraries.pipeline import SubmissionPipeline
from itineraries.realtime.client import RealtimeNotifier
from itineraries.storage.database import Database
from itineraries.storage.schema import init_itinerary_db
from itineraries.submissions.service import SubmissionService
from itineraries.submissions.store import SubmissionStore
from itineraries.versions.service import VersionService
from itineraries.versions.store import VersionStore

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry_enabled: bool = False) -> None:
    """Install the structlog pipeline used by every module.

    Production emits one JSON object per line from INFO upward; development
    prints colored console lines from DEBUG upward.

    Args:
        production: Select JSON output and INFO threshold.
        sentry_enabled: Insert the Sentry processor ahead of the renderer.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def _open_path(path: Path) -> Path | str:
    if str(path) == ":memory:":
        return ":memory:"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Open storage and wire every service the API and consumers share.

    Opens the primary and audit databases, builds the stores and services
    on top of them, and subscribes the booking-event consumer to the bus.
    The realtime notifier is disabled when no gateway URL is configured.

    Args:
        settings: Settings to use; loaded from the environment when omitted.

    Returns:
        Services keyed by name, as stored on ``app.state.services``.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    db = Database(init_itinerary_db(_open_path(settings.database_path)))
    services["db"] = db

    audit_conn = init_audit_db(_open_path(settings.audit_db_path))
    services["audit_conn"] = audit_conn
    audit_logger = AuditLogger(audit_conn)
    services["audit_logger"] = audit_logger

    event_bus = InMemoryEventBus()
    services["event_bus"] = event_bus

    notifier = RealtimeNotifier(
        settings.realtime_gateway_url,
        internal_secret=settings.internal_service_secret.get_secret_value(),
        timeout=settings.realtime_timeout_seconds,
    )
    services["notifier"] = notifier
    if not notifier.enabled:
        logger.info("Realtime gateway not configured; notices disabled")

    submission_service = SubmissionService(
        SubmissionStore(db),
        audit_logger=audit_logger,
        publisher=event_bus,
        notifier=notifier,
    )
    services["submission_service"] = submission_service

    version_service = VersionService(
        VersionStore(db), audit_logger=audit_logger, publisher=event_bus
    )
    services["version_service"] = version_service

    disclosure_service = DisclosureService(
        db, DisclosureStore(db), audit_logger=audit_logger, publisher=event_bus
    )
    services["disclosure_service"] = disclosure_service

    booking_consumer = BookingEventConsumer(disclosure_service)
    booking_consumer.subscribe(event_bus)
    services["booking_consumer"] = booking_consumer

    services["pipeline"] = SubmissionPipeline(submission_service, version_service, db)

    logger.info(
        "Services initialized",
        database_path=str(settings.database_path),
        audit_db_path=str(settings.audit_db_path),
    )
    return services


def shutdown_services(services: dict[str, Any]) -> None:
    """Release the notifier pool and both database connections."""
    notifier = services.get("notifier")
    if notifier is not None:
        notifier.shutdown(wait=True)
    db = services.get("db")
    if db is not None:
        db.close()
    audit_conn = services.get("audit_conn")
    if audit_conn is not None:
        close_audit_db(audit_conn)
    logger.info("Database connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Release services when the server stops; startup wiring happens in ``main``."""
    logger.info("API accepting requests")
    yield
    shutdown_services(app.state.services)


def create_app(services: dict[str, Any]) -> FastAPI:
    """Build the HTTP application around already-initialized *services*."""
    fastapi_app = FastAPI(title="Itineraries Service", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings") or get_settings()

    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(submissions_router)
    fastapi_app.include_router(itineraries_router)
    fastapi_app.include_router(webhooks_router)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)
    return fastapi_app


async def main() -> None:
    """Load settings, check secrets, wire services and serve until stopped."""
    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn, environment="production" if settings.production else "development"
    )
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    logger.info("Itineraries service starting", production=settings.production)

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(
        fastapi_app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()


if __name__ == "__main__":
    asyncio.run(main())
