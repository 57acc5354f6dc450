"""Inbound booking lifecycle events from the payment/booking service.

The signature is verified against the raw request body bytes BEFORE JSON
parsing.  Verified events are published on the in-process event bus, where
the booking-event consumer applies them to the disclosure state.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from itineraries.events.models import DomainEvent

logger = structlog.get_logger()

router = APIRouter(tags=["webhooks"])


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Verify an HMAC-SHA256 hex digest of *body* in constant time.

    Args:
        body: The raw request body bytes.
        signature: The hex digest from the ``X-Signature`` header.
        secret: The shared signing secret.

    Returns:
        True if the computed signature matches the provided one.
    """
    computed = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(computed, signature)


@router.post("/webhooks/booking-events", status_code=202)
async def booking_events(request: Request) -> dict[str, str]:
    """Accept a signed ``booking.paid`` or ``booking.cancelled`` envelope.

    Raises:
        HTTPException: 500 if no secret is configured, 401 if the signature
            is missing or wrong, 400 if the body is not a valid event envelope.
    """
    secret = request.app.state.settings.booking_webhook_secret.get_secret_value()
    if not secret:
        logger.error("BOOKING_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    raw_body = await request.body()

    signature = request.headers.get("X-Signature")
    if not signature:
        logger.warning("Missing X-Signature header on booking event")
        raise HTTPException(status_code=401, detail="Missing signature")
    if not verify_signature(raw_body, signature, secret):
        logger.warning("Invalid booking event signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = DomainEvent.model_validate_json(raw_body)
    except ValidationError as exc:
        logger.warning("Malformed booking event envelope", errors=exc.errors())
        raise HTTPException(status_code=400, detail="Malformed event envelope") from exc

    logger.info("Booking event received", event_type=event.type)
    bus = request.app.state.services["event_bus"]
    await asyncio.to_thread(bus.publish, event)
    return {"status": "accepted"}
