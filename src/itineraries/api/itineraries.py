"""Itinerary version routes.

Raw version reads return full vendor detail and are meant for agent and
admin callers.  Travelers are served only through ``/traveler-view``, which
is gated by the booking's disclosure state.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from itineraries.api.errors import invalid_request, to_http_exception
from itineraries.domain.errors import ItineraryServiceError
from itineraries.domain.models import (
    ItineraryItemInput,
    ItineraryVersion,
    TravelerView,
    VersionComparison,
    VersionSummary,
)
from itineraries.domain.types import ActorRole

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


class CreateVersionRequest(BaseModel):
    """Body of ``POST /itineraries/{id}/versions`` for manual agent edits."""

    items: list[ItineraryItemInput]
    actor_id: str
    actor_role: ActorRole = ActorRole.AGENT
    change_reason: str | None = None


@router.post("/{itinerary_id}/versions", response_model=ItineraryVersion, status_code=201)
async def create_version(
    itinerary_id: str, body: CreateVersionRequest, request: Request
) -> ItineraryVersion:
    service = request.app.state.services["version_service"]
    try:
        return await asyncio.to_thread(
            service.create_version,
            itinerary_id,
            body.items,
            actor_id=body.actor_id,
            actor_role=body.actor_role,
            change_reason=body.change_reason,
            correlation_id=getattr(request.state, "request_id", None),
        )
    except ValueError as exc:
        raise invalid_request(str(exc)) from exc


@router.get("/{itinerary_id}/versions", response_model=list[VersionSummary])
async def list_versions(itinerary_id: str, request: Request) -> list[VersionSummary]:
    service = request.app.state.services["version_service"]
    try:
        return await asyncio.to_thread(service.list_versions, itinerary_id)
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc


# Declared before /versions/{version_number} so "compare" is not parsed as a number.
@router.get("/{itinerary_id}/versions/compare", response_model=VersionComparison)
async def compare_versions(
    itinerary_id: str,
    request: Request,
    from_version: int = Query(ge=1),
    to_version: int = Query(ge=1),
) -> VersionComparison:
    service = request.app.state.services["version_service"]
    try:
        return await asyncio.to_thread(
            service.compare_versions, itinerary_id, from_version, to_version
        )
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise invalid_request(str(exc)) from exc


@router.get("/{itinerary_id}/versions/{version_number}", response_model=ItineraryVersion)
async def get_version(
    itinerary_id: str, version_number: int, request: Request
) -> ItineraryVersion:
    service = request.app.state.services["version_service"]
    try:
        return await asyncio.to_thread(service.get_version, itinerary_id, version_number)
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{itinerary_id}/traveler-view", response_model=TravelerView)
async def traveler_view(
    itinerary_id: str,
    request: Request,
    booking_id: str | None = Query(default=None),
    version_number: int | None = Query(default=None, ge=1),
) -> TravelerView:
    """Render an itinerary for a traveler; obfuscated unless the booking is paid."""
    service = request.app.state.services["disclosure_service"]
    try:
        return await asyncio.to_thread(
            service.render_itinerary_for_traveler, itinerary_id, booking_id, version_number
        )
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc
