"""Submission intake, lookup, listing, and status routes.

Service calls are synchronous SQLite work and run in a worker thread via
``asyncio.to_thread`` so the event loop stays free.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from itineraries.api.errors import invalid_request, to_http_exception
from itineraries.domain.errors import ItineraryServiceError
from itineraries.domain.models import (
    CreateSubmissionRequest,
    ItineraryItemInput,
    ItineraryVersion,
    Submission,
    SubmissionPage,
)
from itineraries.domain.types import ActorRole, SubmissionStatus

logger = structlog.get_logger()

router = APIRouter(prefix="/submissions", tags=["submissions"])


class StatusUpdateRequest(BaseModel):
    """Body of ``POST /submissions/{id}/status``."""

    status: SubmissionStatus
    actor_id: str
    actor_role: ActorRole = ActorRole.SYSTEM
    error_message: str | None = None


class CompleteSubmissionRequest(BaseModel):
    """Body of ``POST /submissions/{id}/complete``.

    ``items`` may be omitted for structured submissions, whose payload
    already carries them.
    """

    actor_id: str
    actor_role: ActorRole = ActorRole.SYSTEM
    items: list[ItineraryItemInput] | None = None
    itinerary_id: str | None = None
    change_reason: str | None = None


class CompletedSubmission(BaseModel):
    submission: Submission
    version: ItineraryVersion


def _services(request: Request) -> dict[str, Any]:
    return request.app.state.services


def _correlation_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.post("", response_model=Submission, status_code=201)
async def create_submission(
    body: CreateSubmissionRequest,
    request: Request,
    actor_id: str | None = Query(default=None),
) -> Submission:
    service = _services(request)["submission_service"]
    try:
        return await asyncio.to_thread(
            service.create_submission, body, actor_id, _correlation_id(request)
        )
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("", response_model=SubmissionPage)
async def list_submissions(
    request: Request,
    request_id: str | None = Query(default=None),
    agent_id: str | None = Query(default=None),
    status: SubmissionStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> SubmissionPage:
    """List submissions for one travel request or one agent, newest first."""
    service = _services(request)["submission_service"]
    if request_id is not None:
        return await asyncio.to_thread(service.list_for_request, request_id, status, page, limit)
    if agent_id is not None:
        return await asyncio.to_thread(service.list_for_agent, agent_id, status, page, limit)
    raise invalid_request("request_id or agent_id is required")


@router.get("/{submission_id}", response_model=Submission)
async def get_submission(submission_id: str, request: Request) -> Submission:
    service = _services(request)["submission_service"]
    try:
        return await asyncio.to_thread(service.get_submission, submission_id)
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{submission_id}/status", response_model=Submission)
async def update_status(
    submission_id: str, body: StatusUpdateRequest, request: Request
) -> Submission:
    """Apply a processing status change reported by an external worker."""
    service = _services(request)["submission_service"]
    try:
        return await asyncio.to_thread(
            service.update_status,
            submission_id,
            body.status,
            body.actor_id,
            body.actor_role,
            body.error_message,
            _correlation_id(request),
        )
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{submission_id}/complete", response_model=CompletedSubmission)
async def complete_submission(
    submission_id: str, body: CompleteSubmissionRequest, request: Request
) -> CompletedSubmission:
    """Turn a PARSED submission into a new itinerary version and link it."""
    pipeline = _services(request)["pipeline"]
    try:
        submission, version = await asyncio.to_thread(
            pipeline.complete_submission,
            submission_id,
            body.actor_id,
            body.actor_role,
            body.items,
            body.itinerary_id,
            body.change_reason,
            _correlation_id(request),
        )
    except ItineraryServiceError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise invalid_request(str(exc)) from exc
    return CompletedSubmission(submission=submission, version=version)
