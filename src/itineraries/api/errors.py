"""Translate domain errors into HTTP responses.

Business-input errors carry enough context for the caller to act on.  An
``InvalidStatusTransition`` is an internal defect signal: the service has
already logged it, and the client only sees a generic conflict.
"""

from __future__ import annotations

from fastapi import HTTPException

from itineraries.domain.errors import (
    DisclosureSignalUnresolvable,
    DuplicateSubmission,
    InvalidStatusTransition,
    InvalidSubmission,
    ItineraryServiceError,
    SubmissionNotFound,
    VersionNotFound,
)


def to_http_exception(exc: ItineraryServiceError) -> HTTPException:
    """Map a domain error to the ``HTTPException`` a route should raise."""
    if isinstance(exc, DuplicateSubmission):
        return HTTPException(
            status_code=409,
            detail={
                "error": "duplicate_submission",
                "message": "This content has already been submitted",
                "original_submission_id": exc.original_submission_id,
            },
        )
    if isinstance(exc, InvalidSubmission):
        return HTTPException(
            status_code=422,
            detail={"error": "invalid_submission", "source": exc.source, "reason": exc.reason},
        )
    if isinstance(exc, (SubmissionNotFound, VersionNotFound)):
        return HTTPException(status_code=404, detail={"error": "not_found", "message": str(exc)})
    if isinstance(exc, InvalidStatusTransition):
        return HTTPException(
            status_code=409,
            detail={
                "error": "conflict",
                "message": "The submission cannot be changed in its current state",
            },
        )
    if isinstance(exc, DisclosureSignalUnresolvable):
        return HTTPException(status_code=422, detail={"error": "unresolvable_signal"})
    return HTTPException(status_code=500, detail={"error": "internal_error"})


def invalid_request(message: str) -> HTTPException:
    return HTTPException(status_code=422, detail={"error": "invalid_request", "message": message})
