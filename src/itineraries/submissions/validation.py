"""Source-specific structural validation of submission content.

Validation dispatches on the content's ``source`` discriminant through
``_VALIDATORS``; each validator raises :class:`InvalidSubmission` with a
reason the submitting agent can act on.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import HttpUrl, TypeAdapter, ValidationError

from itineraries.domain.errors import InvalidSubmission
from itineraries.domain.models import (
    FreeTextSubmission,
    ItineraryDraft,
    LinkSubmission,
    PdfSubmission,
    StructuredSubmission,
    SubmissionContent,
)
from itineraries.domain.types import SubmissionSource

_URL_ADAPTER: TypeAdapter[HttpUrl] = TypeAdapter(HttpUrl)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def format_validation_errors(exc: ValidationError) -> str:
    """Flatten a pydantic ``ValidationError`` into ``loc: msg`` pairs."""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error["loc"]) or "data"
        parts.append(f"{loc}: {error['msg']}")
    return "; ".join(parts)


def _validate_pdf(content: PdfSubmission) -> None:
    if _is_blank(content.file_url):
        raise InvalidSubmission(SubmissionSource.PDF_UPLOAD, "file_url is required")
    if _is_blank(content.file_name):
        raise InvalidSubmission(SubmissionSource.PDF_UPLOAD, "file_name is required")


def _validate_link(content: LinkSubmission) -> None:
    if _is_blank(content.url):
        raise InvalidSubmission(SubmissionSource.EXTERNAL_LINK, "url is required")
    try:
        _URL_ADAPTER.validate_python(content.url)
    except ValidationError:
        raise InvalidSubmission(
            SubmissionSource.EXTERNAL_LINK,
            f"url is not a well-formed http(s) URL: {content.url!r}",
        ) from None


def _validate_free_text(content: FreeTextSubmission) -> None:
    if _is_blank(content.content):
        raise InvalidSubmission(SubmissionSource.FREE_TEXT, "content must not be empty")


def _validate_structured(content: StructuredSubmission) -> None:
    parse_structured_draft(content)


_VALIDATORS: dict[SubmissionSource, Callable[[Any], None]] = {
    SubmissionSource.PDF_UPLOAD: _validate_pdf,
    SubmissionSource.EXTERNAL_LINK: _validate_link,
    SubmissionSource.FREE_TEXT: _validate_free_text,
    SubmissionSource.STRUCTURED_INPUT: _validate_structured,
}


def validate_content(content: SubmissionContent) -> None:
    """Run the structural checks registered for *content*'s source.

    Args:
        content: A submission content variant.

    Raises:
        InvalidSubmission: With a source-specific reason.
    """
    _VALIDATORS[SubmissionSource(content.source)](content)


def parse_structured_draft(content: StructuredSubmission) -> ItineraryDraft:
    """Validate a structured payload against the itinerary item schema.

    Args:
        content: A structured submission.

    Returns:
        The parsed :class:`ItineraryDraft`.

    Raises:
        InvalidSubmission: If ``data`` is missing or does not conform.
    """
    if not content.data:
        raise InvalidSubmission(SubmissionSource.STRUCTURED_INPUT, "data is required")
    try:
        return ItineraryDraft.model_validate(content.data)
    except ValidationError as exc:
        raise InvalidSubmission(
            SubmissionSource.STRUCTURED_INPUT, format_validation_errors(exc)
        ) from None
