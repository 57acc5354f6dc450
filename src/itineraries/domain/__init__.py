"""Domain types, models, and errors for the itineraries service."""

from itineraries.domain.errors import (
    DisclosureSignalUnresolvable,
    DuplicateSubmission,
    InvalidStatusTransition,
    InvalidSubmission,
    ItineraryServiceError,
    SubmissionNotFound,
    VersionNotFound,
)
from itineraries.domain.models import (
    CreateSubmissionRequest,
    FreeTextSubmission,
    ItineraryDraft,
    ItineraryItem,
    ItineraryItemInput,
    ItineraryVersion,
    LinkSubmission,
    PdfSubmission,
    StructuredSubmission,
    Submission,
    SubmissionContent,
    TravelerView,
    VendorInfo,
)
from itineraries.domain.types import (
    ActorRole,
    DisclosureState,
    FieldSensitivity,
    ItineraryItemType,
    SubmissionSource,
    SubmissionStatus,
)

__all__ = [
    "ActorRole",
    "CreateSubmissionRequest",
    "DisclosureSignalUnresolvable",
    "DisclosureState",
    "DuplicateSubmission",
    "FieldSensitivity",
    "FreeTextSubmission",
    "InvalidStatusTransition",
    "InvalidSubmission",
    "ItineraryDraft",
    "ItineraryItem",
    "ItineraryItemInput",
    "ItineraryItemType",
    "ItineraryServiceError",
    "ItineraryVersion",
    "LinkSubmission",
    "PdfSubmission",
    "StructuredSubmission",
    "Submission",
    "SubmissionContent",
    "SubmissionNotFound",
    "SubmissionSource",
    "SubmissionStatus",
    "TravelerView",
    "VendorInfo",
    "VersionNotFound",
]
