"""Domain enumerations for itinerary submissions, versions, and disclosure."""

from enum import StrEnum


class SubmissionSource(StrEnum):
    """Formats an agent can submit a proposal in (the content discriminant)."""

    PDF_UPLOAD = "PDF_UPLOAD"
    EXTERNAL_LINK = "EXTERNAL_LINK"
    FREE_TEXT = "FREE_TEXT"
    STRUCTURED_INPUT = "STRUCTURED_INPUT"


class SubmissionStatus(StrEnum):
    """Processing lifecycle of a stored submission."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PARSED = "PARSED"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"


class DisclosureState(StrEnum):
    """Whether traveler-facing content shows true vendor identity."""

    OBFUSCATED = "OBFUSCATED"
    REVEALED = "REVEALED"


class ActorRole(StrEnum):
    """Roles of the actors that mutate submissions and versions."""

    TRAVELER = "TRAVELER"
    AGENT = "AGENT"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class ItineraryItemType(StrEnum):
    """Kinds of entries on an itinerary."""

    ACCOMMODATION = "ACCOMMODATION"
    TRANSPORT = "TRANSPORT"
    ACTIVITY = "ACTIVITY"
    MEAL = "MEAL"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"


class FieldSensitivity(StrEnum):
    """Write-time classification attached to every stored item field."""

    PUBLIC = "PUBLIC"
    VENDOR_IDENTITY = "VENDOR_IDENTITY"
    INTERNAL = "INTERNAL"


class TextFormat(StrEnum):
    """Markup of a free-text submission."""

    PLAIN = "PLAIN"
    MARKDOWN = "MARKDOWN"
    HTML = "HTML"


STATUS_LABELS: dict[SubmissionStatus, str] = {
    SubmissionStatus.PENDING: "Awaiting Processing",
    SubmissionStatus.PROCESSING: "Processing Submission",
    SubmissionStatus.PARSED: "Content Parsed",
    SubmissionStatus.FAILED: "Processing Failed",
    SubmissionStatus.COMPLETED: "Itinerary Created",
}

# Statuses that stamp ``processed_at`` when entered.
PROCESSED_STATUSES: frozenset[SubmissionStatus] = frozenset(
    {SubmissionStatus.PARSED, SubmissionStatus.FAILED, SubmissionStatus.COMPLETED}
)

SUCCESSFUL_STATUSES: frozenset[SubmissionStatus] = frozenset(
    {SubmissionStatus.PARSED, SubmissionStatus.COMPLETED}
)
