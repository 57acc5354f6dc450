"""Pydantic v2 models for submissions, itinerary items, and versions."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from itineraries.domain.types import (
    PROCESSED_STATUSES,
    STATUS_LABELS,
    SUCCESSFUL_STATUSES,
    ActorRole,
    DisclosureState,
    FieldSensitivity,
    ItineraryItemType,
    SubmissionSource,
    SubmissionStatus,
    TextFormat,
)

# ---------------------------------------------------------------------------
# Itinerary item schema
# ---------------------------------------------------------------------------


class Location(BaseModel):
    """Where an itinerary item takes place."""

    model_config = ConfigDict(frozen=True)

    city: str
    country: str
    region: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class TimeRange(BaseModel):
    """Start/end of an itinerary item in a named timezone."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    timezone: str = "UTC"

    @model_validator(mode="after")
    def start_must_not_follow_end(self) -> TimeRange:
        """Ensure the range is not inverted."""
        if self.start > self.end:
            raise ValueError(f"start ({self.start}) must not be after end ({self.end})")
        return self


class VendorInfo(BaseModel):
    """The supplier behind an itinerary item.

    ``name``, the contact fields, and the reference numbers identify the
    vendor and are withheld from travelers until payment is captured.
    ``category`` and ``star_rating`` are descriptive and always visible.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    category: str | None = None
    star_rating: int | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    booking_reference: str | None = None
    confirmation_number: str | None = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        """Ensure the vendor has a name."""
        if not v.strip():
            raise ValueError("vendor name must not be blank")
        return v

    @field_validator("star_rating")
    @classmethod
    def star_rating_in_range(cls, v: int | None) -> int | None:
        """Ensure star ratings are between 1 and 5."""
        if v is not None and not 1 <= v <= 5:
            raise ValueError("star_rating must be between 1 and 5")
        return v


class AccommodationDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    room_type: str | None = None
    board_basis: str | None = None
    check_in_time: str | None = None
    check_out_time: str | None = None
    amenities: list[str] = Field(default_factory=list)


class TransportDetails(BaseModel):
    """Transport leg details. ``carrier`` and ``flight_number`` identify the vendor."""

    model_config = ConfigDict(frozen=True)

    mode: str = "FLIGHT"
    carrier: str | None = None
    flight_number: str | None = None
    departure_terminal: str | None = None
    arrival_terminal: str | None = None
    seat_class: str | None = None


class ActivityDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    duration_minutes: int | None = Field(default=None, ge=0)
    difficulty: str | None = None
    meeting_point: str | None = None
    included: list[str] = Field(default_factory=list)


class ItineraryItemInput(BaseModel):
    """An itinerary item as submitted, before identifiers are assigned."""

    model_config = ConfigDict(frozen=True)

    type: ItineraryItemType
    day_number: int = Field(ge=1)
    sequence: int = Field(default=0, ge=0)
    title: str
    description: str | None = None
    location: Location | None = None
    time_range: TimeRange | None = None
    vendor: VendorInfo | None = None
    accommodation_details: AccommodationDetails | None = None
    transport_details: TransportDetails | None = None
    activity_details: ActivityDetails | None = None
    agent_notes: str | None = None
    traveler_notes: str | None = None

    @field_validator("title")
    @classmethod
    def title_must_not_be_blank(cls, v: str) -> str:
        """Ensure every item has a title."""
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @property
    def slot(self) -> tuple[int, int]:
        """Return the ``(day_number, sequence)`` position of this item."""
        return (self.day_number, self.sequence)


class ItineraryItem(ItineraryItemInput):
    """A stored itinerary item with its downstream-populated identifiers."""

    id: str
    itinerary_id: str


class ItineraryDraft(BaseModel):
    """Payload of a structured submission: an itinerary minus identifiers."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    summary: str | None = None
    items: list[ItineraryItemInput]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: list[ItineraryItemInput]) -> list[ItineraryItemInput]:
        """Require at least one item."""
        if not v:
            raise ValueError("at least one itinerary item is required")
        return v

    @model_validator(mode="after")
    def slots_must_be_unique(self) -> ItineraryDraft:
        """Reject two items sharing the same day and sequence."""
        ensure_unique_slots(self.items)
        return self


def ensure_unique_slots(items: list[ItineraryItemInput]) -> None:
    """Raise ``ValueError`` if two items occupy the same ``(day, sequence)`` slot.

    Args:
        items: Items to check.

    Raises:
        ValueError: Naming the first repeated slot.
    """
    seen: set[tuple[int, int]] = set()
    for item in items:
        if item.slot in seen:
            raise ValueError(
                f"duplicate item position: day {item.day_number}, sequence {item.sequence}"
            )
        seen.add(item.slot)


# ---------------------------------------------------------------------------
# Submission content (tagged union on ``source``)
# ---------------------------------------------------------------------------
# Fields are optional so that a missing value reaches source-specific
# validation and produces an actionable reason.


class PdfSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["PDF_UPLOAD"] = "PDF_UPLOAD"
    file_url: str | None = None
    file_name: str | None = None
    file_size_bytes: int | None = Field(default=None, ge=0)
    mime_type: str = "application/pdf"
    page_count: int | None = Field(default=None, ge=0)


class LinkSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["EXTERNAL_LINK"] = "EXTERNAL_LINK"
    url: str | None = None
    link_title: str | None = None
    link_description: str | None = None


class FreeTextSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["FREE_TEXT"] = "FREE_TEXT"
    content: str | None = None
    format: TextFormat = TextFormat.PLAIN


class StructuredSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["STRUCTURED_INPUT"] = "STRUCTURED_INPUT"
    data: dict[str, Any] | None = None


SubmissionContent = Annotated[
    Union[PdfSubmission, LinkSubmission, FreeTextSubmission, StructuredSubmission],
    Field(discriminator="source"),
]


class CreateSubmissionRequest(BaseModel):
    """Inbound request to create a submission."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    agent_id: str
    traveler_id: str
    content: SubmissionContent

    @field_validator("request_id", "agent_id", "traveler_id")
    @classmethod
    def ids_must_not_be_blank(cls, v: str) -> str:
        """Ensure identifiers are present."""
        if not v.strip():
            raise ValueError("identifier must not be blank")
        return v


class Submission(BaseModel):
    """A stored agent proposal and its processing status."""

    model_config = ConfigDict(frozen=True)

    id: str
    request_id: str
    agent_id: str
    traveler_id: str
    source: SubmissionSource
    content: SubmissionContent
    status: SubmissionStatus
    content_hash: str
    original_content: str
    resulting_itinerary_id: str | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
    processed_at: datetime | None = None
    row_version: int = 1

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status_label(self) -> str:
        """Human-readable label for the current status."""
        return STATUS_LABELS[self.status]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_processed(self) -> bool:
        """True once processing has produced an outcome."""
        return self.status in PROCESSED_STATUSES

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_successful(self) -> bool:
        """True when processing succeeded (parsed or linked to an itinerary)."""
        return self.status in SUCCESSFUL_STATUSES


class SubmissionPage(BaseModel):
    """One page of a submission listing."""

    model_config = ConfigDict(frozen=True)

    items: list[Submission]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


# ---------------------------------------------------------------------------
# Versions and traveler views
# ---------------------------------------------------------------------------


class ItineraryVersion(BaseModel):
    """An immutable, numbered snapshot of an itinerary's items.

    ``classifications`` maps each stored field path (``items[0].vendor.name``)
    to its sensitivity, computed once when the version is written.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    itinerary_id: str
    version_number: int = Field(ge=1)
    items: list[ItineraryItem]
    source_submission_id: str | None = None
    created_by: str
    created_by_role: ActorRole
    change_reason: str | None = None
    classifications: dict[str, FieldSensitivity]
    snapshot_hash: str
    created_at: datetime


class VersionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    version_number: int
    item_count: int
    source_submission_id: str | None = None
    created_by: str
    change_reason: str | None = None
    created_at: datetime


class VersionComparison(BaseModel):
    """Item-level difference between two versions of one itinerary."""

    model_config = ConfigDict(frozen=True)

    itinerary_id: str
    from_version: int
    to_version: int
    added_item_ids: list[str]
    removed_item_ids: list[str]
    modified_item_ids: list[str]

    @property
    def has_changes(self) -> bool:
        return bool(self.added_item_ids or self.removed_item_ids or self.modified_item_ids)


class TravelerView(BaseModel):
    """Traveler-facing rendering of one version under one disclosure state."""

    model_config = ConfigDict(frozen=True)

    itinerary_id: str
    version_number: int
    disclosure_state: DisclosureState
    items: list[dict[str, Any]]
    redacted_fields: list[str] = Field(default_factory=list)
