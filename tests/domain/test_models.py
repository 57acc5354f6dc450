"""Tests for domain models: validation rules, the content union, and computed fields."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest
from pydantic import TypeAdapter, ValidationError

from itineraries.domain.models import (
    CreateSubmissionRequest,
    FreeTextSubmission,
    ItineraryDraft,
    ItineraryItemInput,
    LinkSubmission,
    PdfSubmission,
    StructuredSubmission,
    Submission,
    SubmissionContent,
    SubmissionPage,
    TimeRange,
    VendorInfo,
    VersionComparison,
)
from itineraries.domain.types import SubmissionSource, SubmissionStatus, TextFormat


def _submission(status: SubmissionStatus, **overrides: Any) -> Submission:
    now = datetime.now(tz=UTC)
    content = FreeTextSubmission(content="Day 1: arrive")
    fields: dict[str, Any] = {
        "id": "sub_1",
        "request_id": "req_1",
        "agent_id": "agent_1",
        "traveler_id": "trav_1",
        "source": SubmissionSource.FREE_TEXT,
        "content": content,
        "status": status,
        "content_hash": "abc",
        "original_content": content.model_dump_json(),
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Submission(**fields)


class TestVendorInfo:
    """Tests for VendorInfo validation."""

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError, match="vendor name must not be blank"):
            VendorInfo(name="   ")

    @pytest.mark.parametrize("rating", [0, 6])
    def test_star_rating_out_of_range_rejected(self, rating: int) -> None:
        with pytest.raises(ValidationError, match="star_rating"):
            VendorInfo(name="Hotel", star_rating=rating)

    def test_valid_vendor(self) -> None:
        vendor = VendorInfo(name="Taj Lake Palace", category="hotel", star_rating=5)
        assert vendor.star_rating == 5


class TestTimeRange:
    def test_inverted_range_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not be after end"):
            TimeRange(
                start=datetime(2026, 3, 2, tzinfo=UTC),
                end=datetime(2026, 3, 1, tzinfo=UTC),
            )

    def test_equal_start_and_end_allowed(self) -> None:
        moment = datetime(2026, 3, 1, tzinfo=UTC)
        assert TimeRange(start=moment, end=moment).start == moment


class TestItineraryItemInput:
    """Tests for item-level validation."""

    def test_blank_title_rejected(self) -> None:
        with pytest.raises(ValidationError, match="title must not be blank"):
            ItineraryItemInput(type="ACTIVITY", day_number=1, title=" ")

    def test_day_number_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ItineraryItemInput(type="ACTIVITY", day_number=0, title="Walk")

    def test_slot(self) -> None:
        item = ItineraryItemInput(type="MEAL", day_number=3, sequence=2, title="Dinner")
        assert item.slot == (3, 2)


class TestItineraryDraft:
    """Tests for the structured-submission payload."""

    def test_requires_items(self) -> None:
        with pytest.raises(ValidationError, match="at least one itinerary item"):
            ItineraryDraft(items=[])

    def test_rejects_duplicate_slots(self) -> None:
        items = [
            {"type": "ACTIVITY", "day_number": 1, "sequence": 0, "title": "A"},
            {"type": "MEAL", "day_number": 1, "sequence": 0, "title": "B"},
        ]
        with pytest.raises(ValidationError, match="duplicate item position"):
            ItineraryDraft.model_validate({"items": items})

    def test_parses_nested_items(self, sample_item_data: list[dict[str, Any]]) -> None:
        draft = ItineraryDraft.model_validate({"items": sample_item_data})
        assert len(draft.items) == 3
        assert draft.items[0].vendor is not None
        assert draft.items[0].vendor.name == "Taj Lake Palace"


class TestSubmissionContent:
    """Tests for the tagged union over submission sources."""

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"source": "PDF_UPLOAD", "file_url": "https://x/a.pdf"}, PdfSubmission),
            ({"source": "EXTERNAL_LINK", "url": "https://x"}, LinkSubmission),
            ({"source": "FREE_TEXT", "content": "hi"}, FreeTextSubmission),
            ({"source": "STRUCTURED_INPUT", "data": {}}, StructuredSubmission),
        ],
    )
    def test_discriminates_on_source(self, payload: dict[str, Any], expected: type) -> None:
        content = TypeAdapter(SubmissionContent).validate_python(payload)
        assert isinstance(content, expected)

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(SubmissionContent).validate_python({"source": "FAX"})

    def test_free_text_defaults_to_plain(self) -> None:
        assert FreeTextSubmission(content="x").format == TextFormat.PLAIN

    def test_request_parses_content_variant(self) -> None:
        request = CreateSubmissionRequest.model_validate(
            {
                "request_id": "r",
                "agent_id": "a",
                "traveler_id": "t",
                "content": {"source": "EXTERNAL_LINK", "url": "https://example.com/trip"},
            }
        )
        assert isinstance(request.content, LinkSubmission)


class TestSubmissionComputedFields:
    """status_label, is_processed and is_successful derive from status."""

    @pytest.mark.parametrize(
        ("status", "label", "processed", "successful"),
        [
            (SubmissionStatus.PENDING, "Awaiting Processing", False, False),
            (SubmissionStatus.PROCESSING, "Processing Submission", False, False),
            (SubmissionStatus.PARSED, "Content Parsed", True, True),
            (SubmissionStatus.FAILED, "Processing Failed", True, False),
            (SubmissionStatus.COMPLETED, "Itinerary Created", True, True),
        ],
    )
    def test_derived_fields(
        self, status: SubmissionStatus, label: str, processed: bool, successful: bool
    ) -> None:
        overrides: dict[str, Any] = {}
        if status == SubmissionStatus.COMPLETED:
            overrides["resulting_itinerary_id"] = "itin_1"
        submission = _submission(status, **overrides)
        assert submission.status_label == label
        assert submission.is_processed is processed
        assert submission.is_successful is successful

    def test_computed_fields_serialized(self) -> None:
        dumped = _submission(SubmissionStatus.PENDING).model_dump(mode="json")
        assert dumped["status_label"] == "Awaiting Processing"
        assert dumped["is_processed"] is False


class TestPagingAndComparison:
    def test_has_more(self) -> None:
        page = SubmissionPage(items=[], total=45, page=2, limit=20)
        assert page.has_more is True
        assert SubmissionPage(items=[], total=40, page=2, limit=20).has_more is False

    def test_has_changes(self) -> None:
        empty = VersionComparison(
            itinerary_id="i",
            from_version=1,
            to_version=2,
            added_item_ids=[],
            removed_item_ids=[],
            modified_item_ids=[],
        )
        assert empty.has_changes is False
        changed = empty.model_copy(update={"modified_item_ids": ["x"]})
        assert changed.has_changes is True
