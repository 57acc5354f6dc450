"""Domain-specific exception classes for the itineraries service."""

from __future__ import annotations

from itineraries.domain.types import SubmissionSource, SubmissionStatus


class ItineraryServiceError(Exception):
    """Base class for all domain errors in the itineraries service."""


class DuplicateSubmission(ItineraryServiceError):
    """Raised when submitted content hashes to an already stored submission.

    Non-retryable: the caller should resolve to the original submission.

    Attributes:
        original_submission_id: Id of the submission that already holds the hash.
        content_hash: The colliding content hash.
    """

    def __init__(self, original_submission_id: str, content_hash: str) -> None:
        self.original_submission_id = original_submission_id
        self.content_hash = content_hash
        super().__init__(
            f"Duplicate submission: content already submitted as '{original_submission_id}'"
        )


class InvalidSubmission(ItineraryServiceError):
    """Raised when content is malformed for its declared source.

    Attributes:
        source: The declared submission source.
        reason: Source-specific, caller-actionable explanation.
    """

    def __init__(self, source: SubmissionSource, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid {source} submission: {reason}")


class SubmissionNotFound(ItineraryServiceError):
    """Raised when a submission id does not exist.

    Attributes:
        submission_id: The unknown id.
    """

    def __init__(self, submission_id: str) -> None:
        self.submission_id = submission_id
        super().__init__(f"Submission '{submission_id}' not found")


class InvalidStatusTransition(ItineraryServiceError):
    """Raised when a status change is not permitted.

    Signals an internal defect (or a lost race); it is logged rather than
    exposed verbatim to end users.

    Attributes:
        current_status: Status the submission was in when the change was attempted.
        requested_status: The rejected target status.
        reason: Optional detail beyond the illegal pair itself.
    """

    def __init__(
        self,
        current_status: SubmissionStatus,
        requested_status: SubmissionStatus,
        reason: str | None = None,
    ) -> None:
        self.current_status = current_status
        self.requested_status = requested_status
        self.reason = reason
        message = f"Cannot move submission from '{current_status}' to '{requested_status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class VersionNotFound(ItineraryServiceError):
    """Raised when an itinerary has no version matching the lookup.

    Attributes:
        itinerary_id: The itinerary looked up.
        version_number: The requested number, or ``None`` for "latest".
    """

    def __init__(self, itinerary_id: str, version_number: int | None = None) -> None:
        self.itinerary_id = itinerary_id
        self.version_number = version_number
        if version_number is None:
            message = f"Itinerary '{itinerary_id}' has no versions"
        else:
            message = f"Itinerary '{itinerary_id}' has no version {version_number}"
        super().__init__(message)


class DisclosureSignalUnresolvable(ItineraryServiceError):
    """Raised when a payment/cancellation signal cannot be matched to a record.

    Logged, not fatal: it may be a benign race with booking creation.

    Attributes:
        booking_id: Booking the signal referenced.
        itinerary_id: Itinerary the signal referenced, if any.
        reason: Why the signal could not be applied.
    """

    def __init__(self, booking_id: str, itinerary_id: str | None, reason: str) -> None:
        self.booking_id = booking_id
        self.itinerary_id = itinerary_id
        self.reason = reason
        super().__init__(f"Unresolvable disclosure signal for booking '{booking_id}': {reason}")
