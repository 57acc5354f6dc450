"""Transition map defining all valid submission status changes."""

from itineraries.domain.types import SubmissionStatus

# current_status -> statuses it may move to.  Any pair not listed is invalid.
TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.PROCESSING}),
    SubmissionStatus.PROCESSING: frozenset(
        {SubmissionStatus.PARSED, SubmissionStatus.FAILED}
    ),
    SubmissionStatus.PARSED: frozenset(
        {SubmissionStatus.COMPLETED, SubmissionStatus.FAILED}
    ),
    SubmissionStatus.FAILED: frozenset(),
    SubmissionStatus.COMPLETED: frozenset(),
}

# States with no outgoing transitions.
TERMINAL_STATES: frozenset[SubmissionStatus] = frozenset(
    {SubmissionStatus.FAILED, SubmissionStatus.COMPLETED}
)

# Targets reachable only through linking a submission to an itinerary.
LINK_ONLY_STATES: frozenset[SubmissionStatus] = frozenset({SubmissionStatus.COMPLETED})
