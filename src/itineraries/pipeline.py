"""Completion step of submission processing.

When external processing has moved a submission to PARSED, the pipeline
turns its content into a new itinerary version and links the submission to
that itinerary, which is the only way a submission becomes COMPLETED.
Both writes share one transaction, so concurrent completions of the same
submission leave exactly one version behind.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

import structlog

from itineraries.domain.errors import InvalidSubmission
from itineraries.domain.models import (
    ItineraryItemInput,
    ItineraryVersion,
    Submission,
)
from itineraries.domain.types import ActorRole, SubmissionSource
from itineraries.storage.database import Database
from itineraries.submissions.service import SubmissionService
from itineraries.submissions.validation import parse_structured_draft
from itineraries.versions.service import VersionService

logger = structlog.get_logger()


class SubmissionPipeline:
    """Create a version from a parsed submission and link the two.

    Args:
        submissions: Submission lifecycle service.
        versions: Itinerary version service.
        db: The primary database both services write to.
    """

    def __init__(
        self, submissions: SubmissionService, versions: VersionService, db: Database
    ) -> None:
        self._submissions = submissions
        self._versions = versions
        self._db = db

    def complete_submission(
        self,
        submission_id: str,
        actor_id: str,
        actor_role: ActorRole = ActorRole.SYSTEM,
        items: Sequence[ItineraryItemInput] | None = None,
        itinerary_id: str | None = None,
        change_reason: str | None = None,
        correlation_id: str | None = None,
    ) -> tuple[Submission, ItineraryVersion]:
        """Append a version built from *submission_id* and link it.

        Args:
            submission_id: A PARSED submission.
            actor_id: Acting user or service.
            actor_role: Role of the actor.
            items: Parsed items; defaults to the structured payload's items
                for STRUCTURED_INPUT submissions and is required otherwise.
            itinerary_id: Existing itinerary to append to; a new itinerary id
                is generated when ``None``.
            change_reason: Reason recorded on the version.
            correlation_id: Request correlation id for side channels.

        Returns:
            The COMPLETED submission and the version it produced.

        Raises:
            SubmissionNotFound: If no submission has this id.
            InvalidStatusTransition: If the submission is not PARSED.
            InvalidSubmission: If no items are available.
        """
        itinerary_id = itinerary_id or str(uuid.uuid4())
        # One write transaction: a version and its link commit together or not at all.
        with self._db.transaction():
            submission = self._submissions.ensure_linkable(submission_id)
            if items is None:
                if submission.source != SubmissionSource.STRUCTURED_INPUT:
                    raise InvalidSubmission(
                        submission.source,
                        "parsed items are required to complete this submission",
                    )
                items = parse_structured_draft(submission.content).items  # type: ignore[arg-type]

            version = self._versions.record_version(
                itinerary_id,
                items,
                actor_id=actor_id,
                actor_role=actor_role,
                source_submission_id=submission.id,
                change_reason=change_reason,
            )
            linked = self._submissions.record_link(submission.id, itinerary_id)

        self._versions.announce_version(version, actor_id, actor_role, correlation_id)
        self._submissions.announce_link(linked, actor_id, actor_role, correlation_id)
        logger.info(
            "Submission completed",
            submission_id=submission.id,
            itinerary_id=itinerary_id,
            version_number=version.version_number,
        )
        return linked, version
