"""SubmissionService: intake, dedup, status transitions, and itinerary linking.

The primary write always completes (or fails) on its own; audit records,
domain events, and realtime notices are emitted afterwards as best-effort
side effects whose failures are logged and never surfaced to the caller.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog

from itineraries.audit.logger import AuditLogger
from itineraries.domain.errors import (
    DuplicateSubmission,
    InvalidStatusTransition,
    SubmissionNotFound,
)
from itineraries.domain.models import CreateSubmissionRequest, Submission, SubmissionPage
from itineraries.domain.types import (
    PROCESSED_STATUSES,
    ActorRole,
    SubmissionSource,
    SubmissionStatus,
)
from itineraries.events.bus import EventPublisher, publish_safely
from itineraries.events.models import DomainEvent, EventType
from itineraries.observability.metrics import DUPLICATE_SUBMISSIONS, SUBMISSIONS_CREATED
from itineraries.realtime.client import RealtimeNotifier
from itineraries.resilience.side_effects import best_effort
from itineraries.state_machine.machine import SubmissionStateMachine
from itineraries.state_machine.transitions import LINK_ONLY_STATES
from itineraries.storage.database import utc_now
from itineraries.submissions.hashing import compute_content_hash
from itineraries.submissions.store import SubmissionStore
from itineraries.submissions.validation import validate_content

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100


class SubmissionService:
    """Owns the submission lifecycle.

    Args:
        store: Submission persistence.
        audit_logger: Audit collaborator (``None`` disables auditing).
        publisher: Domain event publisher (``None`` disables events).
        notifier: Realtime notifier (``None`` disables realtime notices).
    """

    def __init__(
        self,
        store: SubmissionStore,
        audit_logger: AuditLogger | None = None,
        publisher: EventPublisher | None = None,
        notifier: RealtimeNotifier | None = None,
    ) -> None:
        self._store = store
        self._audit = audit_logger
        self._publisher = publisher
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def create_submission(
        self,
        request: CreateSubmissionRequest,
        actor_id: str | None = None,
        correlation_id: str | None = None,
    ) -> Submission:
        """Validate, deduplicate, and persist a new PENDING submission.

        Args:
            request: The creation request.
            actor_id: Acting user; defaults to the request's agent.
            correlation_id: Request correlation id for side channels.

        Returns:
            The stored submission.

        Raises:
            DuplicateSubmission: If identical content was already submitted.
            InvalidSubmission: If the content fails validation for its source.
        """
        content = request.content
        content_hash = compute_content_hash(content)

        existing = self._store.get_by_hash(content_hash)
        if existing is not None:
            DUPLICATE_SUBMISSIONS.inc()
            logger.info(
                "Duplicate submission rejected",
                original_submission_id=existing.id,
                request_id=request.request_id,
            )
            raise DuplicateSubmission(existing.id, content_hash)

        validate_content(content)

        now = datetime.now(tz=UTC)
        submission = Submission(
            id=str(uuid.uuid4()),
            request_id=request.request_id,
            agent_id=request.agent_id,
            traveler_id=request.traveler_id,
            source=SubmissionSource(content.source),
            content=content,
            status=SubmissionStatus.PENDING,
            content_hash=content_hash,
            original_content=content.model_dump_json(),
            created_at=now,
            updated_at=now,
        )
        try:
            self._store.insert(submission)
        except DuplicateSubmission:
            DUPLICATE_SUBMISSIONS.inc()
            raise

        SUBMISSIONS_CREATED.labels(source=submission.source.value).inc()
        logger.info(
            "Submission created",
            submission_id=submission.id,
            request_id=submission.request_id,
            source=submission.source.value,
        )
        self._after_create(submission, actor_id or request.agent_id, correlation_id)
        return submission

    def _after_create(
        self, submission: Submission, actor_id: str, correlation_id: str | None
    ) -> None:
        if self._audit is not None:
            best_effort(
                "audit.submission_created",
                self._audit.log_submission_created,
                submission_id=submission.id,
                actor_id=actor_id,
                request_id=submission.request_id,
                source=submission.source.value,
                content_hash=submission.content_hash,
                correlation_id=correlation_id,
            )

        publish_safely(
            self._publisher,
            DomainEvent.create(
                EventType.ITINERARY_SUBMITTED,
                {
                    "submission_id": submission.id,
                    "request_id": submission.request_id,
                    "agent_id": submission.agent_id,
                    "traveler_id": submission.traveler_id,
                    "source": submission.source.value,
                },
                correlation_id=correlation_id,
            ),
        )

        if self._notifier is not None:
            best_effort(
                "realtime.proposal_received",
                self._notifier.dispatch,
                "proposal_received",
                {
                    "request_id": submission.request_id,
                    "submission_id": submission.id,
                    "agent_id": submission.agent_id,
                    "traveler_id": submission.traveler_id,
                },
            )
            best_effort(
                "realtime.request_update",
                self._notifier.dispatch,
                "request_update",
                {
                    "request_id": submission.request_id,
                    "status": "proposal_submitted",
                    "submission_id": submission.id,
                },
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_submission(self, submission_id: str) -> Submission:
        """Return a submission by id.

        Raises:
            SubmissionNotFound: If no submission has this id.
        """
        submission = self._store.get(submission_id)
        if submission is None:
            raise SubmissionNotFound(submission_id)
        return submission

    def list_for_request(
        self,
        request_id: str,
        status: SubmissionStatus | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SubmissionPage:
        return self._list(page, limit, request_id=request_id, status=status)

    def list_for_agent(
        self,
        agent_id: str,
        status: SubmissionStatus | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SubmissionPage:
        return self._list(page, limit, agent_id=agent_id, status=status)

    def _list(self, page: int, limit: int, **filters: Any) -> SubmissionPage:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        items, total = self._store.search(limit=limit, offset=(page - 1) * limit, **filters)
        return SubmissionPage(items=items, total=total, page=page, limit=limit)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def update_status(
        self,
        submission_id: str,
        new_status: SubmissionStatus,
        actor_id: str,
        actor_role: ActorRole = ActorRole.SYSTEM,
        error_message: str | None = None,
        correlation_id: str | None = None,
    ) -> Submission:
        """Apply a validated status transition.

        COMPLETED is never reachable here; see :meth:`link_to_itinerary`.

        Args:
            submission_id: Submission to transition.
            new_status: Requested status.
            actor_id: Acting user or service.
            actor_role: Role of the actor.
            error_message: Required when *new_status* is FAILED.
            correlation_id: Request correlation id for side channels.

        Returns:
            The updated submission.

        Raises:
            SubmissionNotFound: If no submission has this id.
            InvalidStatusTransition: If the pair is illegal, FAILED lacks an
                error message, or a concurrent writer changed the status first.
                Stored state is left untouched in every case.
        """
        new_status = SubmissionStatus(new_status)
        current = self.get_submission(submission_id)

        try:
            if new_status in LINK_ONLY_STATES:
                raise InvalidStatusTransition(
                    current.status,
                    new_status,
                    "only linking to an itinerary completes a submission",
                )
            SubmissionStateMachine(current.status).validate(new_status)
            if new_status == SubmissionStatus.FAILED and not (error_message or "").strip():
                raise InvalidStatusTransition(
                    current.status, new_status, "error_message is required"
                )
        except InvalidStatusTransition as exc:
            logger.error(
                "Rejected submission status transition",
                submission_id=submission_id,
                current_status=current.status.value,
                requested_status=new_status.value,
                reason=exc.reason,
            )
            raise

        changed = self._store.compare_and_set_status(
            submission_id,
            expected_status=current.status,
            expected_row_version=current.row_version,
            new_status=new_status,
            now=utc_now(),
            error_message=error_message if new_status == SubmissionStatus.FAILED else None,
            stamp_processed=new_status in PROCESSED_STATUSES,
        )
        if not changed:
            latest = self.get_submission(submission_id)
            logger.error(
                "Lost concurrent status transition",
                submission_id=submission_id,
                expected_status=current.status.value,
                actual_status=latest.status.value,
                requested_status=new_status.value,
            )
            raise InvalidStatusTransition(
                latest.status, new_status, "status changed concurrently"
            )

        updated = self.get_submission(submission_id)
        logger.info(
            "Submission status changed",
            submission_id=submission_id,
            from_status=current.status.value,
            to_status=new_status.value,
        )
        if self._audit is not None:
            best_effort(
                "audit.status_changed",
                self._audit.log_status_changed,
                submission_id=submission_id,
                actor_id=actor_id,
                actor_role=actor_role,
                from_status=current.status.value,
                to_status=new_status.value,
                error_message=(
                    updated.error_message if new_status == SubmissionStatus.FAILED else None
                ),
                correlation_id=correlation_id,
            )
        return updated

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    def ensure_linkable(self, submission_id: str) -> Submission:
        """Return the submission if it can be linked right now.

        Raises:
            SubmissionNotFound: If no submission has this id.
            InvalidStatusTransition: If it is not PARSED.
        """
        submission = self.get_submission(submission_id)
        if submission.status != SubmissionStatus.PARSED:
            raise InvalidStatusTransition(
                submission.status,
                SubmissionStatus.COMPLETED,
                "only PARSED submissions can be linked to an itinerary",
            )
        return submission

    def link_to_itinerary(
        self,
        submission_id: str,
        itinerary_id: str,
        actor_id: str = "system",
        actor_role: ActorRole = ActorRole.SYSTEM,
        correlation_id: str | None = None,
    ) -> Submission:
        """Atomically set ``resulting_itinerary_id`` and move to COMPLETED.

        Raises:
            SubmissionNotFound: If no submission has this id.
            InvalidStatusTransition: If the submission is not PARSED (or was
                linked by a concurrent caller).
        """
        linked = self.record_link(submission_id, itinerary_id)
        self.announce_link(linked, actor_id, actor_role, correlation_id)
        return linked

    def record_link(self, submission_id: str, itinerary_id: str) -> Submission:
        """Write the link without emitting side effects.

        Callers that compose the link with other writes run this inside an
        enclosing ``Database.transaction()`` and call :meth:`announce_link`
        once that transaction has committed.

        Raises:
            SubmissionNotFound: If no submission has this id.
            InvalidStatusTransition: If the submission is not PARSED.
        """
        self.get_submission(submission_id)

        if not self._store.link(submission_id, itinerary_id, utc_now()):
            latest = self.get_submission(submission_id)
            logger.error(
                "Rejected itinerary link",
                submission_id=submission_id,
                itinerary_id=itinerary_id,
                current_status=latest.status.value,
            )
            raise InvalidStatusTransition(
                latest.status,
                SubmissionStatus.COMPLETED,
                "only PARSED submissions can be linked to an itinerary",
            )
        return self.get_submission(submission_id)

    def announce_link(
        self,
        linked: Submission,
        actor_id: str = "system",
        actor_role: ActorRole = ActorRole.SYSTEM,
        correlation_id: str | None = None,
    ) -> None:
        logger.info(
            "Submission linked to itinerary",
            submission_id=linked.id,
            itinerary_id=linked.resulting_itinerary_id,
        )
        if self._audit is not None:
            best_effort(
                "audit.submission_linked",
                self._audit.log_submission_linked,
                submission_id=linked.id,
                itinerary_id=linked.resulting_itinerary_id,
                actor_id=actor_id,
                from_status=SubmissionStatus.PARSED.value,
                actor_role=actor_role,
                correlation_id=correlation_id,
            )
