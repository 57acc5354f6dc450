"""SubmissionStateMachine: validates status changes against the transition map."""

from __future__ import annotations

from itineraries.domain.errors import InvalidStatusTransition
from itineraries.domain.types import SubmissionStatus
from itineraries.state_machine.transitions import TERMINAL_STATES, TRANSITIONS


class SubmissionStateMachine:
    """Finite state machine governing the submission processing lifecycle.

    The machine is positioned at a submission's stored status and answers
    whether a requested target is legal.  It never mutates storage; callers
    persist the new status with a compare-and-set on the status they read.

    Usage::

        sm = SubmissionStateMachine(SubmissionStatus.PENDING)
        sm.transition(SubmissionStatus.PROCESSING)   # -> PROCESSING
        sm.transition(SubmissionStatus.PARSED)       # -> PARSED
        sm.transition(SubmissionStatus.COMPLETED)    # -> COMPLETED (terminal)
    """

    def __init__(self, status: SubmissionStatus = SubmissionStatus.PENDING) -> None:
        self._status = status

    @property
    def status(self) -> SubmissionStatus:
        """Return the current status."""
        return self._status

    @property
    def is_terminal(self) -> bool:
        """Return True if the machine is in a terminal state (FAILED or COMPLETED)."""
        return self._status in TERMINAL_STATES

    def can_transition(self, target: SubmissionStatus) -> bool:
        return target in TRANSITIONS[self._status]

    def validate(self, target: SubmissionStatus) -> None:
        """Raise if *target* is not reachable from the current status.

        Args:
            target: The requested status.

        Raises:
            InvalidStatusTransition: If the pair is absent from the transition
                map, including every move out of a terminal state.
        """
        if self.is_terminal:
            raise InvalidStatusTransition(
                self._status, target, "submission is in a terminal state"
            )
        if not self.can_transition(target):
            raise InvalidStatusTransition(self._status, target)

    def transition(self, target: SubmissionStatus) -> SubmissionStatus:
        """Validate and move to *target*, returning the new status."""
        self.validate(target)
        self._status = target
        return target

    def allowed_targets(self) -> list[SubmissionStatus]:
        """Return a sorted list of statuses reachable from the current one."""
        return sorted(TRANSITIONS[self._status])
