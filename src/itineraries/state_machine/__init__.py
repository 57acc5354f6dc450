"""Submission processing state machine with transition validation."""

from itineraries.state_machine.machine import SubmissionStateMachine
from itineraries.state_machine.transitions import (
    LINK_ONLY_STATES,
    TERMINAL_STATES,
    TRANSITIONS,
)

__all__ = [
    "LINK_ONLY_STATES",
    "SubmissionStateMachine",
    "TERMINAL_STATES",
    "TRANSITIONS",
]
