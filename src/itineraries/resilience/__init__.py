"""Resilience infrastructure for outbound calls and post-commit side effects."""

from itineraries.resilience.retry import resilient_call
from itineraries.resilience.side_effects import best_effort

__all__ = [
    "best_effort",
    "resilient_call",
]
