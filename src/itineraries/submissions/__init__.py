"""Submission intake, deduplication, validation, and lifecycle management."""

from itineraries.submissions.hashing import canonicalize, compute_content_hash
from itineraries.submissions.service import SubmissionService
from itineraries.submissions.store import SubmissionStore
from itineraries.submissions.validation import parse_structured_draft, validate_content

__all__ = [
    "SubmissionService",
    "SubmissionStore",
    "canonicalize",
    "compute_content_hash",
    "parse_structured_draft",
    "validate_content",
]
