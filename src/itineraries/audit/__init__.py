"""Audit trail: models, storage, logger, and CLI for mutation tracking."""

from itineraries.audit.cli import build_parser
from itineraries.audit.logger import AuditLogger, current_correlation_id
from itineraries.audit.models import AuditEntry, AuditEventType, EntityType
from itineraries.audit.store import (
    close_audit_db,
    init_audit_db,
    insert_audit_entry,
    query_audit_trail,
)

__all__ = [
    "AuditEntry",
    "AuditEventType",
    "AuditLogger",
    "EntityType",
    "build_parser",
    "close_audit_db",
    "current_correlation_id",
    "init_audit_db",
    "insert_audit_entry",
    "query_audit_trail",
]
