"""SQLAlchemy models package."""

from api.models.audit import (
    PIPELINE_ORDER,
    AuditRecord,
    AuditSource,
    AuditStatus,
    can_transition,
)

__all__ = [
    "AuditRecord",
    "AuditSource",
    "AuditStatus",
    "PIPELINE_ORDER",
    "can_transition",
]
