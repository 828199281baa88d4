"""Models package - settings, Pydantic schemas and domain types."""

from .moderation_types import (
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
    AuditActionType,
    AuditTargetType,
    OrphanType,
    SuspiciousPatternType,
    TrustLevel,
)

__all__ = [
    "ActivitySeverity",
    "ActivityTargetType",
    "ActivityType",
    "AuditActionType",
    "AuditTargetType",
    "OrphanType",
    "SuspiciousPatternType",
    "TrustLevel",
]
