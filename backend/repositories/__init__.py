"""
Repository pattern implementation for data access layer.
"""

from .activity_repository import ActivityRepository
from .audit_log_repository import AuditLogRepository
from .base import BaseRepository
from .integrity_repository import IntegrityRepository
from .trust_score_repository import TrustScoreRepository

__all__ = [
    "ActivityRepository",
    "AuditLogRepository",
    "BaseRepository",
    "IntegrityRepository",
    "TrustScoreRepository",
]
