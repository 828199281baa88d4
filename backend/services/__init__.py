"""
Services layer for business logic.

This package contains the moderation analytics services. Each service
takes a database session and delegates queries to the repositories.
"""

from .activity_service import ActivityService
from .audit_service import AuditService
from .data_management_service import DataManagementService
from .trust_score_service import TrustScoreService

__all__ = [
    "ActivityService",
    "AuditService",
    "DataManagementService",
    "TrustScoreService",
]
