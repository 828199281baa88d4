from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from models.config import settings
from models.moderation_types import (
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
    AuditActionType,
    AuditTargetType,
    OrphanType,
    SuspiciousPatternType,
)

RecordId = Union[int, str]


class ValidationResult(BaseModel):
    """Outcome of a pure input validator."""

    valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=errors)


# ============================================================================
# Trust Score Schemas
# ============================================================================


class UserTrustFactors(BaseModel):
    """Behavioral counters for a participant."""

    model_config = ConfigDict(frozen=True)

    account_age_days: int = Field(default=0, ge=0)
    successful_hackathons: int = Field(default=0, ge=0)
    reports_received: int = Field(default=0, ge=0)
    reports_filed_valid: int = Field(default=0, ge=0)
    moderation_actions: int = Field(default=0, ge=0)
    verified_email: bool = False


class OrganizerTrustFactors(BaseModel):
    """Behavioral counters for a hackathon organizer."""

    model_config = ConfigDict(frozen=True)

    total_hackathons: int = Field(default=0, ge=0)
    approved_hackathons: int = Field(default=0, ge=0)
    rejected_hackathons: int = Field(default=0, ge=0)
    total_participants: int = Field(default=0, ge=0)
    violations: int = Field(default=0, ge=0)
    account_age_days: int = Field(default=0, ge=0)


class TrustScoreBreakdown(BaseModel):
    """Component-wise explanation of a trust score."""

    base_score: int
    account_age_bonus: int = 0
    activity_bonus: int = 0
    verification_bonus: int = 0
    reports_penalty: int = 0
    moderation_penalty: int = 0
    final_score: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def bonuses(self) -> int:
        return self.account_age_bonus + self.activity_bonus + self.verification_bonus

    @computed_field  # type: ignore[prop-decorator]
    @property
    def penalties(self) -> int:
        return self.reports_penalty + self.moderation_penalty


class TrustScoreResult(BaseModel):
    """Trust score with the factors and breakdown that produced it."""

    score: int = Field(ge=0, le=100)
    factors: Union[UserTrustFactors, OrganizerTrustFactors]
    breakdown: TrustScoreBreakdown

    @model_validator(mode="after")
    def check_final_score(self) -> "TrustScoreResult":
        if self.breakdown.final_score != self.score:
            raise ValueError("breakdown.final_score must equal score")
        return self


class AutoFlagResult(BaseModel):
    """Decision on whether an organizer should be flagged for review."""

    should_flag: bool
    reason: Optional[str] = None
    rejection_count: int
    violation_count: int
    threshold: int


class UserTrustScoreRecord(BaseModel):
    """Persisted user trust score."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    score: int
    factors: dict[str, Any]
    last_calculated_at: datetime


class OrganizerTrustScoreRecord(BaseModel):
    """Persisted organizer trust score with auto-flag state."""

    model_config = ConfigDict(from_attributes=True)

    organizer_id: int
    score: int
    factors: dict[str, Any]
    is_flagged: bool
    flag_reason: Optional[str] = None
    flagged_at: Optional[datetime] = None
    last_calculated_at: datetime


# ============================================================================
# Activity Feed Schemas
# ============================================================================


class CreateActivityInput(BaseModel):
    """Raw activity payload; semantic checks happen in validate_activity_input."""

    activity_type: Optional[str] = None
    actor_id: Optional[str] = None
    actor_username: Optional[str] = None
    actor_email: Optional[str] = None
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    action: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    severity: Optional[str] = None


class ActivityItem(BaseModel):
    """A single activity feed entry. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    activity_type: ActivityType
    actor_id: Optional[str] = None
    actor_username: Optional[str] = None
    actor_email: Optional[str] = None
    target_type: ActivityTargetType
    target_id: str
    target_name: Optional[str] = None
    action: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    severity: ActivitySeverity = ActivitySeverity.INFO
    created_at: datetime


class ActivityFilters(BaseModel):
    """Filters for activity feed queries."""

    activity_type: Optional[list[ActivityType]] = None
    severity: Optional[list[ActivitySeverity]] = None
    actor_id: Optional[str] = None
    target_type: Optional[list[ActivityTargetType]] = None
    target_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class ActivityFeedPage(BaseModel):
    """Cursor-paginated activity feed response."""

    activities: list[ActivityItem]
    has_more: bool
    next_cursor: Optional[str] = None


class AnomalyDetectionConfig(BaseModel):
    """Spike detection tuning."""

    model_config = ConfigDict(frozen=True)

    spike_threshold: float = Field(default=2.0, gt=1)
    average_window_minutes: int = Field(default=60, gt=0)
    current_window_minutes: int = Field(default=5, gt=0)
    minimum_activities: int = Field(default=10, ge=0)

    @model_validator(mode="after")
    def check_windows(self) -> "AnomalyDetectionConfig":
        if self.current_window_minutes >= self.average_window_minutes:
            raise ValueError(
                "current_window_minutes must be less than average_window_minutes"
            )
        return self

    @classmethod
    def from_settings(cls) -> "AnomalyDetectionConfig":
        """Build the configuration from application settings."""
        return cls(
            spike_threshold=settings.ANOMALY_SPIKE_THRESHOLD,
            average_window_minutes=settings.ANOMALY_AVERAGE_WINDOW_MINUTES,
            current_window_minutes=settings.ANOMALY_CURRENT_WINDOW_MINUTES,
            minimum_activities=settings.ANOMALY_MINIMUM_ACTIVITIES,
        )


class SpikeDetectionResult(BaseModel):
    """Outcome of comparing the current activity rate with the baseline."""

    is_spike: bool
    current_rate: float = Field(ge=0)
    average_rate: float = Field(ge=0)
    threshold: float
    ratio: float = Field(ge=0)


class ActivityStats(BaseModel):
    """Aggregate activity statistics for the dashboard."""

    activities_per_minute: float
    average_activities_per_minute: float
    is_spike: bool
    recent_suspicious_count: int
    total_activities_today: int
    activities_by_type: dict[str, int]
    activities_by_severity: dict[str, int]


class SuspiciousActivityResult(BaseModel):
    """Outcome of a suspicious pattern check."""

    is_detected: bool
    pattern_type: Optional[SuspiciousPatternType] = None
    actor_id: Optional[str] = None
    count: int
    threshold: int
    time_window_minutes: int
    details: str


# ============================================================================
# Data Management Schemas
# ============================================================================


class MissingReference(BaseModel):
    """The parent reference a child row could not resolve."""

    table: str
    column: str
    expected_id: Optional[RecordId] = None


class OrphanRecord(BaseModel):
    """A child row whose referenced parent could not be found at scan time."""

    id: RecordId
    type: OrphanType
    table_name: str
    record_data: dict[str, Any]
    missing_reference: MissingReference
    created_at: Optional[datetime] = None
    detected_at: datetime


class OrphanDetectionSummary(BaseModel):
    total_orphans: int
    by_type: dict[str, int]


class OrphanDetectionResult(BaseModel):
    orphans: list[OrphanRecord]
    summary: OrphanDetectionSummary
    scanned_at: datetime


class OrphanSummary(BaseModel):
    total_orphans: int
    by_type: dict[str, int]
    last_scan: datetime


class OrphanDetectionFilters(BaseModel):
    """Raw detection filters; checked by validate_orphan_detection_filters."""

    types: Optional[list[str]] = None
    limit: Optional[int] = None


class CleanupRequest(BaseModel):
    """Raw cleanup request; checked by validate_cleanup_request."""

    orphan_ids: Optional[list[RecordId]] = None
    orphan_type: Optional[str] = None
    reason: Optional[str] = None
    create_backup: Optional[bool] = None


class CleanupError(BaseModel):
    id: RecordId
    error: str


class CleanupResult(BaseModel):
    """Per-batch cleanup outcome. ``deleted + failed`` always equals ``total``."""

    total: int = Field(ge=0)
    deleted: int = Field(ge=0)
    failed: int = Field(ge=0)
    errors: list[CleanupError] = Field(default_factory=list)
    backup_id: Optional[str] = None

    @model_validator(mode="after")
    def check_totals(self) -> "CleanupResult":
        if self.deleted + self.failed != self.total:
            raise ValueError("deleted + failed must equal total")
        if self.failed != len(self.errors):
            raise ValueError("failed must equal the number of errors")
        return self


class CleanupHistoryEntry(BaseModel):
    id: str
    orphan_type: Optional[str] = None
    records_deleted: int
    performed_by: str
    performed_at: datetime
    reason: str
    backup_id: Optional[str] = None


class StorageUsage(BaseModel):
    category: str
    size_bytes: int
    size_formatted: str
    file_count: int
    last_updated: datetime


class StorageStats(BaseModel):
    total_size_bytes: int
    total_size_formatted: str
    by_category: list[StorageUsage]
    recommendations: list[str]


# ============================================================================
# Audit Log Schemas
# ============================================================================


class CreateAuditLogInput(BaseModel):
    """Raw audit log payload; checked by validate_audit_log_input."""

    action_type: Optional[str] = None
    admin_id: Optional[str] = None
    admin_email: Optional[str] = None
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    reason: Optional[str] = None
    before_state: Optional[dict[str, Any]] = None
    after_state: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditLogEntry(BaseModel):
    """An append-only record of an administrative action."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    action_type: AuditActionType
    admin_id: str
    admin_email: str
    target_type: AuditTargetType
    target_id: str
    reason: str
    before_state: Optional[dict[str, Any]] = None
    after_state: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime


class AuditDiffEntry(BaseModel):
    field: str
    before: Any = None
    after: Any = None
    change_type: Literal["added", "removed", "modified"]


class AuditDiff(BaseModel):
    entries: list[AuditDiffEntry]
    has_changes: bool


class AuditLogFilters(BaseModel):
    admin_id: Optional[str] = None
    action_type: Optional[list[AuditActionType]] = None
    target_type: Optional[list[AuditTargetType]] = None
    target_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default_factory=lambda: settings.AUDIT_LOG_PAGE_SIZE, ge=1)


class AuditLogPage(BaseModel):
    logs: list[AuditLogEntry]
    total: int
    page: int
    total_pages: int
