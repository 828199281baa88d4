"""Enumerations shared by the moderation analytics services."""

from enum import Enum


class TrustLevel(str, Enum):
    """Trust level bands, lowest first."""

    CRITICAL = "critical"
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


# --- Activity feed ---


class ActivityType(str, Enum):
    USER_SIGNUP = "user_signup"
    HACKATHON_CREATED = "hackathon_created"
    HACKATHON_PUBLISHED = "hackathon_published"
    HACKATHON_UNPUBLISHED = "hackathon_unpublished"
    HACKATHON_ENDED = "hackathon_ended"
    REGISTRATION_CREATED = "registration_created"
    REGISTRATION_CANCELLED = "registration_cancelled"
    TEAM_FORMED = "team_formed"
    TEAM_JOINED = "team_joined"
    TEAM_LEFT = "team_left"
    SUBMISSION_CREATED = "submission_created"
    SUBMISSION_UPDATED = "submission_updated"
    MODERATION_ACTION = "moderation_action"
    REPORT_FILED = "report_filed"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    ORGANIZER_APPROVED = "organizer_approved"
    ORGANIZER_REVOKED = "organizer_revoked"
    JUDGE_ADDED = "judge_added"
    JUDGE_REMOVED = "judge_removed"


class ActivityTargetType(str, Enum):
    HACKATHON = "hackathon"
    USER = "user"
    TEAM = "team"
    SUBMISSION = "submission"
    REGISTRATION = "registration"
    ORGANIZER = "organizer"
    JUDGE = "judge"
    REPORT = "report"
    SYSTEM = "system"


class ActivitySeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class SuspiciousPatternType(str, Enum):
    RAPID_REGISTRATIONS = "rapid_registrations"
    BULK_ACCOUNT_CREATION = "bulk_account_creation"
    SPAM_SUBMISSIONS = "spam_submissions"
    UNUSUAL_LOGIN_PATTERN = "unusual_login_pattern"
    MASS_TEAM_JOINS = "mass_team_joins"
    REPEATED_REPORTS = "repeated_reports"


# --- Data management ---


class OrphanType(str, Enum):
    HACKATHON_WITHOUT_ORGANIZER = "hackathon_without_organizer"
    REGISTRATION_WITHOUT_USER = "registration_without_user"
    REGISTRATION_WITHOUT_HACKATHON = "registration_without_hackathon"
    TEAM_WITHOUT_HACKATHON = "team_without_hackathon"
    SUBMISSION_WITHOUT_HACKATHON = "submission_without_hackathon"
    SUBMISSION_WITHOUT_TEAM = "submission_without_team"
    CERTIFICATE_WITHOUT_GENERATOR = "certificate_without_generator"
    FEEDBACK_WITHOUT_HACKATHON = "feedback_without_hackathon"
    ANNOUNCEMENT_WITHOUT_HACKATHON = "announcement_without_hackathon"


# --- Audit log ---


class AuditActionType(str, Enum):
    # Hackathon actions
    HACKATHON_CREATED = "hackathon_created"
    HACKATHON_APPROVED = "hackathon_approved"
    HACKATHON_REJECTED = "hackathon_rejected"
    HACKATHON_PUBLISHED = "hackathon_published"
    HACKATHON_UNPUBLISHED = "hackathon_unpublished"
    HACKATHON_DELETED = "hackathon_deleted"
    HACKATHON_EDITED = "hackathon_edited"
    HACKATHON_FEATURED = "hackathon_featured"
    HACKATHON_UNFEATURED = "hackathon_unfeatured"
    HACKATHON_ARCHIVED = "hackathon_archived"
    HACKATHON_RESTORED = "hackathon_restored"

    # User moderation actions
    USER_WARNED = "user_warned"
    USER_MUTED = "user_muted"
    USER_UNMUTED = "user_unmuted"
    USER_SUSPENDED = "user_suspended"
    USER_UNSUSPENDED = "user_unsuspended"
    USER_BANNED = "user_banned"
    USER_UNBANNED = "user_unbanned"
    USER_DELETED = "user_deleted"
    USER_RESTORED = "user_restored"
    USER_PROFILE_EDITED = "user_profile_edited"

    # Organizer actions
    ORGANIZER_APPROVED = "organizer_approved"
    ORGANIZER_REJECTED = "organizer_rejected"
    ORGANIZER_REVOKED = "organizer_revoked"
    ORGANIZER_FLAGGED = "organizer_flagged"
    ORGANIZER_UNFLAGGED = "organizer_unflagged"
    ORGANIZER_SUSPENDED = "organizer_suspended"
    ORGANIZER_UNSUSPENDED = "organizer_unsuspended"

    # Blog actions
    BLOG_CREATED = "blog_created"
    BLOG_UPDATED = "blog_updated"
    BLOG_DELETED = "blog_deleted"
    BLOG_PUBLISHED = "blog_published"
    BLOG_UNPUBLISHED = "blog_unpublished"

    # Submission / project actions
    SUBMISSION_APPROVED = "submission_approved"
    SUBMISSION_REJECTED = "submission_rejected"
    SUBMISSION_DISQUALIFIED = "submission_disqualified"
    SUBMISSION_FLAGGED = "submission_flagged"
    SUBMISSION_DELETED = "submission_deleted"
    PROJECT_APPROVED = "project_approved"
    PROJECT_REJECTED = "project_rejected"
    PROJECT_FEATURED = "project_featured"
    PROJECT_DELETED = "project_deleted"

    # Certificate actions
    CERTIFICATE_GENERATED = "certificate_generated"
    CERTIFICATE_REVOKED = "certificate_revoked"

    # Admin role actions
    ADMIN_ROLE_GRANTED = "admin_role_granted"
    ADMIN_ROLE_REVOKED = "admin_role_revoked"
    ADMIN_ROLE_UPDATED = "admin_role_updated"
    ROLE_CHANGED = "role_changed"
    PERMISSIONS_UPDATED = "permissions_updated"

    # Queue actions
    QUEUE_ITEM_CLAIMED = "queue_item_claimed"
    QUEUE_ITEM_RELEASED = "queue_item_released"
    QUEUE_ITEM_RESOLVED = "queue_item_resolved"
    QUEUE_ITEM_DISMISSED = "queue_item_dismissed"
    QUEUE_ITEM_ESCALATED = "queue_item_escalated"

    # Report actions
    REPORT_REVIEWED = "report_reviewed"
    REPORT_RESOLVED = "report_resolved"
    REPORT_DISMISSED = "report_dismissed"

    # Judge actions
    JUDGE_INVITED = "judge_invited"
    JUDGE_REMOVED = "judge_removed"

    # Registration actions
    REGISTRATION_APPROVED = "registration_approved"
    REGISTRATION_REJECTED = "registration_rejected"
    REGISTRATION_CANCELLED = "registration_cancelled"

    # Data management actions
    DATA_EXPORTED = "data_exported"
    DATA_DELETED = "data_deleted"
    DATA_ANONYMIZED = "data_anonymized"
    BULK_ACTION = "bulk_action"

    # Content moderation
    CONTENT_FLAGGED = "content_flagged"
    CONTENT_UNFLAGGED = "content_unflagged"
    CONTENT_HIDDEN = "content_hidden"
    CONTENT_EDITED = "content_edited"

    # System actions
    SYSTEM_SETTINGS_UPDATED = "system_settings_updated"
    SYSTEM_BACKUP_CREATED = "system_backup_created"


# Audit actions that count against a user's trust score
USER_MODERATION_ACTIONS = (
    AuditActionType.USER_WARNED,
    AuditActionType.USER_MUTED,
    AuditActionType.USER_SUSPENDED,
    AuditActionType.USER_BANNED,
)

# Audit actions that count as organizer violations
ORGANIZER_VIOLATION_ACTIONS = (
    AuditActionType.ORGANIZER_SUSPENDED,
    AuditActionType.ORGANIZER_REVOKED,
    AuditActionType.HACKATHON_UNPUBLISHED,
)


class AuditTargetType(str, Enum):
    HACKATHON = "hackathon"
    USER = "user"
    ORGANIZER = "organizer"
    PROJECT = "project"
    SUBMISSION = "submission"
    REGISTRATION = "registration"
    QUEUE_ITEM = "queue_item"
    ADMIN_ROLE = "admin_role"
    SYSTEM = "system"
    BLOG = "blog"
    CERTIFICATE = "certificate"
    JUDGE = "judge"
    REPORT = "report"
    CONTENT = "content"
    SETTINGS = "settings"
    DATA = "data"


class HackathonStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"
    ENDED = "ended"
