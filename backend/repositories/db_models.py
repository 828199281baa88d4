"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

Child-to-parent references on the hackathon tables are plain integer
columns without foreign key constraints: parent rows can be removed
independently, which is what orphan detection looks for.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.moderation_types import HackathonStatus
from repositories.database import Base


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


# ============================================================================
# Platform tables (read by the analytics core)
# ============================================================================


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class OrganizerProfile(Base):
    __tablename__ = "organizer_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, unique=True, index=True, nullable=False
    )
    organization_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class OrganizerHackathon(Base):
    __tablename__ = "organizer_hackathons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # References organizer_profiles.user_id
    organizer_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[HackathonStatus] = mapped_column(
        Enum(HackathonStatus), default=HackathonStatus.PENDING, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class HackathonRegistration(Base):
    __tablename__ = "hackathon_registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hackathon_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    # Null for guest registrations
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class HackathonTeam(Base):
    __tablename__ = "hackathon_teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hackathon_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class HackathonSubmission(Base):
    __tablename__ = "hackathon_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hackathon_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    # Null for solo submissions
    team_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class HackathonParticipantFeedback(Base):
    __tablename__ = "hackathon_participant_feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hackathon_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class HackathonAnnouncement(Base):
    __tablename__ = "hackathon_announcements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hackathon_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class Certificate(Base):
    __tablename__ = "certificates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # References profiles.id of the admin who generated it
    generated_by: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    recipient_name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class ModerationQueueItem(Base):
    """A user report waiting for (or after) admin review."""

    __tablename__ = "moderation_queue"
    __table_args__ = (Index("ix_moderation_queue_target", "target_type", "target_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reporter_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default="pending",
        nullable=False,
        comment="Status: pending, resolved, dismissed",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


# ============================================================================
# Moderation analytics tables
# ============================================================================


class ActivityFeedEntry(Base):
    """Append-only platform activity stream."""

    __tablename__ = "activity_feed"
    __table_args__ = (
        Index("ix_activity_feed_type_created", "activity_type", "created_at"),
        Index("ix_activity_feed_actor_created", "actor_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    actor_username: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    actor_email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    activity_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, default=dict, nullable=False
    )
    severity: Mapped[str] = mapped_column(
        String(20),
        default="info",
        nullable=False,
        comment="Severity: info, warning, critical",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False, index=True
    )


class AdminAuditLog(Base):
    """
    Immutable record of an administrative action.

    Rows are only ever inserted; see AuditLogRepository.
    """

    __tablename__ = "admin_audit_logs"
    __table_args__ = (
        Index("ix_admin_audit_target", "target_type", "target_id"),
        Index("ix_admin_audit_admin_created", "admin_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False)
    admin_email: Mapped[str] = mapped_column(String, nullable=False)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str] = mapped_column(String(128), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    before_state: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    after_state: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False, index=True
    )


class UserTrustScore(Base):
    __tablename__ = "user_trust_scores"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    factors: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    last_calculated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class OrganizerTrustScore(Base):
    __tablename__ = "organizer_trust_scores"

    organizer_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    factors: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    flag_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    flagged_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_calculated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
