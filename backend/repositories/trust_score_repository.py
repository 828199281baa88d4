"""
Trust Score Repository.

Collects the behavioral counters that feed trust scoring and stores the
calculated scores.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository


class TrustScoreRepository(BaseRepository[db_models.UserTrustScore]):
    """Repository for trust score factors and persisted scores."""

    def __init__(self, db: Session):
        """Initialize repository."""
        super().__init__(db_models.UserTrustScore, db)

    # ------------------------------------------------------------------
    # Factor collection
    # ------------------------------------------------------------------

    def get_profile(self, user_id: int) -> Optional[db_models.Profile]:
        return self.db.get(db_models.Profile, user_id)

    def get_organizer_profile(
        self, organizer_id: int
    ) -> Optional[db_models.OrganizerProfile]:
        return (
            self.db.query(db_models.OrganizerProfile)
            .filter(db_models.OrganizerProfile.user_id == organizer_id)
            .first()
        )

    def count_user_registrations(self, user_id: int) -> int:
        return (
            self.db.query(db_models.HackathonRegistration)
            .filter(db_models.HackathonRegistration.user_id == user_id)
            .count()
        )

    def count_reports_received(self, user_id: int) -> int:
        return (
            self.db.query(db_models.ModerationQueueItem)
            .filter(
                db_models.ModerationQueueItem.target_type == "user",
                db_models.ModerationQueueItem.target_id == str(user_id),
            )
            .count()
        )

    def count_valid_reports_filed(self, user_id: int) -> int:
        return (
            self.db.query(db_models.ModerationQueueItem)
            .filter(
                db_models.ModerationQueueItem.reporter_id == user_id,
                db_models.ModerationQueueItem.status == "resolved",
            )
            .count()
        )

    def get_organizer_hackathon_status_counts(
        self, organizer_id: int
    ) -> dict[str, int]:
        """Count an organizer's hackathons grouped by status value."""
        rows = (
            self.db.query(
                db_models.OrganizerHackathon.status,
                func.count(db_models.OrganizerHackathon.id),
            )
            .filter(db_models.OrganizerHackathon.organizer_id == organizer_id)
            .group_by(db_models.OrganizerHackathon.status)
            .all()
        )
        return {getattr(status, "value", status): count for status, count in rows}

    def count_organizer_participants(self, organizer_id: int) -> int:
        """Count registrations across every hackathon the organizer runs."""
        hackathon_ids = self.db.query(db_models.OrganizerHackathon.id).filter(
            db_models.OrganizerHackathon.organizer_id == organizer_id
        )
        return (
            self.db.query(db_models.HackathonRegistration)
            .filter(db_models.HackathonRegistration.hackathon_id.in_(hackathon_ids))
            .count()
        )

    # ------------------------------------------------------------------
    # Score persistence
    # ------------------------------------------------------------------

    def get_user_score(self, user_id: int) -> Optional[db_models.UserTrustScore]:
        return self.db.get(db_models.UserTrustScore, user_id)

    def get_organizer_score(
        self, organizer_id: int
    ) -> Optional[db_models.OrganizerTrustScore]:
        return self.db.get(db_models.OrganizerTrustScore, organizer_id)

    def upsert_user_score(
        self,
        user_id: int,
        score: int,
        factors: dict[str, Any],
        calculated_at: datetime,
    ) -> db_models.UserTrustScore:
        """Insert or replace the stored score for a user."""
        record = self.get_user_score(user_id)
        if record is None:
            record = db_models.UserTrustScore(user_id=user_id)
            self.db.add(record)
        record.score = score
        record.factors = factors
        record.last_calculated_at = calculated_at
        self.db.commit()
        self.db.refresh(record)
        return record

    def upsert_organizer_score(
        self,
        organizer_id: int,
        score: int,
        factors: dict[str, Any],
        is_flagged: bool,
        flag_reason: Optional[str],
        calculated_at: datetime,
    ) -> db_models.OrganizerTrustScore:
        """
        Insert or replace the stored score for an organizer.

        ``flagged_at`` is set when the organizer first becomes flagged and
        cleared when the flag is lifted.
        """
        record = self.get_organizer_score(organizer_id)
        if record is None:
            record = db_models.OrganizerTrustScore(organizer_id=organizer_id)
            self.db.add(record)
        if is_flagged and not record.is_flagged:
            record.flagged_at = calculated_at
        elif not is_flagged:
            record.flagged_at = None
        record.score = score
        record.factors = factors
        record.is_flagged = is_flagged
        record.flag_reason = flag_reason
        record.last_calculated_at = calculated_at
        self.db.commit()
        self.db.refresh(record)
        return record

    def get_flagged_organizers(self) -> list[db_models.OrganizerTrustScore]:
        return (
            self.db.query(db_models.OrganizerTrustScore)
            .filter(db_models.OrganizerTrustScore.is_flagged.is_(True))
            .order_by(db_models.OrganizerTrustScore.flagged_at.desc())
            .all()
        )

    def get_all_organizer_ids(self) -> list[int]:
        rows = self.db.query(db_models.OrganizerProfile.user_id).all()
        return [row[0] for row in rows]
