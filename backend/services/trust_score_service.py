"""
Service for user and organizer trust score calculations.

The scoring functions are pure: they take a frozen factor snapshot and
return the score with a breakdown. ``TrustScoreService`` collects factors
from storage and persists the results.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from core.clock import Clock, system_clock
from helpers.time_utils import ensure_utc
from models.config import settings
from models.moderation_types import (
    ORGANIZER_VIOLATION_ACTIONS,
    USER_MODERATION_ACTIONS,
    HackathonStatus,
    TrustLevel,
)
from models.schemas import (
    AutoFlagResult,
    OrganizerTrustFactors,
    OrganizerTrustScoreRecord,
    TrustScoreBreakdown,
    TrustScoreResult,
    UserTrustFactors,
    UserTrustScoreRecord,
)
from repositories.audit_log_repository import AuditLogRepository
from repositories.trust_score_repository import TrustScoreRepository

# Trust score constants
BASE_SCORE = 50
MAX_SCORE = 100
MIN_SCORE = 0
DAYS_PER_MONTH = 30

# User scoring
USER_AGE_POINTS_PER_MONTH = 2
USER_MAX_AGE_BONUS = 20
HACKATHON_POINTS = 3
MAX_HACKATHON_BONUS = 15
VALID_REPORT_POINTS = 2
MAX_VALID_REPORT_BONUS = 10
VERIFIED_EMAIL_BONUS = 5
REPORT_RECEIVED_PENALTY = 5
MAX_REPORT_RECEIVED_PENALTY = 25
MODERATION_ACTION_PENALTY = 10
MAX_MODERATION_PENALTY = 30

# Organizer scoring
ORGANIZER_AGE_POINTS_PER_MONTH = 1
ORGANIZER_MAX_AGE_BONUS = 10
APPROVED_HACKATHON_POINTS = 5
MAX_APPROVED_HACKATHON_BONUS = 25
PARTICIPANTS_PER_POINT = 10
MAX_PARTICIPANT_BONUS = 15
REJECTED_HACKATHON_PENALTY = 10
MAX_REJECTED_HACKATHON_PENALTY = 30
VIOLATION_PENALTY = 15
MAX_VIOLATION_PENALTY = 45

# Lower bound of each level, highest first
TRUST_LEVEL_THRESHOLDS = (
    (80, TrustLevel.EXCELLENT),
    (60, TrustLevel.GOOD),
    (40, TrustLevel.FAIR),
    (20, TrustLevel.POOR),
)

# Hackathon statuses that count as approved for organizers
APPROVED_STATUSES = (HackathonStatus.PUBLISHED, HackathonStatus.ENDED)


def _clamp_score(score: float) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, round(score)))


def calculate_user_trust_score(factors: UserTrustFactors) -> TrustScoreResult:
    """
    Calculate the trust score of a participant.

    Formula:
    - Base: 50
    - Account age: +2 per full 30 days (max +20)
    - Hackathons participated: +3 each (max +15)
    - Valid reports filed: +2 each (max +10)
    - Verified email: +5
    - Reports received: -5 each (max -25)
    - Moderation actions: -10 each (max -30)

    Args:
        factors: Behavioral counters for the user

    Returns:
        Score clamped to 0-100 with its breakdown
    """
    months_old = factors.account_age_days // DAYS_PER_MONTH
    age_bonus = min(months_old * USER_AGE_POINTS_PER_MONTH, USER_MAX_AGE_BONUS)
    hackathon_bonus = min(
        factors.successful_hackathons * HACKATHON_POINTS, MAX_HACKATHON_BONUS
    )
    report_bonus = min(
        factors.reports_filed_valid * VALID_REPORT_POINTS, MAX_VALID_REPORT_BONUS
    )
    verification_bonus = VERIFIED_EMAIL_BONUS if factors.verified_email else 0

    reports_penalty = min(
        factors.reports_received * REPORT_RECEIVED_PENALTY,
        MAX_REPORT_RECEIVED_PENALTY,
    )
    moderation_penalty = min(
        factors.moderation_actions * MODERATION_ACTION_PENALTY,
        MAX_MODERATION_PENALTY,
    )

    score = (
        BASE_SCORE
        + age_bonus
        + hackathon_bonus
        + report_bonus
        + verification_bonus
        - reports_penalty
        - moderation_penalty
    )
    final_score = _clamp_score(score)

    return TrustScoreResult(
        score=final_score,
        factors=factors,
        breakdown=TrustScoreBreakdown(
            base_score=BASE_SCORE,
            account_age_bonus=age_bonus,
            activity_bonus=hackathon_bonus + report_bonus,
            verification_bonus=verification_bonus,
            reports_penalty=reports_penalty,
            moderation_penalty=moderation_penalty,
            final_score=final_score,
        ),
    )


def calculate_organizer_trust_score(
    factors: OrganizerTrustFactors,
) -> TrustScoreResult:
    """
    Calculate the trust score of a hackathon organizer.

    Formula:
    - Base: 50
    - Account age: +1 per full 30 days (max +10)
    - Approved hackathons: +5 each (max +25)
    - Participants: +1 per 10 participants (max +15)
    - Rejected hackathons: -10 each (max -30)
    - Violations: -15 each (max -45)

    Rejections and violations are both reported as moderation penalty in
    the breakdown.
    """
    months_old = factors.account_age_days // DAYS_PER_MONTH
    age_bonus = min(
        months_old * ORGANIZER_AGE_POINTS_PER_MONTH, ORGANIZER_MAX_AGE_BONUS
    )
    approved_bonus = min(
        factors.approved_hackathons * APPROVED_HACKATHON_POINTS,
        MAX_APPROVED_HACKATHON_BONUS,
    )
    participant_bonus = min(
        factors.total_participants // PARTICIPANTS_PER_POINT,
        MAX_PARTICIPANT_BONUS,
    )

    rejected_penalty = min(
        factors.rejected_hackathons * REJECTED_HACKATHON_PENALTY,
        MAX_REJECTED_HACKATHON_PENALTY,
    )
    violation_penalty = min(
        factors.violations * VIOLATION_PENALTY, MAX_VIOLATION_PENALTY
    )

    score = (
        BASE_SCORE
        + age_bonus
        + approved_bonus
        + participant_bonus
        - rejected_penalty
        - violation_penalty
    )
    final_score = _clamp_score(score)

    return TrustScoreResult(
        score=final_score,
        factors=factors,
        breakdown=TrustScoreBreakdown(
            base_score=BASE_SCORE,
            account_age_bonus=age_bonus,
            activity_bonus=approved_bonus + participant_bonus,
            verification_bonus=0,
            reports_penalty=0,
            moderation_penalty=rejected_penalty + violation_penalty,
            final_score=final_score,
        ),
    )


def get_trust_score_level(score: int) -> TrustLevel:
    """
    Get the trust level band for a score.

    Bands: >=80 excellent, >=60 good, >=40 fair, >=20 poor, else critical.
    """
    for lower_bound, level in TRUST_LEVEL_THRESHOLDS:
        if score >= lower_bound:
            return level
    return TrustLevel.CRITICAL


def is_valid_trust_score(score: object) -> bool:
    """Check that a score is an integer within 0-100."""
    if isinstance(score, bool) or not isinstance(score, int):
        return False
    return MIN_SCORE <= score <= MAX_SCORE


def should_auto_flag_organizer(
    factors: OrganizerTrustFactors, threshold: Optional[int] = None
) -> AutoFlagResult:
    """
    Decide whether an organizer needs admin review.

    The organizer is flagged when rejections plus violations reach the
    threshold. The reason names whichever count crossed it.

    Args:
        factors: Organizer counters
        threshold: Override for ORGANIZER_AUTO_FLAG_THRESHOLD

    Returns:
        AutoFlagResult with a reason only when flagged
    """
    if threshold is None:
        threshold = settings.ORGANIZER_AUTO_FLAG_THRESHOLD

    rejections = factors.rejected_hackathons
    violations = factors.violations
    combined = rejections + violations

    reason: Optional[str] = None
    if rejections >= threshold:
        reason = (
            f"Organizer has {rejections} rejected hackathons "
            f"(threshold: {threshold})"
        )
    elif violations >= threshold:
        reason = f"Organizer has {violations} violations (threshold: {threshold})"
    elif combined >= threshold:
        reason = (
            f"Organizer has {combined} combined rejections and violations "
            f"(threshold: {threshold})"
        )

    return AutoFlagResult(
        should_flag=reason is not None,
        reason=reason,
        rejection_count=rejections,
        violation_count=violations,
        threshold=threshold,
    )


def _account_age_days(created_at: Optional[datetime], now: datetime) -> int:
    if created_at is None:
        return 0
    return max(0, (ensure_utc(now) - ensure_utc(created_at)).days)


class TrustScoreService:
    """Service for collecting trust factors and storing trust scores."""

    @staticmethod
    def collect_user_factors(
        db: Session, user_id: int, clock: Clock = system_clock
    ) -> UserTrustFactors:
        """
        Read the counters that feed a user's trust score.

        A user without a profile gets zero age and an unverified email.
        """
        trust_repo = TrustScoreRepository(db)
        audit_repo = AuditLogRepository(db)

        profile = trust_repo.get_profile(user_id)
        return UserTrustFactors(
            account_age_days=_account_age_days(
                profile.created_at if profile else None, clock.now()
            ),
            successful_hackathons=trust_repo.count_user_registrations(user_id),
            reports_received=trust_repo.count_reports_received(user_id),
            reports_filed_valid=trust_repo.count_valid_reports_filed(user_id),
            moderation_actions=audit_repo.count_target_actions(
                str(user_id), [action.value for action in USER_MODERATION_ACTIONS]
            ),
            verified_email=bool(profile.is_verified) if profile else False,
        )

    @staticmethod
    def collect_organizer_factors(
        db: Session, organizer_id: int, clock: Clock = system_clock
    ) -> OrganizerTrustFactors:
        """Read the counters that feed an organizer's trust score."""
        trust_repo = TrustScoreRepository(db)
        audit_repo = AuditLogRepository(db)

        organizer = trust_repo.get_organizer_profile(organizer_id)
        status_counts = trust_repo.get_organizer_hackathon_status_counts(
            organizer_id
        )
        return OrganizerTrustFactors(
            total_hackathons=sum(status_counts.values()),
            approved_hackathons=sum(
                status_counts.get(status.value, 0) for status in APPROVED_STATUSES
            ),
            rejected_hackathons=status_counts.get(HackathonStatus.REJECTED.value, 0),
            total_participants=trust_repo.count_organizer_participants(organizer_id),
            violations=audit_repo.count_target_actions(
                str(organizer_id),
                [action.value for action in ORGANIZER_VIOLATION_ACTIONS],
            ),
            account_age_days=_account_age_days(
                organizer.created_at if organizer else None, clock.now()
            ),
        )

    @staticmethod
    def recalculate_user_score(
        db: Session, user_id: int, clock: Clock = system_clock
    ) -> UserTrustScoreRecord:
        """
        Recalculate and store a user's trust score.

        Args:
            db: Database session
            user_id: ID of user to update
            clock: Time source for account age and timestamps

        Returns:
            The stored score
        """
        factors = TrustScoreService.collect_user_factors(db, user_id, clock)
        result = calculate_user_trust_score(factors)

        record = TrustScoreRepository(db).upsert_user_score(
            user_id=user_id,
            score=result.score,
            factors=factors.model_dump(),
            calculated_at=clock.now(),
        )
        logger.info(f"Trust score for user {user_id}: {result.score}")
        return UserTrustScoreRecord.model_validate(record)

    @staticmethod
    def recalculate_organizer_score(
        db: Session,
        organizer_id: int,
        clock: Clock = system_clock,
        threshold: Optional[int] = None,
    ) -> OrganizerTrustScoreRecord:
        """
        Recalculate and store an organizer's trust score and auto-flag state.

        Returns:
            The stored score with is_flagged / flag_reason / flagged_at
        """
        factors = TrustScoreService.collect_organizer_factors(db, organizer_id, clock)
        result = calculate_organizer_trust_score(factors)
        flag = should_auto_flag_organizer(factors, threshold)

        record = TrustScoreRepository(db).upsert_organizer_score(
            organizer_id=organizer_id,
            score=result.score,
            factors=factors.model_dump(),
            is_flagged=flag.should_flag,
            flag_reason=flag.reason,
            calculated_at=clock.now(),
        )
        if flag.should_flag:
            logger.warning(
                f"Organizer {organizer_id} flagged for review: {flag.reason}"
            )
        else:
            logger.info(f"Trust score for organizer {organizer_id}: {result.score}")
        return OrganizerTrustScoreRecord.model_validate(record)

    @staticmethod
    def recalculate_all_organizers(
        db: Session, clock: Clock = system_clock
    ) -> list[OrganizerTrustScoreRecord]:
        """Recalculate every organizer with a profile."""
        return [
            TrustScoreService.recalculate_organizer_score(db, organizer_id, clock)
            for organizer_id in TrustScoreRepository(db).get_all_organizer_ids()
        ]

    @staticmethod
    def get_flagged_organizers(db: Session) -> list[OrganizerTrustScoreRecord]:
        """Get flagged organizers, most recently flagged first."""
        return [
            OrganizerTrustScoreRecord.model_validate(record)
            for record in TrustScoreRepository(db).get_flagged_organizers()
        ]
