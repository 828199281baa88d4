"""
Activity Feed Repository.

Append-only access to the platform activity stream, plus the windowed
queries used by spike and suspicious pattern detection.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository


class ActivityRepository(BaseRepository[db_models.ActivityFeedEntry]):
    """Repository for activity feed operations."""

    def __init__(self, db: Session):
        """Initialize repository."""
        super().__init__(db_models.ActivityFeedEntry, db)

    def _build_query(
        self,
        activity_types: Optional[list[str]] = None,
        severities: Optional[list[str]] = None,
        actor_id: Optional[str] = None,
        target_types: Optional[list[str]] = None,
        target_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        """Build filtered query for activities."""
        query = self.db.query(self.model)

        if activity_types:
            query = query.filter(self.model.activity_type.in_(activity_types))
        if severities:
            query = query.filter(self.model.severity.in_(severities))
        if actor_id:
            query = query.filter(self.model.actor_id == actor_id)
        if target_types:
            query = query.filter(self.model.target_type.in_(target_types))
        if target_id:
            query = query.filter(self.model.target_id == target_id)
        if start_date:
            query = query.filter(self.model.created_at >= start_date)
        if end_date:
            query = query.filter(self.model.created_at <= end_date)

        return query

    def get_feed(
        self,
        limit: int,
        cursor: Optional[tuple[datetime, str]] = None,
        activity_types: Optional[list[str]] = None,
        severities: Optional[list[str]] = None,
        actor_id: Optional[str] = None,
        target_types: Optional[list[str]] = None,
        target_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[db_models.ActivityFeedEntry]:
        """
        Get activities newest first, strictly after a keyset cursor.

        Args:
            limit: Maximum records to return
            cursor: (created_at, id) of the last row of the previous page

        Returns:
            Up to ``limit`` entries ordered by created_at desc, id desc
        """
        query = self._build_query(
            activity_types=activity_types,
            severities=severities,
            actor_id=actor_id,
            target_types=target_types,
            target_id=target_id,
            start_date=start_date,
            end_date=end_date,
        )
        if cursor is not None:
            cursor_at, cursor_id = cursor
            query = query.filter(
                or_(
                    self.model.created_at < cursor_at,
                    and_(
                        self.model.created_at == cursor_at,
                        self.model.id < cursor_id,
                    ),
                )
            )
        return (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .limit(limit)
            .all()
        )

    def get_since(
        self,
        since: datetime,
        activity_types: Optional[list[str]] = None,
        actor_id: Optional[str] = None,
    ) -> list[db_models.ActivityFeedEntry]:
        """Get every activity created at or after ``since``."""
        query = self._build_query(
            activity_types=activity_types, actor_id=actor_id, start_date=since
        )
        return query.order_by(self.model.created_at.desc()).all()
