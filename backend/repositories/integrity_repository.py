"""
Integrity Repository.

Table-level access for orphan detection and cleanup. Callers address tables
by name; rows come back as JSON-safe snapshots so they can be stored in the
audit log as backups.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from repositories import db_models
from repositories.database import Base

# Tables the integrity checker is allowed to read and delete from
INTEGRITY_TABLES: dict[str, type[Base]] = {
    "profiles": db_models.Profile,
    "organizer_profiles": db_models.OrganizerProfile,
    "organizer_hackathons": db_models.OrganizerHackathon,
    "hackathon_registrations": db_models.HackathonRegistration,
    "hackathon_teams": db_models.HackathonTeam,
    "hackathon_submissions": db_models.HackathonSubmission,
    "hackathon_participant_feedback": db_models.HackathonParticipantFeedback,
    "hackathon_announcements": db_models.HackathonAnnouncement,
    "certificates": db_models.Certificate,
}


def _json_safe(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def row_to_dict(row: Base) -> dict[str, Any]:
    """Snapshot every mapped column of a row as JSON-safe values."""
    mapper = inspect(type(row))
    return {
        column.key: _json_safe(getattr(row, column.key))
        for column in mapper.column_attrs
    }


class IntegrityRepository:
    """Repository for cross-table reference checks."""

    def __init__(self, db: Session):
        """Initialize repository."""
        self.db = db

    @staticmethod
    def _model(table: str) -> type[Base]:
        try:
            return INTEGRITY_TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    def get_rows(self, table: str, limit: int) -> list[dict[str, Any]]:
        """Get up to ``limit`` rows of a table, oldest id first."""
        model = self._model(table)
        rows = self.db.query(model).order_by(model.id.asc()).limit(limit).all()
        return [row_to_dict(row) for row in rows]

    def get_rows_by_ids(
        self, table: str, ids: Iterable[Any]
    ) -> list[dict[str, Any]]:
        model = self._model(table)
        id_list = list(ids)
        if not id_list:
            return []
        rows = (
            self.db.query(model)
            .filter(model.id.in_(id_list))
            .order_by(model.id.asc())
            .all()
        )
        return [row_to_dict(row) for row in rows]

    def get_row(self, table: str, record_id: Any) -> dict[str, Any] | None:
        row = self.db.get(self._model(table), record_id)
        return row_to_dict(row) if row is not None else None

    def find_existing_values(
        self, table: str, column: str, values: Iterable[Any]
    ) -> set[Any]:
        """
        Resolve a batch of referenced values against a parent table.

        Args:
            table: Parent table name
            column: Parent column holding the referenced value
            values: Candidate values (None is ignored)

        Returns:
            The subset of ``values`` present in ``table.column``
        """
        candidates = {value for value in values if value is not None}
        if not candidates:
            return set()
        model = self._model(table)
        attribute = getattr(model, column)
        rows = self.db.query(attribute).filter(attribute.in_(candidates)).all()
        return {row[0] for row in rows}

    def delete_row(self, table: str, record_id: Any) -> bool:
        """
        Delete a single row and commit.

        Returns:
            False if the row no longer exists
        """
        row = self.db.get(self._model(table), record_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def count_rows(self, table: str) -> int:
        return self.db.query(self._model(table)).count()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.db.rollback()
