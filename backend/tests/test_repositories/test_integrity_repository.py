"""Tests for IntegrityRepository table access."""

import pytest
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from models.moderation_types import HackathonStatus
from repositories.integrity_repository import IntegrityRepository, row_to_dict


class TestIntegrityRepository:
    """Tests for IntegrityRepository."""

    def test_unknown_table_is_rejected(self, db_session: Session) -> None:
        """Only registered tables can be addressed."""
        with pytest.raises(ValueError, match="Unknown table: admin_audit_logs"):
            IntegrityRepository(db_session).count_rows("admin_audit_logs")

    def test_row_snapshot_is_json_safe(self, db_session: Session, add_rows) -> None:
        """Datetimes become ISO strings and enums their values."""
        (hackathon,) = add_rows(
            db_models.OrganizerHackathon(
                organizer_id=1, title="Hack", status=HackathonStatus.ENDED
            )
        )

        snapshot = row_to_dict(hackathon)

        assert snapshot["status"] == "ended"
        assert isinstance(snapshot["created_at"], str)
        assert snapshot["title"] == "Hack"

    def test_get_rows_respects_limit_and_order(
        self, db_session: Session, add_rows
    ) -> None:
        """Rows come back oldest id first, up to the limit."""
        add_rows(*[db_models.HackathonTeam(hackathon_id=1, name=f"t{i}") for i in range(4)])

        rows = IntegrityRepository(db_session).get_rows("hackathon_teams", 3)

        assert [row["name"] for row in rows] == ["t0", "t1", "t2"]

    def test_find_existing_values(self, db_session: Session, add_rows) -> None:
        """Only referenced values present in the parent column come back."""
        add_rows(
            db_models.OrganizerProfile(user_id=10),
            db_models.OrganizerProfile(user_id=20),
        )

        existing = IntegrityRepository(db_session).find_existing_values(
            "organizer_profiles", "user_id", [10, 30, None, 20, 10]
        )

        assert existing == {10, 20}

    def test_find_existing_values_with_only_nulls(self, db_session: Session) -> None:
        """No candidates means no query and an empty result."""
        repo = IntegrityRepository(db_session)
        assert repo.find_existing_values("profiles", "id", [None, None]) == set()

    def test_delete_row(self, db_session: Session, add_rows) -> None:
        """Deleting reports whether the row existed."""
        (team,) = add_rows(db_models.HackathonTeam(hackathon_id=1, name="t"))
        team_id = team.id
        repo = IntegrityRepository(db_session)

        assert repo.delete_row("hackathon_teams", team_id) is True
        assert repo.delete_row("hackathon_teams", team_id) is False
        assert repo.get_row("hackathon_teams", team_id) is None
