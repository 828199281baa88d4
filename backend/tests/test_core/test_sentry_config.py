"""Tests for Sentry SDK configuration with privacy-preserving settings."""

from typing import Any
from unittest.mock import patch

import pytest

from core.sentry_config import FILTERED, _before_send, init_sentry
from models.config import settings


class TestBeforeSendPIIScrubbing:
    """Tests for PII scrubbing in _before_send."""

    def test_scrubs_email_and_username_from_user(self) -> None:
        """User email and username should be removed from events."""
        event: dict[str, Any] = {
            "user": {"id": "123", "email": "admin@example.com", "username": "root"}
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["user"] == {"id": "123"}  # type: ignore[typeddict-item]

    def test_anonymizes_ip_address(self) -> None:
        """IP address should be anonymized."""
        event: dict[str, Any] = {"user": {"id": "123", "ip_address": "10.0.0.1"}}
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["user"]["ip_address"] == "{{auto}}"  # type: ignore[typeddict-item]

    def test_filters_snapshots_from_extra(self) -> None:
        """Audit snapshots and admin emails in extra data are filtered."""
        event: dict[str, Any] = {
            "extra": {
                "before_state": {"title": "Old"},
                "after_state": {"title": "New"},
                "admin_email": "admin@example.com",
                "orphan_type": "team_without_hackathon",
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        extra = result["extra"]  # type: ignore[typeddict-item]
        assert extra["before_state"] == FILTERED
        assert extra["after_state"] == FILTERED
        assert extra["admin_email"] == FILTERED
        assert extra["orphan_type"] == "team_without_hackathon"

    def test_filters_backup_records_from_frame_vars(self) -> None:
        """Row snapshots held in local variables are filtered."""
        event: dict[str, Any] = {
            "exception": {
                "values": [
                    {
                        "stacktrace": {
                            "frames": [
                                {"vars": {"records": [{"id": 1}], "backup_id": "b1"}}
                            ]
                        }
                    }
                ]
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        frame_vars = result["exception"]["values"][0]["stacktrace"]["frames"][0]["vars"]  # type: ignore[typeddict-item, index]
        assert frame_vars["records"] == FILTERED
        assert frame_vars["backup_id"] == "b1"

    def test_handles_event_without_user(self) -> None:
        """Should handle events without user data gracefully."""
        event: dict[str, Any] = {"message": "Test error"}
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["message"] == "Test error"  # type: ignore[typeddict-item]


class TestInitSentry:
    """Tests for Sentry initialization."""

    def test_init_sentry_without_dsn_does_nothing(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Sentry should not initialize without DSN."""
        monkeypatch.setattr(settings, "SENTRY_DSN", None)
        with patch("sentry_sdk.init") as mock_init:
            assert init_sentry() is False
            mock_init.assert_not_called()

    def test_init_sentry_with_dsn_uses_settings(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Sentry should initialize from settings when a DSN is set."""
        dsn = "https://test@o0.ingest.sentry.io/0"
        monkeypatch.setattr(settings, "SENTRY_DSN", dsn)
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        monkeypatch.setattr(settings, "SENTRY_RELEASE", "1.2.3")
        with patch("sentry_sdk.init") as mock_init:
            assert init_sentry() is True
            call_kwargs = mock_init.call_args.kwargs
            assert call_kwargs["dsn"] == dsn
            assert call_kwargs["environment"] == "production"
            assert call_kwargs["release"] == "1.2.3"
            assert call_kwargs["send_default_pii"] is False
            assert call_kwargs["before_send"] is _before_send
