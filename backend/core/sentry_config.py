"""
Sentry SDK configuration with privacy-preserving settings.

Implements:
- Settings-based initialization (disabled without SENTRY_DSN)
- Scrubbing of admin identities and record snapshots
- Loguru and SQLAlchemy integrations
"""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

from models.config import settings

# Keys whose values may hold full row snapshots or personal data
SNAPSHOT_KEYS = ("before_state", "after_state", "record_data", "records")
IDENTITY_KEYS = ("admin_email", "actor_email", "email")

FILTERED = "[Filtered]"


def _scrub_mapping(data: dict[str, Any]) -> None:
    """Replace identity and snapshot values in place."""
    for key in IDENTITY_KEYS + SNAPSHOT_KEYS:
        if key in data:
            data[key] = FILTERED


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Scrub personal data and row snapshots before sending to Sentry.

    - Remove email addresses and usernames from the user context
    - Anonymize IP addresses
    - Filter admin emails and before/after snapshots from extra data
      and from local variables in stack frames

    Args:
        event: Sentry event.
        hint: Additional context about the event.

    Returns:
        Modified event with personal data removed.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"  # Anonymized by Sentry

    extra = event.get("extra")
    if isinstance(extra, dict):
        _scrub_mapping(extra)

    exception = event.get("exception")
    if isinstance(exception, dict):
        for value in exception.get("values", []):
            frames = (value.get("stacktrace") or {}).get("frames", [])
            for frame in frames:
                frame_vars = frame.get("vars")
                if isinstance(frame_vars, dict):
                    _scrub_mapping(frame_vars)

    return event


def init_sentry() -> bool:
    """
    Initialize Sentry SDK.

    Sentry is disabled if SENTRY_DSN is not configured.

    Returns:
        True when Sentry was initialized.
    """
    if not settings.SENTRY_DSN:
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        release=settings.SENTRY_RELEASE,
        # Privacy: Do NOT send PII automatically
        send_default_pii=False,
        integrations=[
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        # Error sampling: capture all errors (low volume)
        sample_rate=1.0,
        traces_sample_rate=0.0,
        before_send=_before_send,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[
            KeyboardInterrupt,
            SystemExit,
        ],
    )
    return True
