import os
import sys

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    For local development, load `.env` automatically so database and Sentry
    settings can be provided from `backend/.env`.

    Do NOT auto-load `.env` when running under pytest or in CI, so tests run
    against the defaults below.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


VALID_ENVIRONMENTS = ("development", "staging", "production")


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', or 'production'",
    )

    DATABASE_URL: str = "sqlite:///./data/moderation.db"

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Minimum level for console and file sinks",
    )
    LOG_DIR: str = Field(
        default="logs",
        description="Directory for the rotating log file",
    )
    LOG_TO_FILE: bool = Field(
        default=False,
        description="Also write logs to LOG_DIR/moderation.log",
    )

    # Error reporting
    SENTRY_DSN: str | None = Field(
        default=None,
        description="Sentry DSN. Sentry stays disabled when unset.",
    )
    SENTRY_RELEASE: str = Field(
        default="unknown",
        description="Release identifier reported to Sentry",
    )

    # Activity spike detection defaults
    ANOMALY_SPIKE_THRESHOLD: float = Field(
        default=2.0,
        description="Current/average rate ratio that counts as a spike (must be > 1)",
    )
    ANOMALY_AVERAGE_WINDOW_MINUTES: int = Field(
        default=60,
        description="Window for the baseline activity rate",
    )
    ANOMALY_CURRENT_WINDOW_MINUTES: int = Field(
        default=5,
        description="Window for the current activity rate",
    )
    ANOMALY_MINIMUM_ACTIVITIES: int = Field(
        default=10,
        description="Activities needed in the average window before spikes are reported",
    )

    # Trust scoring
    ORGANIZER_AUTO_FLAG_THRESHOLD: int = Field(
        default=3,
        description="Combined rejections + violations that auto-flag an organizer",
    )

    # Orphan detection
    ORPHAN_DETECTION_DEFAULT_LIMIT: int = Field(
        default=100,
        description="Child rows scanned per orphan category when no limit is given",
    )
    ORPHAN_DETECTION_MAX_LIMIT: int = Field(
        default=1000,
        description="Upper bound for the per-category scan limit",
    )

    # Pagination
    AUDIT_LOG_PAGE_SIZE: int = Field(
        default=50,
        description="Default audit log page size",
    )
    ACTIVITY_FEED_PAGE_SIZE: int = Field(
        default=50,
        description="Default activity feed page size",
    )

    # Scheduled moderation scan
    SCHEDULER_ENABLED: bool = Field(
        default=False,
        description="Start the background moderation scan scheduler",
    )
    MODERATION_SCAN_INTERVAL_MINUTES: int = Field(
        default=15,
        description="Minutes between scheduled moderation scans",
    )

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Reject unknown environment names."""
        if v not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"ENVIRONMENT must be one of {', '.join(VALID_ENVIRONMENTS)}"
            )
        return v

    @field_validator("ANOMALY_SPIKE_THRESHOLD")
    @classmethod
    def validate_spike_threshold(cls, v: float) -> float:
        """A spike threshold of 1 or less would flag ordinary traffic."""
        if v <= 1:
            raise ValueError("ANOMALY_SPIKE_THRESHOLD must be greater than 1")
        return v

    @model_validator(mode="after")
    def validate_windows(self) -> "Settings":
        """Current window must be strictly shorter than the average window."""
        if self.ANOMALY_CURRENT_WINDOW_MINUTES <= 0:
            raise ValueError("ANOMALY_CURRENT_WINDOW_MINUTES must be positive")
        if self.ANOMALY_CURRENT_WINDOW_MINUTES >= self.ANOMALY_AVERAGE_WINDOW_MINUTES:
            raise ValueError(
                "ANOMALY_CURRENT_WINDOW_MINUTES must be less than "
                "ANOMALY_AVERAGE_WINDOW_MINUTES"
            )
        if self.ORPHAN_DETECTION_DEFAULT_LIMIT > self.ORPHAN_DETECTION_MAX_LIMIT:
            raise ValueError(
                "ORPHAN_DETECTION_DEFAULT_LIMIT cannot exceed ORPHAN_DETECTION_MAX_LIMIT"
            )
        return self

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings
