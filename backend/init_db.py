"""Create the database tables."""

from loguru import logger

from repositories import db_models  # noqa: F401
from repositories.database import Base, engine


def init_db() -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    from core.logging_config import configure_logging

    configure_logging()
    init_db()
