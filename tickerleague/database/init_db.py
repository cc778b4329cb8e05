"""Database initialization script for the league engine.

Database Lifecycle Operations:
- create_database(): Initialize schema from SQLAlchemy models
- drop_database(): Remove all tables (destructive operation)
- reset_database(): Complete refresh (drop + create)

create_all() skips tables that already exist and drop_all() skips tables that
are missing, so every operation here is safe to repeat.
"""

import logging

from sqlalchemy.engine import Engine

from ..config.settings import settings
from .connection import engine as default_engine
from .models import Base

logger = logging.getLogger(__name__)


def create_database(engine: Engine | None = None):
    """Create all tables, indexes and unique constraints from the models.

    For SQLite databases the ``data/database`` directory is created first so
    the database file has somewhere to live.
    """
    bind = engine or default_engine
    try:
        if bind.url.get_backend_name() == "sqlite":
            data_dir = settings.data_dir / "database"
            data_dir.mkdir(parents=True, exist_ok=True)

        Base.metadata.create_all(bind=bind)

        logger.info("Database tables created successfully")

    except Exception:
        logger.exception("Failed to create database")
        raise


def drop_database(engine: Engine | None = None):
    """Drop all database tables - DESTRUCTIVE OPERATION.

    WARNING: This operation cannot be undone. All leagues, lineups, prices and
    matchup results are lost.
    """
    try:
        Base.metadata.drop_all(bind=engine or default_engine)

        logger.info("Database tables dropped successfully")

    except Exception:
        logger.exception("Failed to drop database")
        raise


def reset_database(engine: Engine | None = None):
    """Reset database by dropping and recreating all tables."""
    logger.info("Resetting database...")

    drop_database(engine)
    create_database(engine)

    logger.info("Database reset complete")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_database()
