from typing import Optional

from sqlalchemy.engine import Engine

from .models import Base
from .session import engine as default_engine

from app.utils.logging import get_logger

logger = get_logger()


def create_tables(engine: Optional[Engine] = None):
    """Create the record collection and notice tables if they are missing."""
    Base.metadata.create_all(engine or default_engine)
    logger.info(f"Ensured tables: {', '.join(sorted(Base.metadata.tables))}")


def drop_tables(engine: Optional[Engine] = None):
    Base.metadata.drop_all(engine or default_engine)
    logger.info("Dropped all tables.")


def reset_db(engine: Optional[Engine] = None):
    """Drop and recreate every table; stored access grants and workflow records are lost."""
    logger.info("Resetting database...")
    drop_tables(engine)
    create_tables(engine)
    logger.info("Database reset complete.")


if __name__ == "__main__":
    reset_db()
