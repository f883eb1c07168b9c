"""SQLAlchemy database setup and session management."""

import logging
import os

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

logger = logging.getLogger(__name__)

# Default to SQLite in the project directory
DEFAULT_DB_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "sleeper.db"
)

DATABASE_URL = os.environ.get("SLEEPER_DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")


def make_engine(url: str) -> Engine:
    """Create an engine, letting SQLite connections cross request threads."""
    connect_args = {}
    if url.startswith("sqlite"):
        # Writers wait on each other instead of failing straight away
        connect_args = {"check_same_thread": False, "timeout": 15}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine)


def validate_schema(bind: Engine = None):
    """
    Validate that the database schema matches the SQLAlchemy models.

    Returns a list of discrepancies (empty list if schema is valid).
    Each discrepancy is a dict with 'type', 'table', and 'message' keys.
    """
    from .schema import Base

    inspector = inspect(bind or engine)
    existing_tables = set(inspector.get_table_names())
    discrepancies = []

    for table_name, table in Base.metadata.tables.items():
        if table_name not in existing_tables:
            discrepancies.append({
                'type': 'missing_table',
                'table': table_name,
                'message': f"Table '{table_name}' is missing from database"
            })
            continue

        actual_columns = {col['name'] for col in inspector.get_columns(table_name)}
        for col in table.columns:
            if col.name not in actual_columns:
                nullable = "NULL" if col.nullable else "NOT NULL"
                discrepancies.append({
                    'type': 'missing_column',
                    'table': table_name,
                    'column': col.name,
                    'message': f"Column '{table_name}.{col.name}' ({col.type}, {nullable}) is missing from database"
                })

    return discrepancies


def init_db(bind: Engine = None):
    """Initialize the database, creating all tables."""
    from .schema import Base

    bind = bind or engine
    Base.metadata.create_all(bind)

    discrepancies = validate_schema(bind)
    for disc in discrepancies:
        logger.warning("Schema mismatch: %s", disc['message'])
    if discrepancies:
        logger.warning(
            "Database schema does not match the models (%d issues). "
            "Delete the database file to recreate it from scratch.",
            len(discrepancies),
        )
    return discrepancies


def get_session() -> Session:
    """Get a new database session."""
    return SessionLocal()

