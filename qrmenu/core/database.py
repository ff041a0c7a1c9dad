"""
Database configuration and session management
"""

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool
import structlog

from qrmenu.core.config import get_settings
from qrmenu.core.errors import SchemaNotReadyError

logger = structlog.get_logger(__name__)
settings = get_settings()


def build_engine(database_url: str, echo: bool = False):
    """Create an engine, keeping in-memory SQLite on a single connection"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)


def init_db(bind=None):
    """Create all tables (development and tests; production uses Alembic)"""
    import qrmenu.models  # noqa: F401  registers every table on the metadata

    SQLModel.metadata.create_all(bind or engine)
    logger.info("Database tables created")


def verify_schema(bind=None) -> None:
    """Raise SchemaNotReadyError when any mapped table is absent"""
    import qrmenu.models  # noqa: F401

    present = set(inspect(bind or engine).get_table_names())
    expected = set(SQLModel.metadata.tables.keys())
    missing = sorted(expected - present)
    if missing:
        logger.error("Database schema incomplete", missing_tables=missing)
        raise SchemaNotReadyError(f"Missing tables: {', '.join(missing)}. Run 'alembic upgrade head'.")

    logger.info("Database schema verified", tables=len(expected))


def get_session():
    """Dependency to get database session"""
    with Session(engine) as session:
        yield session
