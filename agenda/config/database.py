"""Database configuration and connection setup"""
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool

from agenda.config.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """
    Create a database engine for the given URL.

    PostgreSQL gets a pooled engine. SQLite (local runs and tests) gets
    BEGIN IMMEDIATE transactions so that concurrent writers queue up on the
    database lock instead of interleaving their availability checks.
    """
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=settings.DB_ECHO,
        )

        @event.listens_for(sqlite_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(sqlite_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return sqlite_engine

    # Create database engine with connection pooling
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=settings.DB_ECHO,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine = engine):
    """Create all tables that do not exist yet"""
    from agenda.models import Base

    Base.metadata.create_all(bind=bind)
    logger.info("Database tables created")


if __name__ == "__main__":
    create_tables()
