"""
TradeNest persistence wiring: engine construction, request-scoped sessions,
schema creation and the startup connectivity probe.
"""

import logging
from contextlib import contextmanager
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from config import Config
from models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """Create an engine for PostgreSQL (pooled) or SQLite (single file / memory)"""
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # SQLite ignores foreign keys unless asked per connection
        @event.listens_for(sqlite_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=7,           # Base pool
        max_overflow=15,       # Burst capacity
        pool_pre_ping=True,    # Validate connections before use
        pool_recycle=3600,     # Recycle connections every hour
        pool_timeout=30,       # Wait max 30 seconds for a connection during bursts
        echo=False,
        connect_args={
            "connect_timeout": 10,
            "application_name": "tradenest_backend",
        }
    )


if not Config.DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required")

engine = build_engine(Config.DATABASE_URL)

# Services own their commits; autoflush off keeps conditional updates explicit
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def create_tables(bind=None):
    """Create missing tables for every mapped model; returns False instead of raising"""
    target = bind or engine
    try:
        logger.info("🏗️ Ensuring TradeNest schema...")
        logger.info(f"📊 {len(Base.metadata.tables)} mapped tables")

        Base.metadata.create_all(bind=target, checkfirst=True)

        existing_tables = inspect(target).get_table_names()
        logger.info(f"✅ Schema ready ({len(existing_tables)} tables)")
        logger.info(f"📋 Tables: {', '.join(sorted(existing_tables))}")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to create database tables: {e}", exc_info=True)
        return False


@contextmanager
def managed_session():
    """Session scope for scripts and jobs: commit on success, roll back on error"""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database session error: {e}")
        raise
    finally:
        session.close()


def get_db():
    """FastAPI dependency: one session per request; services commit their own units of work"""
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_connection():
    """Round-trip SELECT 1; used at startup and by /health"""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            logger.info("✅ Database reachable")
            return True
    except Exception as e:
        logger.error(f"❌ Database unreachable: {e}")
        return False
