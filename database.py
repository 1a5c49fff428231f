# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- Database engine configuration for PostgreSQL
- Session factory for dependency injection
- Connection utilities

Usage:
     from database import get_session, engine

     # In FastAPI routes:
     @router.get("/items")
     def get_items(db: Session = Depends(get_session)):
          return db.query(Item).all()
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from config import get_settings
from exceptions import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(url: str, echo: bool = False, statement_timeout_ms: int = 30000):
     """
     Create an engine for `url`.

     PostgreSQL connections get a server-side `statement_timeout` so a slow
     query fails with a typed timeout instead of hanging the request.
     SQLite (tests, local dev) shares one in-memory connection.
     """
     if url.startswith("sqlite"):
          sqlite_engine = create_engine(
               url,
               connect_args={"check_same_thread": False},
               poolclass=StaticPool,
               echo=echo,
          )

          # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves.
          @event.listens_for(sqlite_engine, "connect")
          def _disable_pysqlite_begin(dbapi_connection, connection_record):
               dbapi_connection.isolation_level = None

          @event.listens_for(sqlite_engine, "begin")
          def _emit_begin(conn):
               conn.exec_driver_sql("BEGIN")

          return sqlite_engine
     return create_engine(
          url,
          poolclass=QueuePool,
          pool_size=5,
          max_overflow=10,
          pool_timeout=30,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          pool_pre_ping=True,
          connect_args={"options": f"-c statement_timeout={statement_timeout_ms}"},
          echo=echo,
     )


engine = build_engine(
     settings.DATABASE_URL,
     echo=settings.SQL_ECHO,
     statement_timeout_ms=settings.DB_STATEMENT_TIMEOUT_MS,
)

# Session factory
SessionLocal = sessionmaker(
     bind=engine,
     autocommit=False,
     autoflush=False,
     expire_on_commit=False,
)


def get_session() -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     Usage:
          @router.get("/items")
          def get_items(db: Session = Depends(get_session)):
               return db.query(Item).all()

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
     """
     Context manager for database sessions (for use outside FastAPI routes).

     Usage:
          with get_session_context() as db:
               companies = db.query(Company).all()

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


def classify_db_error(exc: DBAPIError) -> UpstreamError:
     """Map a driver error to a typed upstream error; the raw text stays in `detail`."""
     raw = str(getattr(exc, "orig", exc))
     lowered = raw.lower()
     if "statement timeout" in lowered or "canceling statement" in lowered:
          return UpstreamTimeout(detail=raw)
     return UpstreamError(detail=raw)


def check_connection() -> bool:
     """
     Test database connectivity.

     Returns:
          bool: True if connection successful, False otherwise
     """
     try:
          with engine.connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except Exception as e:
          logger.error("Database connection failed: %s", e)
          return False
