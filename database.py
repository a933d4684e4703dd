# database.py
"""
Engine and session handling for the billing database.

MS SQL Server (pymssql) in production, a SQLite file locally and in tests;
the URL comes from config.DATABASE_URL. Routes get a session through the
get_session dependency, background work (the recurring billing check) opens
one with get_session_context. Both commit on success and roll back on error.
"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

import config

logger = logging.getLogger(__name__)


def enable_sqlite_savepoints(sqlite_engine: Engine) -> None:
     """
     Let SQLAlchemy own transaction boundaries on pysqlite connections.

     pysqlite defers BEGIN on its own, which breaks SAVEPOINT handling
     (Session.begin_nested). Invoice creation relies on savepoints.
     """

     @event.listens_for(sqlite_engine, "connect")
     def _do_connect(dbapi_connection, connection_record):
          dbapi_connection.isolation_level = None

     @event.listens_for(sqlite_engine, "begin")
     def _do_begin(conn):
          conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str, echo: bool = False) -> Engine:
     """
     Build an engine for url.

     SQLite engines may be shared between the scheduler thread and request
     threads and get savepoint support; server databases get a bounded pool.
     """
     if url.startswith("sqlite"):
          sqlite_engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
          enable_sqlite_savepoints(sqlite_engine)
          return sqlite_engine

     return create_engine(
          url,
          echo=echo,
          pool_size=5,
          max_overflow=10,
          pool_timeout=30,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          pool_pre_ping=True,
     )


engine = create_db_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
     bind=engine,
     autocommit=False,
     autoflush=False,
     expire_on_commit=False,
)


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
     """
     Transactional session for use outside FastAPI routes.

     Usage:
          with get_session_context() as db:
               tenants = InvoiceStore(db).list_tenants()
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


def get_session() -> Generator[Session, None, None]:
     """FastAPI dependency: one transactional session per request."""
     with get_session_context() as session:
          yield session


def init_db(bind: Optional[Engine] = None) -> None:
     """
     Create missing tables.

     For production, use Alembic migrations instead.
     """
     from models import Base
     Base.metadata.create_all(bind=bind or engine)


def check_connection(bind: Optional[Engine] = None) -> bool:
     """True if a trivial query succeeds against the database."""
     try:
          with (bind or engine).connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except SQLAlchemyError as e:
          logger.warning("Database connection failed: %s", e)
          return False
