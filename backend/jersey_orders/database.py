"""Database session helpers."""

import logging
import time
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import get_settings
from .errors import BackendUnavailable

log = logging.getLogger("jersey_orders.database")

settings = get_settings()
DATABASE_URL = settings.get_database_url()

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    future=True,
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
Base = declarative_base()


def get_db() -> Iterator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def wait_for_database(
    bind: Engine = None,
    timeout: float = None,
    interval: float = None,
) -> None:
    """Block until the database answers ``SELECT 1`` or the timeout expires."""

    bind = bind or engine
    timeout = settings.startup_timeout_seconds if timeout is None else timeout
    interval = settings.startup_poll_interval if interval is None else interval
    deadline = time.monotonic() + timeout
    attempts = 0

    while True:
        attempts += 1
        try:
            with bind.connect() as conn:
                conn.execute(text("SELECT 1"))
            log.info("Database ready after %d attempt(s)", attempts)
            return
        except DBAPIError as exc:
            if time.monotonic() + interval > deadline:
                log.error("Database not ready after %.1fs: %s", timeout, exc.__class__.__name__)
                raise BackendUnavailable(
                    "Database not initialized within timeout period. Please refresh the page."
                ) from exc
            time.sleep(interval)
