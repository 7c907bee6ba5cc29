"""
SQLAlchemy engine singleton with production-ready connection pooling.

This module creates a single engine instance with connection pooling configured
for concurrent web requests and the hold sweeper. Pool sizing only applies to
server databases; SQLite (used for local runs) keeps SQLAlchemy's defaults.
"""

from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from hotel_booking.config import DATABASE_URL

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")


def build_engine(url: str) -> Engine:
    """
    Create an engine for ``url`` with pooling suited to its backend.

    Args:
        url: SQLAlchemy database URL

    Returns:
        Engine: Configured engine
    """
    options: dict[str, Any] = {"future": True, "echo": False}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=10,  # Number of connections to maintain in the pool
            max_overflow=20,  # Additional connections when pool is exhausted
            pool_pre_ping=True,  # Detect stale connections before use
            pool_recycle=3600,  # Recycle connections after 1 hour
        )
    return create_engine(url, **options)


engine: Engine = build_engine(DATABASE_URL)


def check_engine_health(db_engine: Engine = engine) -> bool:
    """
    Check if the database is reachable.

    Used by the /ready endpoint before the service accepts traffic.

    Returns:
        bool: True if a trivial query succeeds, False otherwise
    """
    try:
        with db_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
