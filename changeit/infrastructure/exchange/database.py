"""
SQLAlchemy engine construction, DDL bootstrap and error translation.

Money, rates and timestamps are stored as text: decimals in canonical
form so no float ever touches ledger arithmetic, timestamps as UTC ISO
8601 with microseconds so lexical order equals time order. The DDL is
portable between SQLite and PostgreSQL.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.pool import StaticPool

from changeit.domain.exchange.errors import TransientStorageError

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 30

DDL_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS balances (
        user_id     VARCHAR(64) NOT NULL,
        currency    VARCHAR(16) NOT NULL,
        amount      VARCHAR(80) NOT NULL,
        version     INTEGER     NOT NULL DEFAULT 0,
        created_at  VARCHAR(40) NOT NULL,
        updated_at  VARCHAR(40) NOT NULL,
        PRIMARY KEY (user_id, currency)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS exchange_rates (
        from_currency VARCHAR(16) NOT NULL,
        to_currency   VARCHAR(16) NOT NULL,
        rate          VARCHAR(80) NOT NULL,
        updated_at    VARCHAR(40) NOT NULL,
        PRIMARY KEY (from_currency, to_currency)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id             VARCHAR(64) PRIMARY KEY,
        user_id        VARCHAR(64) NOT NULL,
        kind           VARCHAR(16) NOT NULL,
        status         VARCHAR(16) NOT NULL,
        from_currency  VARCHAR(16),
        to_currency    VARCHAR(16),
        from_amount    VARCHAR(80),
        to_amount      VARCHAR(80),
        rate           VARCHAR(80),
        fee            VARCHAR(80),
        failure_reason TEXT,
        created_at     VARCHAR(40) NOT NULL,
        completed_at   VARCHAR(40)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_transactions_user_created "
    "ON transactions (user_id, created_at DESC)",
]


def build_engine(database_url: str) -> Engine:
    """Create an engine for the ledger database.

    In-memory SQLite shares one connection across threads; file SQLite
    waits on locks instead of failing immediately.
    """
    if database_url.startswith("sqlite"):
        in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
        connect_args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS}
        if in_memory:
            return create_engine(
                database_url, connect_args=connect_args, poolclass=StaticPool
            )
        return create_engine(database_url, connect_args=connect_args)
    return create_engine(database_url, pool_pre_ping=True)


def ensure_schema(engine: Engine) -> None:
    """Create missing tables and indexes (idempotent)."""
    with storage_errors("schema bootstrap"):
        with engine.begin() as conn:
            for ddl in DDL_STATEMENTS:
                conn.execute(text(ddl))
    logger.info("Ledger tables verified/created.")


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate driver-level outages into TransientStorageError."""
    try:
        yield
    except (OperationalError, DisconnectionError) as exc:
        reason = str(getattr(exc, "orig", None) or exc)
        logger.warning("Storage error during %s: %s", operation, reason)
        raise TransientStorageError(operation, reason) from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Serialize a timestamp as fixed-width UTC ISO 8601."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)
