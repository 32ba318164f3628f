"""
Shared fixtures for the exchange test suite.

SQLite engines are built through the same factory the application uses,
so the DDL and connection settings under test are the production ones.
"""

import pytest

from changeit.infrastructure.exchange.database import build_engine, ensure_schema


@pytest.fixture
def engine():
    """In-memory ledger database with all tables created."""
    db = build_engine("sqlite://")
    ensure_schema(db)
    yield db
    db.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed ledger database, safe to share between threads."""
    db = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    ensure_schema(db)
    yield db
    db.dispose()
