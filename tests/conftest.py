"""Pytest configuration for the test suite."""

import os
import sqlite3
import sys
from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

# Add the src directory to the Python path so tests can import from it
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from mcp_framework import Context  # noqa: E402


def make_request_context(
    lifespan_context: Any = None,
    progress_token: Optional[str] = None,
    request_id: int = 1,
) -> SimpleNamespace:
    """Stand-in for the SDK's RequestContext with a mocked session."""
    meta = SimpleNamespace(progressToken=progress_token) if progress_token is not None else None
    return SimpleNamespace(
        request_id=request_id,
        meta=meta,
        session=AsyncMock(),
        lifespan_context=lifespan_context if lifespan_context is not None else {},
    )


@pytest.fixture
def make_context():
    """Factory for Context objects bound to a fake request."""
    def factory(server=None, **kwargs: Any) -> Context:
        return Context(request_context=make_request_context(**kwargs), server=server)
    return factory


@pytest.fixture
def sample_db(tmp_path):
    """A small SQLite database with a users table and an orders table."""
    db_path = tmp_path / "sample.db"
    conn = sqlite3.connect(db_path)
    conn.executescript(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT);
        CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total REAL);
        INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com');
        INSERT INTO users (name, email) VALUES ('Bob', NULL);
        INSERT INTO users (name, email) VALUES ('Carol', 'carol@example.com');
        INSERT INTO orders (user_id, total) VALUES (1, 9.5);
        """
    )
    conn.commit()
    conn.close()
    return db_path
