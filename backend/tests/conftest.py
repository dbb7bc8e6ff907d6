"""
Campus Portal Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── db:              Real SQLite schema, created and dropped per test
    ├── seeded_db:       db + departments in smart / alexandria / no location
    ├── make_context:    Builds a RequestContext without HTTP
    ├── app:             Fresh application with its own rate limiter
    └── test_client:     HTTPX AsyncClient for API endpoint testing
"""

import os
import tempfile
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings BEFORE any campus import; the settings singleton and the
# engine are built at import time
_DB_DIR = tempfile.mkdtemp(prefix="campus_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["ENVIRONMENT"] = "production"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ALLOWED_LOCATIONS"] = "smart,fayoum"
os.environ["WHATSAPP_API_URL"] = ""
os.environ["SMTP_HOST"] = ""

from campus import models  # noqa: E402,F401  registers every table on Base.metadata
from campus.database import Base, async_session_factory, engine  # noqa: E402
from campus.middleware.rate_limit import RateLimiter  # noqa: E402
from campus.models.course import Course  # noqa: E402
from campus.models.department import Department  # noqa: E402
from campus.pipeline.context import RequestContext  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_course(mock_db_session):
            mock_db_session.get.return_value = course
            result = await course_service.get_course(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.delete = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db():
    """
    Creates every table on the test SQLite file, drops them afterwards.

    The engine is disposed at teardown: pooled aiosqlite connections are
    bound to the event loop of the test that opened them.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_session_factory
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_db(db):
    """
    Departments:
        1  Computer Science  location "Smart"       (allowed)
        2  Mathematics       location "alexandria"  (not allowed)
        3  Physics           location "   "         (blank)
    Courses:
        1  Algorithms        department 1
        2  Calculus          department 2
    """
    async with db() as session:
        session.add_all(
            [
                Department(id=1, name="Computer Science", pc_numbers=40, manager_name="Dr. Hany", location="Smart"),
                Department(id=2, name="Mathematics", pc_numbers=10, manager_name="Dr. Mona", location="alexandria"),
                Department(id=3, name="Physics", pc_numbers=5, manager_name="Dr. Adel", location="   "),
            ]
        )
        await session.flush()
        session.add_all(
            [
                Course(id=1, name="Algorithms", topic="CS", degree=100, min_degree=50, dept_id=1),
                Course(id=2, name="Calculus", topic="Math", degree=100, min_degree=60, dept_id=2),
            ]
        )
        await session.commit()
    return db


@pytest.fixture
def make_context():
    """
    Builds a RequestContext directly, for filter and pipeline unit tests.

    Usage:
        ctx = make_context(query_params={"deptId": "1"}, roles={"Admin"})
    """

    def _make(
        path: str = "/api/test",
        method: str = "GET",
        route_params: Optional[Dict[str, str]] = None,
        query_params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        roles=(),
        body: Optional[bytes] = None,
    ) -> RequestContext:
        loader = None
        if body is not None:
            async def loader() -> bytes:
                return body

        return RequestContext(
            method=method,
            path=path,
            route_params=route_params or {},
            query_params=query_params or {},
            headers=headers or {},
            roles=frozenset(roles),
            request_id="test-rid",
            operation=f"{method} {path}",
            body_loader=loader,
        )

    return _make


@pytest.fixture
def rate_limiter():
    """A roomy limiter so API tests never trip over rate limiting."""
    return RateLimiter(limit=10_000, window_seconds=60)


@pytest.fixture
def app(rate_limiter):
    from campus.main import create_app
    return create_app(limiter=rate_limiter, development=False)


@pytest_asyncio.fixture
async def test_client(app):
    """
    Provides an async HTTP test client for endpoint testing.

    How:     Uses ASGITransport to route requests directly to the app.
             raise_app_exceptions=False lets the client see the answer the
             exception boundary produced instead of a re-raised exception.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
