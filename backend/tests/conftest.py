"""
Chirpline Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Points the app at a throwaway SQLite database (aiosqlite) and a
       temporary media directory BEFORE any app module is imported, then
       builds the schema fresh for every test that asks for the database.

Fixtures:
    ├── database:          Creates all tables, drops them afterwards
    ├── db_session:        AsyncSession on the test database
    ├── row_count:         Committed row count for a model
    ├── test_client:       HTTPX AsyncClient bound to the FastAPI app
    ├── mock_db_session:   AsyncMock session for failure-path unit tests
    ├── temp_storage:      Temporary directory for media files
    ├── sample_image_bytes / jpeg_upload / csv_upload: media inputs
"""

import os
import tempfile

# Settings are read at import time, so the environment goes first
_TEST_DIR = tempfile.mkdtemp(prefix="chirpline_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "storage")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from app.database import Base, async_session_factory, engine  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models import Bookmark, Like, Tweet  # noqa: E402,F401
from app.services.media_service import MediaUpload  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled aiosqlite connections belong to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with async_session_factory() as session:
        yield session


async def count_rows(model) -> int:
    """Row count read through a fresh session, i.e. what is committed."""
    async with async_session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


@pytest.fixture
def row_count(database):
    return count_rows


@pytest.fixture
def mock_db_session():
    """
    AsyncSession stand-in for forcing failures.

    Specced on AsyncSession: coroutine methods (get, execute, flush) are
    AsyncMocks and add() is a plain MagicMock:

        mock_db_session.flush.side_effect = OperationalError(...)
    """
    return AsyncMock(spec=AsyncSession)


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(database):
    """A fresh app per test; ASGITransport skips the lifespan, so no startup side effects."""
    async with AsyncClient(transport=ASGITransport(app=create_app()), base_url="http://test") as client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# Media Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def jpeg_upload(sample_image_bytes):
    return MediaUpload(filename="sample_image.jpg", content_type="image/jpeg", data=sample_image_bytes)


@pytest.fixture
def csv_upload():
    return MediaUpload(filename="sample_csv.csv", content_type="text/csv", data=b"id,name\n1,rails\n")
