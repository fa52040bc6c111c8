"""
Fieldbook Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock session (no real store needed)
    ├── temp_storage:     Temporary storage root for file-backed records
    ├── record_store:     Real RecordStore on a temporary SQLite file (aiosqlite)
    ├── seed_record:      Inserts one content row into record_store
    ├── file_records:     FileRecordSource over temp_storage
    ├── write_json:       Writes a JSON (or raw text) file under temp_storage
    └── test_client:      HTTPX AsyncClient bound to an app using the above
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Set BEFORE any fieldbook import so Settings() never sees production values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="fieldbook_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from fieldbook.database import RecordStore  # noqa: E402
from fieldbook.services.file_records import FileRecordSource  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_blank_slug(mock_db_session):
            ...
            mock_db_session.execute.assert_not_awaited()
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh storage root for each test."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest_asyncio.fixture
async def record_store(tmp_path):
    """
    A real record store backed by a temporary SQLite file.

    The tables are created on the fly; the pool is disposed after the test.
    """
    store = RecordStore(
        f"sqlite+aiosqlite:///{tmp_path / 'records.db'}",
        pool_size=2,
        max_overflow=0,
        pool_timeout=5.0,
    )
    await store.create_tables()
    yield store
    await store.dispose()


@pytest.fixture
def seed_record(record_store):
    """
    Insert one row into a content table.

    Usage:
        await seed_record(FieldNote, "bob@x.com", "trip-1", {"title": "Trip"})

    A dict document is serialized to JSON; a string is stored as-is so tests
    can plant malformed documents.
    """

    async def _seed(
        model,
        owner: str,
        slug: str,
        document: Any,
        is_public: bool = False,
        created_at: Optional[datetime] = None,
    ):
        row = model(
            user_email=owner,
            slug=slug,
            is_public=is_public,
            created_at=created_at or datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
            document=json.dumps(document) if isinstance(document, dict) else document,
        )
        async with record_store.session() as session:
            session.add(row)
            await session.commit()
        return row

    return _seed


@pytest.fixture
def file_records(temp_storage):
    return FileRecordSource(temp_storage)


@pytest.fixture
def write_json(temp_storage):
    """
    Write a file under the storage root.

    Usage:
        write_json("recipes/alice@x.com/pancakes.json", {"title": "Pancakes"})
    """

    def _write(relative_path: str, content: Any) -> Path:
        path = Path(temp_storage) / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        text = content if isinstance(content, str) else json.dumps(content)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest_asyncio.fixture
async def test_client(record_store, file_records):
    """
    HTTPX AsyncClient talking to an app built around the test store.

    ASGITransport does not run the lifespan, so the store and the file
    source are injected through create_app().
    """
    from fieldbook.main import create_app

    app = create_app(record_store=record_store, file_records=file_records)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
