"""
Fieldbook Backend — Application Wiring Tests
==============================================

What:  Tests for /health, the application lifespan, the identity dependency,
       and settings validation.

What we test:
    ✅ /health reports store and storage status (200 / 503)
    ✅ Lifespan builds a store only when none was injected
    ✅ Lifespan never disposes an injected store
    ✅ Identity placeholders normalize to anonymous
    ✅ Settings validation
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import ValidationError

from fieldbook.config import Settings
from fieldbook.database import RecordStore
from fieldbook.identity import normalize_identity
from fieldbook.main import create_app
from fieldbook.services.file_records import FileRecordSource
from fieldbook.services.record_service import RecordService


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "available"
        assert body["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_missing_storage_root_is_degraded(self, record_store, tmp_path):
        app = create_app(
            record_store=record_store,
            file_records=FileRecordSource(str(tmp_path / "does-not-exist")),
        )
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["storage"] == "missing"

    @pytest.mark.asyncio
    async def test_unreachable_store_is_unhealthy(self, tmp_path, file_records):
        store = RecordStore(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}", pool_size=1, max_overflow=0)
        app = create_app(record_store=store, file_records=file_records)
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.get("/health")
        finally:
            await store.dispose()

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"


class TestLifespan:

    @pytest.mark.asyncio
    async def test_builds_store_from_settings(self):
        app = create_app()
        with patch("fieldbook.main.setup_logging"):
            async with app.router.lifespan_context(app):
                assert isinstance(app.state.record_store, RecordStore)
                assert isinstance(app.state.file_records, FileRecordSource)
                assert isinstance(app.state.record_service, RecordService)

    @pytest.mark.asyncio
    async def test_injected_store_is_not_disposed(self, file_records):
        store = MagicMock(spec=RecordStore)
        store.dispose = AsyncMock()
        app = create_app(record_store=store, file_records=file_records)

        with patch("fieldbook.main.setup_logging"):
            async with app.router.lifespan_context(app):
                assert app.state.record_store is store

        store.dispose.assert_not_awaited()


class TestIdentity:

    @pytest.mark.parametrize("value", [None, "", "   ", "undefined", "null", "NULL"])
    def test_placeholders_are_anonymous(self, value):
        assert normalize_identity(value) is None

    def test_identity_is_trimmed(self):
        assert normalize_identity("  bob@x.com ") == "bob@x.com"


class TestSettings:

    def test_log_level_is_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_dev_password_fails_production_check(self):
        config = Settings(database_url="postgresql+asyncpg://fieldbook:fieldbook_secret@db:5432/fieldbook")
        with pytest.raises(ValueError, match="development password"):
            config.validate_required_for_production()

    def test_cors_origins_list(self):
        config = Settings(cors_origins="http://a.test, http://b.test")
        assert config.cors_origins_list == ["http://a.test", "http://b.test"]
