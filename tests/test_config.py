"""
JSONWire — Configuration & Database Tests
===========================================

What we test:
    ✅ Settings read from JSONWIRE_* environment variables
    ✅ Invalid values rejected at load time
    ✅ Engine factory and lazy default engine
    ✅ sessions table created by create_table()
"""

import pytest
from pydantic import ValidationError
from sqlalchemy import inspect

from jsonwire import database
from jsonwire.config import Settings


class TestSettings:
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("JSONWIRE_SESSION_TTL", "120")
        monkeypatch.setenv("JSONWIRE_LOG_LEVEL", "debug")

        s = Settings()

        assert s.session_ttl == 120
        assert s.log_level == "DEBUG"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("JSONWIRE_LOG_LEVEL", raising=False)
        s = Settings(_env_file=None)

        assert s.session_cookie_name == "jsonwire_sid"
        assert s.totp_header == "X-OTP-CODE"
        assert s.client_retry_attempts == 1

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("JSONWIRE_LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError):
            Settings()

    def test_ttl_bounds(self, monkeypatch):
        monkeypatch.setenv("JSONWIRE_SESSION_TTL", "5")
        with pytest.raises(ValidationError):
            Settings()


class TestDatabase:
    @pytest.mark.asyncio
    async def test_lazy_default_engine(self):
        engine = database.get_engine()

        assert database.get_engine() is engine
        assert engine.url.drivername == "sqlite+aiosqlite"

        await database.dispose_engine()
        assert database.get_engine() is not engine
        await database.dispose_engine()

    @pytest.mark.asyncio
    async def test_create_table(self, sql_engine):
        async with sql_engine.connect() as conn:
            tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
            indexes = await conn.run_sync(lambda c: inspect(c).get_indexes("sessions"))

        assert "sessions" in tables
        assert "idx_sessions_expires_at" in {i["name"] for i in indexes}
