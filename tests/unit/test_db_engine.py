"""Tests for engine options derived from settings."""

import ssl

import pytest

from src.cars.core.db import sync_database_url
from src.cars.core.db.engine import engine_options, ssl_context_for

pytestmark = pytest.mark.unit


class TestSslContext:
    def test_disable(self):
        assert ssl_context_for("disable") is None

    @pytest.mark.parametrize("mode", ["prefer", "require"])
    def test_unverified_modes(self, mode):
        context = ssl_context_for(mode)
        assert context.verify_mode == ssl.CERT_NONE
        assert context.check_hostname is False

    def test_verify_ca_skips_hostname(self):
        context = ssl_context_for("verify-ca")
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname is False

    def test_verify_full(self):
        context = ssl_context_for("verify-full")
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname is True

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unsupported"):
            ssl_context_for("allow-anything")


class TestEngineOptions:
    def test_postgres_gets_pool_and_ssl(self, test_settings):
        settings = test_settings.model_copy(
            update={
                "database_url": "postgresql+asyncpg://cars:cars@db:5432/cars",
                "database_ssl_mode": "require",
                "database_pool_size": 7,
            }
        )
        options = engine_options(settings)

        assert options["pool_size"] == 7
        assert options["pool_pre_ping"] is True
        assert isinstance(options["connect_args"]["ssl"], ssl.SSLContext)

    def test_postgres_without_ssl(self, test_settings):
        settings = test_settings.model_copy(
            update={
                "database_url": "postgresql+asyncpg://cars:cars@db:5432/cars",
                "database_ssl_mode": "disable",
            }
        )
        assert "connect_args" not in engine_options(settings)

    def test_sqlite_uses_driver_defaults(self, test_settings):
        settings = test_settings.model_copy(
            update={"database_url": "sqlite+aiosqlite:///./cars.db"}
        )
        assert engine_options(settings) == {}


def test_sync_database_url():
    assert (
        sync_database_url("postgresql+asyncpg://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    )
