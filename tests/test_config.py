"""Tests for settings — database URL assembly and production guards."""

import pytest
from pydantic import ValidationError

from deepresearch.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Isolate from the test-wide DEEPRESEARCH_* overrides."""
    monkeypatch.delenv("DEEPRESEARCH_DATABASE_URL", raising=False)


@pytest.mark.parametrize("given,expected", [
    ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
    ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
    ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
    ("sqlite+aiosqlite:///./dev.db", "sqlite+aiosqlite:///./dev.db"),
])
def test_database_url_rewritten_for_asyncpg(given, expected):
    assert Settings(database_url=given).sqlalchemy_url == expected


def test_url_from_parameters():
    s = Settings(
        db_host="pg.internal",
        db_port=6543,
        db_user="svc",
        db_password="pw",
        db_name="research",
    )
    assert s.sqlalchemy_url == "postgresql+asyncpg://svc:pw@pg.internal:6543/research"


def test_url_from_parameters_with_ssl():
    s = Settings(db_host="h", db_sslmode="require")
    assert s.sqlalchemy_url.endswith("?ssl=require")


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("DEEPRESEARCH_PORT", "9999")
    monkeypatch.setenv("DEEPRESEARCH_JWT_EXPIRY_HOURS", "2")
    s = Settings()
    assert s.port == 9999
    assert s.jwt_expiry_hours == 2


def test_defaults():
    s = Settings()
    assert s.jwt_algorithm == "HS256"
    assert s.db_pool_size == 10
    assert s.db_max_overflow == 15
    assert s.db_pool_recycle_minutes == 60


def test_production_rejects_default_secret():
    with pytest.raises(ValidationError, match="JWT_SECRET"):
        Settings(environment="production")


def test_production_with_real_secret():
    s = Settings(environment="production", jwt_secret="a-long-random-value")
    assert s.environment == "production"
