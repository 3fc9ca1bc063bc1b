"""
Tests for environment-derived settings.
"""

from catalog.core.config import DEFAULT_CORS_ORIGINS, Settings
from catalog.db.session import build_engine


class TestSettings:
    def test_heroku_style_database_url_is_rewritten(self) -> None:
        settings = Settings(database_url="postgres://u:p@db:5432/catalog")
        assert settings.database_url == "postgresql+psycopg://u:p@db:5432/catalog"

    def test_environment_is_normalized(self) -> None:
        settings = Settings(environment=" Production ")
        assert settings.environment == "production"
        assert settings.is_production

    def test_cors_origins_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("CORS_ORIGINS", "https://shop.example.com/, https://admin.example.com")
        assert Settings().cors_origins == ["https://shop.example.com", "https://admin.example.com"]

    def test_cors_origins_default(self, monkeypatch) -> None:
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
        assert Settings().cors_origins == DEFAULT_CORS_ORIGINS


class TestBuildEngine:
    def test_sqlite_enforces_foreign_keys(self) -> None:
        engine = build_engine("sqlite://")
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
        engine.dispose()
