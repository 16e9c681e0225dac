"""
Tests for Settings configuration validation in config.py.
"""
import pytest
from pydantic import ValidationError

from app.core.config import DEV_JWT_SECRET, Settings

TEST_JWT_SECRET_KEY = "test-jwt-secret-key-for-unit-tests"  # pragma: allowlist secret


class TestProductionSecrets:
    def test_development_allows_default_secret(self):
        settings = Settings(ENV="development")

        assert settings.JWT_SECRET_KEY == DEV_JWT_SECRET

    def test_production_rejects_default_secret(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(ENV="production", JWT_SECRET_KEY=DEV_JWT_SECRET)

        assert "JWT_SECRET_KEY must be set" in str(exc_info.value)

    def test_production_with_custom_secret(self):
        settings = Settings(ENV="production", JWT_SECRET_KEY=TEST_JWT_SECRET_KEY)

        assert settings.ENV == "production"


class TestFieldValidation:
    def test_unknown_environment(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(ENV="staging")

        assert exc_info.value.errors()[0]["loc"] == ("ENV",)

    def test_non_positive_access_token_lifetime(self):
        with pytest.raises(ValidationError):
            Settings(ACCESS_TOKEN_EXPIRE_MINUTES=0)

    def test_unknown_rate_limit_storage(self):
        with pytest.raises(ValidationError):
            Settings(RATE_LIMIT_STORAGE="memcached")


def test_defaults():
    settings = Settings()

    assert settings.API_V1_PREFIX == "/api/v1"
    assert settings.RATE_LIMIT_ENABLED is False
    assert settings.IP_BLACKLIST_ENABLED is False
    assert settings.UPLOAD_ALLOWED_TYPES == ["image/jpeg", "image/png", "image/webp"]


def test_environment_variables_override(monkeypatch):
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("CORS_ORIGINS", '["https://ansac.example.org"]')

    settings = Settings()

    assert settings.CACHE_TTL_SECONDS == 60
    assert settings.CORS_ORIGINS == ["https://ansac.example.org"]
