"""
Unit tests for application settings.
"""

import pytest
from pydantic import ValidationError

from passgate.config.settings import Settings


class TestJwtSecretKey:
    def test_missing_secret_key_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("JWT_SECRET_KEY", raising=False)

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        assert "jwt_secret_key" in str(exc_info.value)

    def test_short_secret_key_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET_KEY", "too-short")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_secret_key_read_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET_KEY", "k" * 48)

        settings = Settings(_env_file=None)

        assert settings.jwt_secret_key == "k" * 48
        assert settings.jwt_algorithm == "HS256"
        assert settings.bcrypt_cost == 10
