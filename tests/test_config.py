"""
Tests for Settings and the db_enabled gate.
"""

import pytest

from checkin_service.config import Settings, parse_port


def _settings(**overrides):
    values = dict(
        _env_file=None,
        db_host="db.internal",
        db_port="5432",
        db_user="app",
        db_password="secret",
        db_name="presenca",
    )
    values.update(overrides)
    return Settings(**values)


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for name in ("PORT", "NODE_ENV", "APP_ENV", "DB_PORT"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.port == 8080
        assert settings.env == "production"
        assert settings.db_port == "5432"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("NODE_ENV", "staging")
        monkeypatch.setenv("DB_HOST", "pg")
        monkeypatch.setenv("DB_USER", "u")
        monkeypatch.setenv("DB_PASSWORD", "p")
        monkeypatch.setenv("DB_NAME", "n")
        monkeypatch.setenv("DB_PORT", "6432")
        settings = Settings(_env_file=None)
        assert settings.port == 9090
        assert settings.env == "staging"
        assert settings.db_enabled is True
        assert settings.database_url.port == 6432

    def test_settings_are_immutable(self):
        settings = _settings()
        with pytest.raises(Exception):
            settings.port = 1


class TestDbEnabled:
    def test_enabled_when_complete(self):
        settings = _settings()
        assert settings.db_enabled is True
        assert settings.db_disabled_reasons() == []

    @pytest.mark.parametrize("field", ["db_host", "db_user", "db_password", "db_name"])
    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_field_disables(self, field, value):
        settings = _settings(**{field: value})
        assert settings.db_enabled is False
        assert f"{field}_missing" in settings.db_disabled_reasons()

    @pytest.mark.parametrize("port", ["abc", "", "inf", "nan", "54x"])
    def test_invalid_port_disables(self, port):
        settings = _settings(db_port=port)
        assert settings.db_enabled is False
        assert "db_port_invalid" in settings.db_disabled_reasons()

    def test_support_switched_off_disables(self):
        settings = _settings(db_support=False)
        assert settings.db_enabled is False
        assert settings.db_disabled_reasons() == ["db_support_off"]

    def test_never_raises_for_incomplete_configuration(self):
        settings = _settings(db_host=None, db_port="nope")
        assert settings.db_enabled is False


class TestDatabaseUrl:
    def test_builds_asyncpg_url(self):
        url = _settings().database_url
        assert url.drivername == "postgresql+asyncpg"
        assert url.host == "db.internal"
        assert url.port == 5432
        assert url.username == "app"
        assert url.password == "secret"
        assert url.database == "presenca"


@pytest.mark.parametrize(
    "raw,expected",
    [("5432", 5432.0), (" 6432 ", 6432.0), ("5432.0", 5432.0), ("x", None), ("", None), ("-inf", None), (None, None)],
)
def test_parse_port(raw, expected):
    assert parse_port(raw) == expected
