import io
import logging

import pytest

from membership.core.logging import (
    LoggingContextFilter,
    configure_logging,
    correlation_id_var,
    identity_var,
    logging_context,
)
from membership.core.settings import AppSettings
from membership.db.config import Settings


def test_app_settings_defaults(monkeypatch):
    monkeypatch.delenv("LOGIN_MAX_ATTEMPTS", raising=False)
    settings = AppSettings()
    assert settings.LOGIN_MAX_ATTEMPTS == 5
    assert settings.LOGIN_LOCKOUT_MINUTES == 15
    assert settings.LOGIN_ATTEMPT_RETENTION_HOURS == 24
    assert settings.DEFAULT_CHUNK_SIZE == 100


def test_app_settings_from_environment(monkeypatch):
    monkeypatch.setenv("LOGIN_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = AppSettings()
    assert settings.LOGIN_MAX_ATTEMPTS == 3
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.log_level == logging.DEBUG


def test_unknown_log_level_falls_back_to_info():
    assert AppSettings(LOG_LEVEL="chatty").log_level == logging.INFO


def test_database_url_prefers_explicit_url():
    assert Settings(DATABASE_URL="sqlite://").database_url == "sqlite://"


def test_database_url_built_from_parts():
    settings = Settings(
        DATABASE_URL=None,
        POSTGRES_USER="club",
        POSTGRES_PASSWORD="secret",
        POSTGRES_DB="members",
        POSTGRES_HOST="db",
        POSTGRES_PORT=5433,
    )
    assert settings.database_url == "postgresql+psycopg://club:secret@db:5433/members"


def test_database_url_requires_configuration(monkeypatch):
    for var in ("DATABASE_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB"):
        monkeypatch.delenv(var, raising=False)
    with pytest.raises(ValueError):
        Settings(_env_file=None).database_url


def test_logging_context_binds_and_resets():
    with logging_context(correlation_id="req-1", identity="alice@example.com"):
        assert correlation_id_var.get() == "req-1"
        assert identity_var.get() == "alice@example.com"
        with logging_context(identity="bob@example.com"):
            assert identity_var.get() == "bob@example.com"
            assert correlation_id_var.get() == "req-1"
        assert identity_var.get() == "alice@example.com"
    assert correlation_id_var.get() is None
    assert identity_var.get() is None


def test_filter_injects_placeholders():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    assert LoggingContextFilter().filter(record)
    assert record.correlation_id == "-"
    assert record.identity == "-"


def test_configure_logging_format(monkeypatch):
    stream = io.StringIO()
    monkeypatch.setattr("sys.stdout", stream)
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging(logging.INFO)
        with logging_context(identity="alice@example.com"):
            logging.getLogger("membership.test").info("hello")
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

    line = stream.getvalue().strip()
    assert "| INFO | membership.test | cid=- | identity=alice@example.com | hello" in line
