import logging

import pytest

from typedrepo.utils import settings as settings_mod
from typedrepo.utils.logging_config import configure_logging


@pytest.fixture
def _restore_package_log_level():
    logger = logging.getLogger("typedrepo")
    level = logger.level
    yield
    logger.setLevel(level)


def test_defaults():
    s = settings_mod.get_settings()
    assert s.database_url == settings_mod.DEFAULT_DATABASE_URL
    assert s.sql_echo is False
    assert s.batch_transactional is True
    assert s.inline_identity is None
    assert s.log_level == "INFO"


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///fallback.db")
    monkeypatch.setenv("TYPEDREPO_SQL_ECHO", "yes")
    monkeypatch.setenv("TYPEDREPO_BATCH_TRANSACTIONAL", "0")
    monkeypatch.setenv("TYPEDREPO_INLINE_IDENTITY", "true")
    monkeypatch.setenv("TYPEDREPO_LOG_LEVEL", "debug")
    settings_mod.refresh_settings_cache()

    s = settings_mod.get_settings()
    assert s.database_url == "sqlite:///fallback.db"
    assert s.sql_echo is True
    assert s.batch_transactional is False
    assert s.inline_identity is True
    assert s.log_level == "DEBUG"


def test_specific_url_wins_over_generic(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///generic.db")
    monkeypatch.setenv("TYPEDREPO_DATABASE_URL", "sqlite:///specific.db")
    settings_mod.refresh_settings_cache()
    assert settings_mod.get_settings().database_url == "sqlite:///specific.db"


def test_settings_are_cached(monkeypatch):
    first = settings_mod.get_settings()
    monkeypatch.setenv("TYPEDREPO_SQL_ECHO", "1")
    assert settings_mod.get_settings() is first
    settings_mod.refresh_settings_cache()
    assert settings_mod.get_settings().sql_echo is True


@pytest.mark.parametrize(
    "raw, default, expected",
    [(None, True, True), ("off", True, False), ("ON", False, True), ("maybe", False, False), ("", True, True)],
)
def test_normalize_bool(raw, default, expected):
    assert settings_mod._normalize_bool(raw, default) is expected


@pytest.mark.parametrize("raw, expected", [(None, None), ("auto", None), ("no", False), ("1", True)])
def test_normalize_tristate(raw, expected):
    assert settings_mod._normalize_tristate(raw) is expected


def test_configure_logging_uses_setting(monkeypatch, _restore_package_log_level):
    monkeypatch.setenv("TYPEDREPO_LOG_LEVEL", "WARNING")
    settings_mod.refresh_settings_cache()
    assert configure_logging() == logging.WARNING
    assert logging.getLogger("typedrepo").level == logging.WARNING


def test_configure_logging_unknown_level_falls_back(_restore_package_log_level):
    assert configure_logging("chatty") == logging.INFO
