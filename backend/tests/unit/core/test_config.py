"""Unit tests for settings parsing."""

from __future__ import annotations

from datetime import timedelta

import pytest

from authtokens.core.config import (
    ConfigurationError,
    DevelopmentConfig,
    TestingConfig,
    engine_options,
    get_config,
    load_token_config,
    parse_duration,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("15m", timedelta(minutes=15)),
        ("720h", timedelta(hours=720)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("2s", timedelta(seconds=2)),
        ("1.5s", timedelta(seconds=1.5)),
        ("250ms", timedelta(milliseconds=250)),
        ("0", timedelta(0)),
        ("-5m", timedelta(minutes=-5)),
        (timedelta(seconds=3), timedelta(seconds=3)),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", "15", "m", "15 m", "15x", "1h-30m", "abc"])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)


def _settings(**overrides):
    base = {
        "JWT_SECRET_KEY": "s" * 64,
        "ACCESS_TOKEN_TTL": "15m",
        "REFRESH_TOKEN_TTL": "720h",
        "REFRESH_HASH_METHOD": "pbkdf2:sha256:1000",
        "NOTIFY_TIMEOUT": "500ms",
    }
    base.update(overrides)
    return base


def test_load_token_config_builds_immutable_config():
    cfg = load_token_config(_settings())

    assert cfg.signing_key == b"s" * 64
    assert cfg.access_ttl == timedelta(minutes=15)
    assert cfg.refresh_ttl == timedelta(hours=720)
    assert cfg.hash_method == "pbkdf2:sha256:1000"
    assert cfg.notify_timeout == timedelta(milliseconds=500)
    assert "s" * 64 not in repr(cfg)


@pytest.mark.parametrize("value", [None, ""])
def test_missing_signing_key_fails(value):
    with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
        load_token_config(_settings(JWT_SECRET_KEY=value))


@pytest.mark.parametrize("key", ["ACCESS_TOKEN_TTL", "REFRESH_TOKEN_TTL"])
@pytest.mark.parametrize("value", [None, "", "forever", "0", "-1m"])
def test_bad_ttl_fails(key, value):
    with pytest.raises(ConfigurationError, match=key):
        load_token_config(_settings(**{key: value}))


def test_bad_notify_timeout_fails():
    with pytest.raises(ConfigurationError, match="NOTIFY_TIMEOUT"):
        load_token_config(_settings(NOTIFY_TIMEOUT="soon"))


def test_get_config_follows_app_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    assert get_config() is TestingConfig
    monkeypatch.setenv("APP_ENV", "nope")
    assert get_config() is DevelopmentConfig


def test_testing_config_is_loadable():
    settings = {k: getattr(TestingConfig, k) for k in dir(TestingConfig) if k.isupper()}
    cfg = load_token_config(settings)
    assert cfg.access_ttl == timedelta(minutes=15)


def test_engine_options_bound_postgres_waits():
    opts = engine_options("postgresql+psycopg://u:p@db/app", 5.0)

    assert opts["pool_pre_ping"] is True
    assert opts["pool_timeout"] == 5.0
    assert opts["connect_args"]["connect_timeout"] == 5
    assert opts["connect_args"]["options"] == "-c statement_timeout=5000"


def test_engine_options_sqlite_uses_lock_timeout_only():
    opts = engine_options("sqlite:///:memory:", 1.5)

    assert "pool_timeout" not in opts
    assert opts["connect_args"] == {"timeout": 1.5}


def test_engine_options_keep_explicit_values():
    base = {"pool_pre_ping": False, "connect_args": {"connect_timeout": 30}}

    opts = engine_options("postgresql://db/app", 5.0, base)

    assert opts["pool_pre_ping"] is False
    assert opts["connect_args"]["connect_timeout"] == 30
    assert base == {"pool_pre_ping": False, "connect_args": {"connect_timeout": 30}}


def test_engine_options_zero_timeout_disables_bounds():
    opts = engine_options("postgresql://db/app", 0)
    assert opts == {"pool_pre_ping": True}