"""Unit tests for token service wiring from app config."""

from __future__ import annotations

import fakeredis
import pytest
from flask import Flask

from authtokens.core import extensions
from authtokens.core.config import ConfigurationError, TestingConfig
from authtokens.infra.notify.logging_notifier import LoggingNotifier
from authtokens.infra.notify.webhook_notifier import WebhookNotifier
from authtokens.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
from authtokens.infra.sqlalchemy.sqlalchemy_refresh_token_store import (
    SQLAlchemyRefreshTokenStore,
)
from authtokens.services import TokenService
from authtokens.services._shared.ports import InMemoryRefreshTokenStore


def _app(**overrides) -> Flask:
    app = Flask(__name__)
    app.config.from_object(TestingConfig)
    app.config.update(overrides)
    return app


def test_default_wiring_uses_sqlalchemy_and_logging():
    service = extensions.build_token_service(_app())

    assert isinstance(service, TokenService)
    assert isinstance(service.store, SQLAlchemyRefreshTokenStore)
    assert isinstance(service.notifier, LoggingNotifier)


def test_memory_backend():
    service = extensions.build_token_service(_app(TOKEN_STORE_BACKEND="memory"))
    assert isinstance(service.store, InMemoryRefreshTokenStore)


def test_redis_backend_uses_shared_client(monkeypatch):
    fake = fakeredis.FakeRedis()
    monkeypatch.setattr(extensions, "redis_client", fake)

    service = extensions.build_token_service(_app(TOKEN_STORE_BACKEND="redis"))

    assert isinstance(service.store, RedisRefreshTokenStore)
    assert service.store.r is fake


def test_redis_backend_without_client_fails(monkeypatch):
    monkeypatch.setattr(extensions, "redis_client", None)
    with pytest.raises(RuntimeError):
        extensions.build_token_service(_app(TOKEN_STORE_BACKEND="redis"))


def test_webhook_notifier_takes_timeout_from_config():
    service = extensions.build_token_service(
        _app(NOTIFIER="webhook", NOTIFY_WEBHOOK_URL="https://hooks.example.com", NOTIFY_TIMEOUT="3s")
    )
    assert isinstance(service.notifier, WebhookNotifier)
    assert service.notifier.timeout == 3.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"TOKEN_STORE_BACKEND": "cassandra"},
        {"NOTIFIER": "pigeon"},
        {"NOTIFIER": "webhook", "NOTIFY_WEBHOOK_URL": None},
        {"JWT_SECRET_KEY": None},
        {"REFRESH_TOKEN_TTL": "later"},
    ],
)
def test_bad_settings_refuse_to_start(overrides):
    with pytest.raises(ConfigurationError):
        extensions.build_token_service(_app(**overrides))


def test_init_app_applies_database_timeout(monkeypatch):
    monkeypatch.setattr(extensions, "redis_client", None)
    app = _app(REDIS_URL=None, DATABASE_TIMEOUT=3.0)

    extensions.init_app(app)

    opts = app.config["SQLALCHEMY_ENGINE_OPTIONS"]
    assert opts["pool_pre_ping"] is True
    assert opts["connect_args"]["timeout"] == 3.0
    assert "timeout" not in (TestingConfig.SQLALCHEMY_ENGINE_OPTIONS.get("connect_args") or {})
