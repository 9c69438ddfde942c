"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

from authtokens.core.config import ConfigurationError, engine_options, load_token_config

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
redis_client: redis.Redis | None = None

TOKEN_SERVICE_KEY = "token_service"


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, Redis and the token service.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`authtokens.models` package to ensure SQLAlchemy metadata is
        ready for migrations.

    Raises
    ------
    ConfigurationError
        If the token settings are incomplete; the app must not start.
    """
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options(
        app.config["SQLALCHEMY_DATABASE_URI"],
        float(app.config.get("DATABASE_TIMEOUT", 5.0)),
        app.config.get("SQLALCHEMY_ENGINE_OPTIONS"),
    )
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from authtokens import models as _models  # noqa: F401

    migrate.init_app(app, db)

    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if redis_url:
        timeout = app.config.get("REDIS_SOCKET_TIMEOUT", 2.0)
        redis_client = redis.Redis.from_url(
            redis_url, socket_timeout=timeout, socket_connect_timeout=timeout
        )
        try:
            redis_client.ping()
        except RedisError as exc:
            raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
        app.extensions["redis_client"] = redis_client
    else:
        redis_client = None
        app.extensions.pop("redis_client", None)

    app.extensions[TOKEN_SERVICE_KEY] = build_token_service(app)


def get_redis() -> redis.Redis:
    """Return the initialized Redis client."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized. Set REDIS_URL.")
    return redis_client


def build_token_service(app: Flask):
    """Wire a :class:`TokenService` from ``app.config``.

    The store is chosen by ``TOKEN_STORE_BACKEND`` and the notifier by
    ``NOTIFIER``. Configuration is read once, here, and handed to the
    service as an immutable :class:`TokenConfig`.
    """
    from authtokens.infra.notify.logging_notifier import LoggingNotifier
    from authtokens.infra.notify.webhook_notifier import WebhookNotifier
    from authtokens.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
    from authtokens.infra.sqlalchemy.sqlalchemy_refresh_token_store import (
        SQLAlchemyRefreshTokenStore,
    )
    from authtokens.services import CredentialCodec, TokenService
    from authtokens.services._shared.ports import InMemoryRefreshTokenStore

    token_cfg = load_token_config(app.config)

    backend = str(app.config.get("TOKEN_STORE_BACKEND", "sqlalchemy")).lower()
    if backend == "sqlalchemy":
        store = SQLAlchemyRefreshTokenStore()
    elif backend == "redis":
        store = RedisRefreshTokenStore(get_redis())
    elif backend == "memory":
        store = InMemoryRefreshTokenStore()
    else:
        raise ConfigurationError(f"Unknown TOKEN_STORE_BACKEND: {backend!r}")

    kind = str(app.config.get("NOTIFIER", "log")).lower()
    if kind == "log":
        notifier = LoggingNotifier()
    elif kind == "webhook":
        url = app.config.get("NOTIFY_WEBHOOK_URL")
        if not url:
            raise ConfigurationError("NOTIFY_WEBHOOK_URL is required for NOTIFIER=webhook")
        notifier = WebhookNotifier(url, timeout=token_cfg.notify_timeout.total_seconds())
    else:
        raise ConfigurationError(f"Unknown NOTIFIER: {kind!r}")

    codec = CredentialCodec(
        signing_key=token_cfg.signing_key, hash_method=token_cfg.hash_method
    )
    return TokenService(store=store, codec=codec, notifier=notifier, token_cfg=token_cfg)


def get_token_service():
    """Return the :class:`TokenService` bound to the current app."""
    return current_app.extensions[TOKEN_SERVICE_KEY]
