"""Pytest fixtures for the token service and its Flask wiring.

Unit tests get a :class:`TokenService` wired to in-memory doubles. Store and
HTTP tests run against an in-memory SQLite database whose schema is rebuilt
for every test.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from datetime import timedelta
from typing import Any

import pytest
from flask import Flask

from authtokens import create_app
from authtokens.core.config import TestingConfig
from authtokens.core.extensions import db as _db
from authtokens.services import CredentialCodec, TokenConfig, TokenService
from authtokens.services._shared.ports import InMemoryNotifier, InMemoryRefreshTokenStore

SIGNING_KEY = b"k" * 64
FAST_HASH = "pbkdf2:sha256:1000"


# ------------------------------ Core doubles ------------------------------ #
@pytest.fixture()
def token_cfg() -> TokenConfig:
    """Short access TTL, long refresh TTL and a cheap hash cost."""
    return TokenConfig(
        signing_key=SIGNING_KEY,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(hours=720),
        hash_method=FAST_HASH,
        notify_timeout=timedelta(seconds=1),
    )


@pytest.fixture()
def codec(token_cfg: TokenConfig) -> CredentialCodec:
    return CredentialCodec(signing_key=token_cfg.signing_key, hash_method=token_cfg.hash_method)


@pytest.fixture()
def store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture()
def make_service(
    codec: CredentialCodec,
    store: InMemoryRefreshTokenStore,
    notifier: InMemoryNotifier,
    token_cfg: TokenConfig,
) -> Callable[..., TokenService]:
    """Factory building a :class:`TokenService`; keyword overrides replace the defaults."""

    def _factory(**overrides: Any) -> TokenService:
        deps: dict[str, Any] = {
            "store": store,
            "codec": codec,
            "notifier": notifier,
            "token_cfg": token_cfg,
        }
        deps.update(overrides)
        return TokenService(**deps)

    return _factory


@pytest.fixture()
def service(make_service: Callable[..., TokenService]) -> TokenService:
    """Token service wired to in-memory doubles."""
    return make_service()


# ------------------------------ Flask app --------------------------------- #
class AppTestConfig(TestingConfig):
    """Testing config pinned to in-memory SQLite and the logging notifier."""

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    TOKEN_STORE_BACKEND = "sqlalchemy"
    REDIS_URL = None


@pytest.fixture(scope="session")
def app() -> Generator[Flask, None, None]:
    """Create a Flask application configured for testing."""
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    application = create_app(AppTestConfig)
    application.logger.setLevel("WARNING")
    yield application


@pytest.fixture()
def db(app: Flask) -> Generator[Any, None, None]:
    """Fresh schema per test inside an application context."""
    with app.app_context():
        _db.create_all()
        try:
            yield _db
        finally:
            _db.session.remove()
            _db.drop_all()


@pytest.fixture()
def client(app: Flask, db: Any) -> Any:
    """Return a Flask test client backed by a fresh database."""
    return app.test_client()


@pytest.fixture()
def freeze_time() -> Callable[..., Any]:
    """Factory returning :func:`freezegun.freeze_time`.

    Examples
    --------
    >>> def test_with_frozen_time(freeze_time):
    ...     with freeze_time("2024-01-01") as frozen:
    ...         frozen.tick(60)
    """
    from freezegun import freeze_time as _freeze_time

    def _factory(target: str | None = None) -> Any:
        return _freeze_time(target or "2024-01-01T00:00:00Z")

    return _factory
