"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

from authtokens.services.tokens.dto import TokenConfig

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Load .env in development (no-op when missing)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or unparsable."""


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


_DURATION_UNITS: Final[Mapping[str, float]] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | timedelta) -> timedelta:
    """Parse a duration string such as ``"15m"``, ``"720h"`` or ``"1h30m"``.

    Parameters
    ----------
    value: str | datetime.timedelta
        Text made of ``<number><unit>`` parts (units ``ns``, ``us``, ``ms``,
        ``s``, ``m``, ``h``) with an optional leading sign. A bare ``"0"`` is
        accepted. ``timedelta`` values are returned unchanged.

    Returns
    -------
    datetime.timedelta

    Raises
    ------
    ValueError
        If ``value`` is empty or contains anything but unit-suffixed numbers.
    """
    if isinstance(value, timedelta):
        return value
    text = str(value).strip()
    sign = 1
    if text[:1] in {"+", "-"}:
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    seconds = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {value!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return timedelta(seconds=sign * seconds)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    JWT_SECRET_KEY: str | None
        HS512 signing key for access tokens. Required; startup fails without it.
    ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL: str | None
        Token lifetimes as duration strings (``"15m"``, ``"720h"``). Required.
    REFRESH_HASH_METHOD: str
        Werkzeug hash method (algorithm and cost) for refresh secrets.
    TOKEN_STORE_BACKEND: str
        ``sqlalchemy`` (default), ``redis`` or ``memory``.
    REDIS_URL: str | None
        Connection URL, required when the Redis store is selected.
    REDIS_SOCKET_TIMEOUT: float
        Socket and connect timeout (seconds) for the Redis client.
    DATABASE_TIMEOUT: float
        Seconds bounding pool checkout, connect and (PostgreSQL) statement
        time. See :func:`engine_options`.
    NOTIFIER: str
        ``log`` (default) or ``webhook``.
    NOTIFY_WEBHOOK_URL: str | None
        Target for the webhook notifier.
    NOTIFY_TIMEOUT: str
        Upper bound for a single IP-change notification.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    SERVER_PORT: int
        Listening port used by ``gunicorn.conf.py`` and ``wsgi.py``.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    USE_PROXYFIX: bool
        Trust one hop of ``X-Forwarded-*`` headers for the client address.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Tokens
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    ACCESS_TOKEN_TTL = os.getenv("ACCESS_TOKEN_TTL")
    REFRESH_TOKEN_TTL = os.getenv("REFRESH_TOKEN_TTL")
    REFRESH_HASH_METHOD = os.getenv("REFRESH_HASH_METHOD", "pbkdf2:sha256:600000")

    # Storage
    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", "sqlalchemy")
    REDIS_URL = os.getenv("REDIS_URL")
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0"))
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    DATABASE_TIMEOUT = float(os.getenv("DATABASE_TIMEOUT", "5"))

    # Notifications
    NOTIFIER = os.getenv("NOTIFIER", "log")
    NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL")
    NOTIFY_TIMEOUT = os.getenv("NOTIFY_TIMEOUT", "2s")

    # Server
    SERVER_PORT = int(os.getenv("SERVER_PORT", "8080"))
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Ships a fixed signing key, short TTLs and a cheap hash cost.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-signing-key-" + "x" * 44
    ACCESS_TOKEN_TTL = "15m"
    REFRESH_TOKEN_TTL = "720h"
    REFRESH_HASH_METHOD = "pbkdf2:sha256:1000"
    TOKEN_STORE_BACKEND = "sqlalchemy"
    NOTIFIER = "log"
    NOTIFY_TIMEOUT = "1s"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def _required_duration(settings: Mapping[str, Any], key: str) -> timedelta:
    raw = settings.get(key)
    if raw is None or raw == "":
        raise ConfigurationError(f"{key} is required")
    try:
        value = parse_duration(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} is not a valid duration: {raw!r}") from exc
    if value <= timedelta(0):
        raise ConfigurationError(f"{key} must be positive, got {raw!r}")
    return value


def load_token_config(settings: Mapping[str, Any]) -> TokenConfig:
    """Build the immutable :class:`TokenConfig` from a settings mapping.

    Parameters
    ----------
    settings: Mapping[str, Any]
        Usually ``app.config``; any mapping with the keys documented on
        :class:`BaseConfig` works.

    Returns
    -------
    TokenConfig

    Raises
    ------
    ConfigurationError
        If the signing key is absent or a duration is missing or invalid.
    """
    key = settings.get("JWT_SECRET_KEY")
    if not key:
        raise ConfigurationError("JWT_SECRET_KEY is required")
    signing_key = key if isinstance(key, bytes) else str(key).encode("utf-8")

    try:
        notify_timeout = parse_duration(settings.get("NOTIFY_TIMEOUT") or "2s")
    except ValueError as exc:
        raise ConfigurationError("NOTIFY_TIMEOUT is not a valid duration") from exc

    return TokenConfig(
        signing_key=signing_key,
        access_ttl=_required_duration(settings, "ACCESS_TOKEN_TTL"),
        refresh_ttl=_required_duration(settings, "REFRESH_TOKEN_TTL"),
        hash_method=settings.get("REFRESH_HASH_METHOD") or "pbkdf2:sha256:600000",
        notify_timeout=notify_timeout,
    )


def engine_options(
    uri: str, timeout: float, base: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Return SQLAlchemy engine options bounding every wait on the database.

    Parameters
    ----------
    uri: str
        ``SQLALCHEMY_DATABASE_URI``; its scheme selects the driver options.
    timeout: float
        Seconds allowed for a pool checkout, a new connection and (on
        PostgreSQL) a single statement. ``0`` or less disables the bounds.
    base: Mapping[str, Any] | None, optional
        Explicit ``SQLALCHEMY_ENGINE_OPTIONS``; keys set here win.

    Returns
    -------
    dict[str, Any]
        A new dict suitable for ``SQLALCHEMY_ENGINE_OPTIONS``.
    """
    options: dict[str, Any] = dict(base or {})
    connect_args: dict[str, Any] = dict(options.get("connect_args") or {})
    options.setdefault("pool_pre_ping", True)

    if timeout > 0:
        scheme = uri.split(":", 1)[0].lower()
        if scheme.startswith("postgresql"):
            options.setdefault("pool_timeout", timeout)
            # libpq wants whole seconds, minimum 2
            connect_args.setdefault("connect_timeout", max(2, int(round(timeout))))
            connect_args.setdefault("options", f"-c statement_timeout={int(timeout * 1000)}")
        elif scheme.startswith("sqlite"):
            # Lock wait; in-memory SQLite runs on a StaticPool without pool_timeout
            connect_args.setdefault("timeout", timeout)
        else:
            options.setdefault("pool_timeout", timeout)

    if connect_args:
        options["connect_args"] = connect_args
    return options
