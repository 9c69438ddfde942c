"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from authtokens.core.config import BaseConfig, get_config
from authtokens.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    Fails fast with :class:`~authtokens.core.config.ConfigurationError` when
    the token settings are incomplete.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Proxy headers so ``request.remote_addr`` reflects the real client
    from authtokens.core import proxy

    proxy.init_app(app)

    from authtokens.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from authtokens.api import init_app as init_api

    init_api(app)

    from authtokens.core import errors

    errors.init_app(app)

    return app
