"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    Parameters
    ----------
    app: flask.Flask
        Application whose client address should come from ``X-Forwarded-For``.

    Notes
    -----
    Controlled by ``USE_PROXYFIX`` (defaults to ``True``). Only one hop is
    trusted, so a client cannot spoof its IP binding by prepending entries
    to ``X-Forwarded-For``. Host and prefix headers are left alone since no
    URLs are generated.
    """
    if app.config.get("USE_PROXYFIX", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[method-assign]
