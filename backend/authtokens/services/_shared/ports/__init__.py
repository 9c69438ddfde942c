"""
authtokens.services._shared.ports
=================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for refresh-token persistence and IP-change notification.

These ports decouple the token service from concrete implementations
of storage backends and delivery channels.

Modules
-------
- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore` and :class:`~.RefreshTokenRecord`
    describing the persistence contract with an atomic ``mark_used``
    check-and-set.

- :mod:`notifier`:
    Defines :class:`~.IPChangeNotifier`, a single-method fire-and-forget
    capability invoked when a token is refreshed from a new IP.

Design Notes
------------
Concrete adapters (SQLAlchemy, Redis, webhook, logging) live under
``authtokens.infra``. The in-memory implementations here back unit tests
and local runs.
"""

from __future__ import annotations

from .notifier import InMemoryNotifier, IPChangeNotifier, IPChangeWarning
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenRecord,
    RefreshTokenStore,
)

__all__ = [
    "IPChangeNotifier",
    "IPChangeWarning",
    "InMemoryNotifier",
    "RefreshTokenStore",
    "RefreshTokenRecord",
    "InMemoryRefreshTokenStore",
]
