from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID


class IPChangeNotifier(Protocol):
    """
    Port for warning a user that their refresh token was used from a new IP.

    Implementations may raise :class:`NotificationError` (or anything else);
    the token service logs and swallows every failure.
    """

    def send_ip_change_warning(self, user_id: UUID, old_ip: str, new_ip: str) -> None: ...


@dataclass(frozen=True, slots=True)
class IPChangeWarning:
    """A single delivered warning (as recorded by :class:`InMemoryNotifier`)."""

    user_id: UUID
    old_ip: str
    new_ip: str


class InMemoryNotifier(IPChangeNotifier):
    """Notifier double that records warnings instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[IPChangeWarning] = []

    def send_ip_change_warning(self, user_id: UUID, old_ip: str, new_ip: str) -> None:
        self.sent.append(IPChangeWarning(user_id=user_id, old_ip=old_ip, new_ip=new_ip))
