from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

import requests

from authtokens.services._shared.errors import NotificationError


@dataclass(slots=True)
class WebhookNotifier:
    """
    POST IP-change warnings as JSON to an HTTP endpoint.

    Body: ``{"user_id": ..., "old_ip": ..., "new_ip": ...}``.

    :param url: Target endpoint.
    :param timeout: Per-request timeout in seconds.
    :param session: Optional :class:`requests.Session` for connection reuse.
    """

    url: str
    timeout: float = 2.0
    session: requests.Session | None = None

    def send_ip_change_warning(self, user_id: UUID, old_ip: str, new_ip: str) -> None:
        """
        :raises NotificationError: On transport failure or a non-2xx response.
        """
        http = self.session or requests
        try:
            resp = http.post(
                self.url,
                json={"user_id": str(user_id), "old_ip": old_ip, "new_ip": new_ip},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(f"IP change webhook failed: {exc}") from exc
