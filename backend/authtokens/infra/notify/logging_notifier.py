from __future__ import annotations

import logging
from uuid import UUID

log = logging.getLogger(__name__)


class LoggingNotifier:
    """
    Stand-in delivery channel that writes the warning to the application log.

    Useful for local runs where no mail or webhook endpoint exists.
    """

    def send_ip_change_warning(self, user_id: UUID, old_ip: str, new_ip: str) -> None:
        log.warning(
            "IP change warning for user %s: %s -> %s",
            user_id,
            old_ip,
            new_ip,
            extra={"user_id": str(user_id), "old_ip": old_ip, "new_ip": new_ip},
        )
