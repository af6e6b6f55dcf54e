"""
counseling_kernel.services.mail -- Outbox mail dispatcher.

``OutboxMailDispatcher`` satisfies ``MailDispatcher`` by appending messages
to an in-process outbox that the host drains into its real mail transport.
Delivery itself is outside the kernel.
"""

from __future__ import annotations

import threading

from counseling_kernel.domain.dtos import OutboundMail
from counseling_kernel.logging_config import get_logger

logger = get_logger("services.mail")


class OutboxMailDispatcher:
    """Thread-safe in-memory outbox."""

    def __init__(self) -> None:
        self._outbox: list[OutboundMail] = []
        self._lock = threading.Lock()

    def send(self, mail: OutboundMail) -> None:
        with self._lock:
            self._outbox.append(mail)
        logger.info(
            "mail_queued",
            extra={"to": mail.to, "subject": mail.subject},
        )

    @property
    def sent(self) -> list[OutboundMail]:
        with self._lock:
            return list(self._outbox)

    def drain(self) -> list[OutboundMail]:
        """Remove and return every queued message, oldest first."""
        with self._lock:
            drained, self._outbox = self._outbox, []
        return drained
