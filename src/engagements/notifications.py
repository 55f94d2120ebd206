"""Balance-credited notifications.

Delivery is fire-and-forget: callers go through deliver(), which logs and
suppresses every failure so a notification can never fail a settlement.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from src.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceCreditedNotice:
    """Payload for one 'your balance was credited' message."""

    email: str
    name: str
    amount: int


class Notifier(Protocol):
    async def balance_credited(self, notice: BalanceCreditedNotice) -> None:
        ...


class LogNotifier:
    """Used when no notification webhook is configured."""

    async def balance_credited(self, notice: BalanceCreditedNotice) -> None:
        logger.info("Balance credited notice for %s: %d", notice.email, notice.amount)


class WebhookNotifier:
    """POSTs notices as JSON to an email/notification webhook."""

    def __init__(self, url: str, timeout: float = 5.0,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def balance_credited(self, notice: BalanceCreditedNotice) -> None:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self._url, json={
                "type": "balance_credited",
                "email": notice.email,
                "name": notice.name,
                "amount": notice.amount,
            })
            response.raise_for_status()


async def deliver(notifier: Notifier, notices: list[BalanceCreditedNotice]) -> int:
    """Send notices, suppressing failures. Returns how many were delivered."""
    delivered = 0
    for notice in notices:
        try:
            await notifier.balance_credited(notice)
            delivered += 1
        except Exception:
            logger.warning("Balance credited notice to %s failed", notice.email, exc_info=True)
    return delivered


def build_notifier(settings: Settings) -> Notifier:
    if settings.NOTIFICATION_WEBHOOK_URL:
        return WebhookNotifier(
            settings.NOTIFICATION_WEBHOOK_URL,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    return LogNotifier()
