"""
Notification capability consumed by the price checker.

Push delivery lives outside this service; the checker only needs
notify(subscription, kind, price) -> NotificationOutcome.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from app.models.subscription import Subscription

logger = logging.getLogger("Notifier")

TICKET_AVAILABLE = "ticket_available"
PRICE_DROP = "price_drop"
BELOW_EXPECTED = "below_expected"


@dataclass
class NotificationOutcome:
    success: bool
    reason: Optional[str] = None


class Notifier(ABC):

    @abstractmethod
    async def notify(
        self,
        subscription: Subscription,
        kind: str,
        price: int,
        previous_price: Optional[int] = None,
    ) -> NotificationOutcome:
        ...


class LoggingNotifier(Notifier):
    """Writes notifications to the log. Reports failure unless delivery is marked as configured."""

    def __init__(self, delivered: bool = False):
        self._delivered = delivered

    async def notify(self, subscription, kind, price, previous_price=None):
        route = f"{subscription.from_airport}->{subscription.to_airport}"
        if previous_price is not None:
            logger.info(f"[{kind}] user={subscription.user_id} {route} on {subscription.date}: {previous_price} -> {price}")
        else:
            logger.info(f"[{kind}] user={subscription.user_id} {route} on {subscription.date}: {price}")

        if not self._delivered:
            return NotificationOutcome(success=False, reason="not_configured")
        return NotificationOutcome(success=True)
