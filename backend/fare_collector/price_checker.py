import asyncio
import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, sessionmaker

from app.models.subscription import NotificationHistory, Subscription
from app.services.flight_search_service import FlightSearchService
from fare_collector.notifications import (
    BELOW_EXPECTED,
    PRICE_DROP,
    TICKET_AVAILABLE,
    Notifier,
)

logger = logging.getLogger("PriceChecker")

# A drop is worth a notification at 5% or 100,000 (VND), whichever comes first
MIN_DROP_PERCENT = 5.0
MIN_DROP_AMOUNT = 100_000

RouteKey = Tuple[str, str, date]


def group_subscriptions(subscriptions: List[Subscription]) -> "OrderedDict[RouteKey, List[Subscription]]":
    """One group per (from, to, date) so each distinct route/date is searched once per sweep."""
    groups: "OrderedDict[RouteKey, List[Subscription]]" = OrderedDict()
    for sub in subscriptions:
        key = (sub.from_airport, sub.to_airport, sub.date)
        groups.setdefault(key, []).append(sub)
    return groups


def is_significant_drop(previous_price: int, current_price: int) -> bool:
    if current_price >= previous_price:
        return False
    drop = previous_price - current_price
    return drop >= MIN_DROP_AMOUNT or (drop / previous_price) * 100 >= MIN_DROP_PERCENT


class PriceChecker:
    """
    Periodic sweep over active subscriptions.

    Each sweep loads subscriptions departing today or later, searches each
    distinct route/date once, then updates every subscription in the group and
    sends ticket_available / price_drop / below_expected notifications.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        search_service: FlightSearchService,
        notifier: Notifier,
        group_delay: float = 1.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._session_factory = session_factory
        self._search = search_service
        self._notifier = notifier
        self._group_delay = group_delay
        self._clock = clock

    async def check_prices(self) -> Dict[str, int]:
        started = self._clock()
        logger.info(f"[{started.isoformat()}] Starting price check sweep...")
        stats = {"groups": 0, "subscriptions": 0, "no_price": 0, "errors": 0, "notifications": 0}

        db = self._session_factory()
        try:
            subscriptions = (
                db.query(Subscription)
                .filter(Subscription.is_active.is_(True), Subscription.date >= started.date())
                .order_by(Subscription.id.asc())
                .all()
            )
            logger.info(f"Found {len(subscriptions)} active subscriptions to check")

            groups = group_subscriptions(subscriptions)
            for position, ((from_airport, to_airport, departure_date), group) in enumerate(groups.items()):
                if position > 0 and self._group_delay > 0:
                    # Smooth the request rate between distinct route/date searches
                    await asyncio.sleep(self._group_delay)

                stats["groups"] += 1
                route = f"{from_airport}-{to_airport}-{departure_date}"
                try:
                    logger.info(f"Checking prices for {from_airport} -> {to_airport} on {departure_date}")
                    current_price = await self._search.get_lowest_price(from_airport, to_airport, departure_date)
                except Exception as e:
                    logger.error(f"Error checking prices for route {route}: {e}")
                    stats["errors"] += 1
                    continue

                if current_price is None:
                    logger.info(f"No flights found for route {route}")
                    stats["no_price"] += 1
                    continue

                # One transaction per subscription: a failure rolls back only that subscription
                for subscription in group:
                    subscription_id = subscription.id
                    try:
                        sent = await self._process_subscription(db, subscription, current_price)
                        db.commit()
                    except Exception as e:
                        logger.error(f"Error processing subscription {subscription_id} on route {route}: {e}")
                        db.rollback()
                        stats["errors"] += 1
                        continue
                    stats["notifications"] += sent
                    stats["subscriptions"] += 1
        finally:
            db.close()

        logger.info(f"Price check sweep completed: {stats}")
        return stats

    async def _process_subscription(self, db: Session, subscription: Subscription, current_price: int) -> int:
        """Update one subscription with the latest price. Returns the number of notifications sent."""
        previous_price: Optional[int] = subscription.current_price
        now = self._clock()

        subscription.current_price = current_price
        subscription.last_checked_at = now

        sent = []
        if previous_price is None:
            outcome = await self._notifier.notify(subscription, TICKET_AVAILABLE, current_price)
            if outcome.success:
                sent.append(TICKET_AVAILABLE)
        elif is_significant_drop(previous_price, current_price):
            outcome = await self._notifier.notify(subscription, PRICE_DROP, current_price, previous_price)
            if outcome.success:
                sent.append(PRICE_DROP)

        if current_price <= subscription.expected_price and not subscription.notification_sent:
            outcome = await self._notifier.notify(subscription, BELOW_EXPECTED, current_price)
            if outcome.success:
                subscription.notification_sent = True
                sent.append(BELOW_EXPECTED)
            else:
                logger.warning(f"Subscription {subscription.id}: below_expected not delivered ({outcome.reason})")

        for kind in sent:
            db.add(NotificationHistory(subscription_id=subscription.id, price=current_price, type=kind, sent_at=now))

        if sent:
            logger.info(
                f"Notified user {subscription.user_id} for "
                f"{subscription.from_airport}->{subscription.to_airport}: {', '.join(sent)}"
            )
        return len(sent)

    async def run_forever(self, interval_minutes: int = 15) -> None:
        """Sweep now, then every interval_minutes. A failed sweep is logged and retried next interval."""
        logger.info(f"Price checker scheduled to run every {interval_minutes} minutes")
        while True:
            try:
                await self.check_prices()
            except Exception as e:
                logger.error(f"Price check sweep error: {e}")
            await asyncio.sleep(interval_minutes * 60)


async def main():
    from app.config import settings
    from app.database import SessionLocal, init_db
    from app.services.flight_search_service import build_search_service
    from fare_collector.notifications import LoggingNotifier

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    init_db()

    checker = PriceChecker(
        SessionLocal,
        build_search_service(settings, SessionLocal),
        LoggingNotifier(),
        group_delay=settings.sweep_group_delay_seconds,
    )
    await checker.run_forever(settings.sweep_interval_minutes)

if __name__ == "__main__":
    asyncio.run(main())
