import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from app.models.flight_price import FlightPrice
from app.schemas.flight_offer_schema import FlightOfferCreate

logger = logging.getLogger(__name__)


class PriceCache:
    """
    Short-lived store of fetched offers keyed by (from_airport, to_airport, date).

    A batch is a hit while now - fetched_at < ttl for every offer in it; one
    expired offer makes the whole batch a miss. Stale rows are not purged, the
    next store for the same key replaces them.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        ttl: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._session_factory = session_factory
        self.ttl = ttl
        self._clock = clock

    async def lookup(self, from_airport: str, to_airport: str, departure_date: date) -> Optional[List[FlightOfferCreate]]:
        """Cached offers ordered by price, or None on a miss."""
        now = self._clock()

        db = self._session_factory()
        try:
            rows = (
                db.query(FlightPrice)
                .filter(
                    FlightPrice.from_airport == from_airport,
                    FlightPrice.to_airport == to_airport,
                    FlightPrice.date == departure_date,
                )
                .order_by(FlightPrice.price.asc())
                .all()
            )
            offers = [FlightOfferCreate.model_validate(row) for row in rows]
        finally:
            db.close()

        if not offers:
            return None

        # The batch is as old as its oldest offer
        age = now - min(offer.fetched_at for offer in offers)
        if age >= self.ttl:
            logger.info(f"[Cache] Expired: {from_airport}-{to_airport} on {departure_date} is {age} old")
            return None

        logger.info(f"[Cache] Hit: {len(offers)} offers for {from_airport}-{to_airport} on {departure_date}")
        return offers

    async def store(
        self, from_airport: str, to_airport: str, departure_date: date, offers: Sequence[FlightOfferCreate]
    ) -> None:
        """Replace the batch for this key: old rows deleted and new rows inserted in one transaction."""
        db = self._session_factory()
        try:
            db.execute(
                delete(FlightPrice).where(
                    FlightPrice.from_airport == from_airport,
                    FlightPrice.to_airport == to_airport,
                    FlightPrice.date == departure_date,
                )
            )
            db.add_all(
                FlightPrice(**offer.model_dump(mode="python") | {"class_type": offer.class_type.value})
                for offer in offers
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info(f"[Cache] Saved {len(offers)} offers for {from_airport}-{to_airport} on {departure_date}")
