import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.schemas.flight_offer_schema import FlightOfferCreate, SearchResult
from app.services.price_cache import PriceCache
from app.services.usage_tracker import UsageTracker
from fare_collector.providers.provider_manager import ProviderManager

logger = logging.getLogger(__name__)


def _as_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def _cheapest_first(offers: List[FlightOfferCreate]) -> List[FlightOfferCreate]:
    return sorted(offers, key=lambda offer: offer.price)


class FlightSearchService:
    """
    Entry point for fare lookups: cache first, then provider rotation.

    Provider failures never surface here. "No price available" and "every
    provider failed" both come back as an empty, uncached result. Storage
    errors propagate to the caller.
    """

    def __init__(self, cache: PriceCache, provider_manager: ProviderManager):
        self.cache = cache
        self.provider_manager = provider_manager

    async def search_flights(
        self, from_airport: str, to_airport: str, departure_date: Union[date, datetime, str]
    ) -> SearchResult:
        from_airport = from_airport.upper()
        to_airport = to_airport.upper()
        departure_date = _as_date(departure_date)

        # 1. Cache
        cached_offers = await self.cache.lookup(from_airport, to_airport, departure_date)
        if cached_offers is not None:
            logger.info(f"Returning {len(cached_offers)} cached flights for {from_airport}-{to_airport}")
            return SearchResult(cached=True, flights=_cheapest_first(cached_offers))

        # 2. Providers
        logger.info(f"Fetching flights for {from_airport}-{to_airport} on {departure_date}")
        offers = await self.provider_manager.fetch_offers(from_airport, to_airport, departure_date)

        if not offers:
            logger.info(f"No flights found for {from_airport}-{to_airport} on {departure_date}")
            return SearchResult(cached=False, flights=[])

        # 3. Persist the fresh batch
        await self.cache.store(from_airport, to_airport, departure_date, offers)
        return SearchResult(cached=False, flights=_cheapest_first(offers))

    async def get_lowest_price(
        self, from_airport: str, to_airport: str, departure_date: Union[date, datetime, str]
    ) -> Optional[int]:
        result = await self.search_flights(from_airport, to_airport, departure_date)
        if not result.flights:
            return None
        return result.flights[0].price


def build_search_service(settings: Settings, session_factory: sessionmaker) -> FlightSearchService:
    """Wire cache, usage tracker and provider rotation from settings. One instance per process."""
    usage_tracker = UsageTracker(session_factory)
    manager = ProviderManager.from_settings(settings, usage_tracker)
    cache = PriceCache(session_factory, ttl=timedelta(minutes=settings.cache_ttl_minutes))
    return FlightSearchService(cache, manager)
