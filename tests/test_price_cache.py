"""Unit tests for the TTL price cache."""

import asyncio
from datetime import date, timedelta

from app.models.flight_price import FlightPrice
from tests.conftest import make_offer

ROUTE = ("SGN", "HAN", date(2025, 6, 1))


class TestPriceCacheLookup:
    """Tests for PriceCache.lookup."""

    def test_empty_cache_is_a_miss(self, price_cache) -> None:
        assert asyncio.run(price_cache.lookup(*ROUTE)) is None

    def test_fresh_batch_is_returned_cheapest_first(self, price_cache) -> None:
        asyncio.run(price_cache.store(*ROUTE, [make_offer(1_500_000), make_offer(900_000)]))

        offers = asyncio.run(price_cache.lookup(*ROUTE))
        assert [o.price for o in offers] == [900_000, 1_500_000]
        assert offers[0].from_airport == "SGN"
        assert offers[0].date == date(2025, 6, 1)

    def test_expired_batch_is_a_miss(self, price_cache, clock) -> None:
        asyncio.run(price_cache.store(*ROUTE, [make_offer(900_000)]))
        clock.advance(minutes=31)

        assert asyncio.run(price_cache.lookup(*ROUTE)) is None

    def test_batch_exactly_ttl_old_is_a_miss(self, price_cache, clock) -> None:
        asyncio.run(price_cache.store(*ROUTE, [make_offer(900_000)]))

        clock.advance(minutes=29, seconds=59)
        assert asyncio.run(price_cache.lookup(*ROUTE)) is not None

        clock.advance(seconds=1)
        assert asyncio.run(price_cache.lookup(*ROUTE)) is None

    def test_batch_with_one_expired_offer_is_a_miss(self, price_cache, clock) -> None:
        """Freshness is judged per batch, never returning the fresh part of it."""
        older = make_offer(900_000)
        newer = make_offer(1_100_000).model_copy(update={"fetched_at": clock.now + timedelta(minutes=20)})
        asyncio.run(price_cache.store(*ROUTE, [older, newer]))
        clock.advance(minutes=35)

        assert asyncio.run(price_cache.lookup(*ROUTE)) is None

    def test_key_must_match_exactly(self, price_cache) -> None:
        """Other dates and the reverse direction do not share a cache entry."""
        asyncio.run(price_cache.store(*ROUTE, [make_offer(900_000)]))

        assert asyncio.run(price_cache.lookup("HAN", "SGN", date(2025, 6, 1))) is None
        assert asyncio.run(price_cache.lookup("SGN", "HAN", date(2025, 6, 2))) is None


class TestPriceCacheStore:
    """Tests for PriceCache.store."""

    def test_second_store_replaces_first(self, price_cache, session_factory) -> None:
        """Storing twice leaves only the second batch, with no leftover duplicates."""
        asyncio.run(price_cache.store(*ROUTE, [make_offer(900_000), make_offer(1_100_000)]))
        asyncio.run(price_cache.store(*ROUTE, [make_offer(1_250_000, source="skyscanner")]))

        offers = asyncio.run(price_cache.lookup(*ROUTE))
        assert [(o.price, o.source) for o in offers] == [(1_250_000, "skyscanner")]

        db = session_factory()
        try:
            assert db.query(FlightPrice).count() == 1
        finally:
            db.close()

    def test_store_replaces_expired_rows(self, price_cache, session_factory, clock) -> None:
        asyncio.run(price_cache.store(*ROUTE, [make_offer(900_000)]))
        clock.advance(hours=2)
        asyncio.run(price_cache.store(*ROUTE, [make_offer(800_000).model_copy(update={"fetched_at": clock.now})]))

        offers = asyncio.run(price_cache.lookup(*ROUTE))
        assert [o.price for o in offers] == [800_000]

        db = session_factory()
        try:
            assert db.query(FlightPrice).count() == 1
        finally:
            db.close()

    def test_store_leaves_other_routes_alone(self, price_cache) -> None:
        asyncio.run(price_cache.store("SGN", "DAD", date(2025, 6, 1), [make_offer(700_000, to_airport="DAD")]))
        asyncio.run(price_cache.store(*ROUTE, [make_offer(900_000)]))

        other = asyncio.run(price_cache.lookup("SGN", "DAD", date(2025, 6, 1)))
        assert [o.price for o in other] == [700_000]
