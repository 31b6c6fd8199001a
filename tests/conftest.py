"""Pytest configuration and fixtures."""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence, Union

# Ensure backend is on path when running tests without installed package
backend = Path(__file__).resolve().parent.parent / "backend"
if backend.exists() and str(backend) not in sys.path:
    sys.path.insert(0, str(backend))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, init_db
from app.schemas.flight_offer_schema import FlightOfferCreate
from app.services.price_cache import PriceCache
from app.services.usage_tracker import UsageTracker
from fare_collector.providers.base import FlightProviderInterface


class FakeClock:
    """Callable clock that tests move forward explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


Outcome = Union[List[FlightOfferCreate], Exception]


class StubProvider(FlightProviderInterface):
    """Provider returning scripted outcomes; the last outcome repeats once the script runs out."""

    def __init__(self, name: str, outcomes: Sequence[Outcome] = (), enabled: bool = True):
        super().__init__()
        self._name = name
        self._outcomes = list(outcomes) or [[]]
        self._enabled = enabled
        self.calls: List[tuple] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    async def fetch_offers(self, origin, destination, departure_date):
        self.calls.append((origin, destination, departure_date))
        index = min(len(self.calls) - 1, len(self._outcomes) - 1)
        outcome = self._outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_offer(
    price: int,
    source: str = "stub",
    from_airport: str = "SGN",
    to_airport: str = "HAN",
    departure_date: date = date(2025, 6, 1),
    airline: str = "VietJet Air",
    flight_number: Optional[str] = None,
) -> FlightOfferCreate:
    return FlightOfferCreate(
        from_airport=from_airport,
        to_airport=to_airport,
        date=departure_date,
        airline=airline,
        flight_number=flight_number or f"VJ{price % 1000}",
        departure_time="06:00",
        arrival_time="08:10",
        price=price,
        currency="VND",
        source=source,
        fetched_at=datetime(2025, 5, 20, 9, 0),
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 5, 20, 9, 0))


@pytest.fixture
def usage_tracker(session_factory, clock) -> UsageTracker:
    return UsageTracker(session_factory, clock=clock)


@pytest.fixture
def price_cache(session_factory, clock) -> PriceCache:
    return PriceCache(session_factory, ttl=timedelta(minutes=30), clock=clock)
