"""
Abstract base class for all fare providers.

Every provider returns offers as FlightOfferCreate records so the rotation
engine and the price cache stay provider-agnostic. Providers signal their
outcome three ways:

  - a non-empty list: the provider found priced itineraries
  - an empty list: the provider answered but has no itineraries for the query
  - an exception: RateLimitedError for quota exhaustion, ProviderError for
    anything else (network, timeout, auth, unexpected payload)
"""
import logging
import re
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, List, Optional

import httpx

from app.schemas.flight_offer_schema import ClassType, FlightOfferCreate

logger = logging.getLogger("Provider")

RATE_LIMIT_PATTERN = re.compile(r"rate.?limit|quota|too many requests|run out of searches|limit (exceeded|reached)", re.IGNORECASE)


class ProviderError(Exception):
    """Transient provider failure. The rotation engine moves on to the next provider."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.status_code = status_code


class RateLimitedError(ProviderError):
    """The provider explicitly reported quota or rate exhaustion."""


def is_rate_limit_message(message: Any) -> bool:
    return bool(message) and bool(RATE_LIMIT_PATTERN.search(str(message)))


def raise_for_provider_status(provider: str, response: httpx.Response) -> None:
    """Translate a non-2xx response into the provider error taxonomy."""
    if response.status_code == 429:
        raise RateLimitedError(provider, "HTTP 429 Too Many Requests", status_code=429)
    if response.is_success:
        return
    body = response.text[:500]
    if is_rate_limit_message(body):
        raise RateLimitedError(provider, f"HTTP {response.status_code}: {body}", status_code=response.status_code)
    raise ProviderError(provider, f"HTTP {response.status_code}: {body}", status_code=response.status_code)


def parse_price(value: Any) -> Optional[int]:
    """Integer price from a provider value, or None when it is missing, malformed or not positive."""
    if isinstance(value, dict):
        value = value.get("amount", value.get("total"))
    if value is None or isinstance(value, bool):
        return None
    try:
        price = int(round(float(str(value).replace(",", ""))))
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


def clock_time(value: Any) -> str:
    """HH:MM from an ISO timestamp ('2025-06-01T06:05:00'), a 'YYYY-MM-DD HH:MM' string or a bare 'HH:MM'."""
    if not value:
        return "00:00"
    if isinstance(value, dict):
        # Skyscanner style {"year": 2025, "month": 6, "day": 1, "hour": 6, "minute": 5}
        if "hour" not in value:
            return "00:00"
        return f"{int(value['hour']):02d}:{int(value.get('minute', 0)):02d}"
    match = re.search(r"(\d{1,2}):(\d{2})", str(value))
    if not match:
        return "00:00"
    return f"{int(match.group(1)):02d}:{match.group(2)}"


class FlightProviderInterface(ABC):
    """
    Contract that every fare provider must satisfy.

    All providers MUST:
      - Return FlightOfferCreate records with a positive integer price
      - Set source to their provider_name
      - Apply their own bounded HTTP timeout
      - Raise ProviderError / RateLimitedError instead of swallowing failures
    """

    timeout: float = 20.0

    def __init__(self, client: Optional[httpx.AsyncClient] = None, currency: str = "VND"):
        # An injected client is reused (tests, shared pools); otherwise one is opened per call
        self._client = client
        self.currency = currency

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique identifier for this provider (e.g. 'google_flights', 'amadeus')."""
        ...

    @property
    @abstractmethod
    def is_enabled(self) -> bool:
        """True when the provider's credentials are configured."""
        ...

    @abstractmethod
    async def fetch_offers(
        self, origin: str, destination: str, departure_date: date
    ) -> List[FlightOfferCreate]:
        """
        Fetch offers for a given route and calendar date.

        Args:
            origin: IATA airport code (e.g. 'SGN')
            destination: IATA airport code (e.g. 'HAN')
            departure_date: calendar date of departure

        Returns:
            Offers found, or an empty list when the provider has none.

        Raises:
            RateLimitedError: provider quota or rate limit hit
            ProviderError: any other failure
        """
        ...

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """Perform one HTTP call and return the decoded JSON body, mapping failures onto ProviderError."""
        try:
            if self._client is not None:
                response = await self._client.request(method, url, timeout=self.timeout, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderError(self.provider_name, f"timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise ProviderError(self.provider_name, f"network error: {e}") from e

        raise_for_provider_status(self.provider_name, response)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(self.provider_name, "response body is not JSON") from e

    def _make_offer(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        *,
        airline: Optional[str],
        price: Any,
        flight_number: Optional[str] = None,
        departure_time: Any = None,
        arrival_time: Any = None,
        class_type: Optional[str] = None,
        seats_available: Optional[int] = None,
        currency: Optional[str] = None,
    ) -> Optional[FlightOfferCreate]:
        """Normalize one itinerary; returns None when it has no usable price."""
        parsed_price = parse_price(price)
        if parsed_price is None:
            return None
        return FlightOfferCreate(
            from_airport=origin.upper(),
            to_airport=destination.upper(),
            date=departure_date,
            airline=airline or "Unknown",
            flight_number=str(flight_number) if flight_number else "N/A",
            departure_time=clock_time(departure_time),
            arrival_time=clock_time(arrival_time),
            price=parsed_price,
            currency=currency or self.currency,
            class_type=ClassType.parse(class_type),
            seats_available=seats_available if isinstance(seats_available, int) and seats_available >= 0 else None,
            source=self.provider_name,
            fetched_at=datetime.now(),
        )
