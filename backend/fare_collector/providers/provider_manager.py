"""
Provider Manager: rotates across fare providers.

Providers are tried one at a time, starting from a process-wide cursor:
  - offers found            -> record success, return them (cursor stays)
  - answered with no offers -> record success, advance cursor, try next
  - rate limited            -> record failure + rate limit, advance cursor, try next
  - any other failure       -> record failure, advance cursor, try next

Advancing is permanent: a provider that just failed is not the first one the
next search tries. The cursor is shared by all concurrent searches without a
lock; each advance happens between awaits so it is never torn.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import httpx

from app.config import Settings
from app.schemas.flight_offer_schema import FlightOfferCreate
from app.services.usage_tracker import UsageTracker
from fare_collector.providers.amadeus_provider import AmadeusProvider
from fare_collector.providers.base import FlightProviderInterface, RateLimitedError
from fare_collector.providers.flightapi_provider import FlightApiProvider
from fare_collector.providers.google_flights_provider import GoogleFlightsProvider
from fare_collector.providers.skyscanner_provider import SkyscannerProvider

logger = logging.getLogger("ProviderManager")


@dataclass
class RotationState:
    """Index of the provider the next attempt starts from. Always in [0, provider_count)."""

    provider_count: int
    index: int = 0

    def __post_init__(self):
        self.index = self.index % self.provider_count if self.provider_count else 0

    def advance(self) -> int:
        if self.provider_count:
            self.index = (self.index + 1) % self.provider_count
        return self.index


def build_providers(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> List[FlightProviderInterface]:
    """All known providers, in the configured rotation order. Unknown names are ignored."""
    currency = settings.default_currency
    available = {
        "google_flights": lambda: GoogleFlightsProvider(settings.serpapi_key, client=client, currency=currency),
        "flightapi": lambda: FlightApiProvider(settings.flightapi_key, client=client, currency=currency),
        "skyscanner": lambda: SkyscannerProvider(settings.rapidapi_key, client=client, currency=currency),
        "amadeus": lambda: AmadeusProvider(
            settings.amadeus_api_key,
            settings.amadeus_api_secret,
            base_url=settings.amadeus_base_url,
            client=client,
            currency=currency,
        ),
    }

    providers = []
    for name in settings.provider_order:
        factory = available.get(name)
        if factory is None:
            logger.warning(f"[Rotation] Unknown provider '{name}' in provider_order. Ignoring.")
            continue
        providers.append(factory())
    return providers


class ProviderManager:
    """
    Owns the enabled providers and the rotation cursor.

    Usage:
        manager = ProviderManager(build_providers(settings), UsageTracker(SessionLocal))
        offers = await manager.fetch_offers("SGN", "HAN", date(2025, 6, 1))
    """

    def __init__(
        self,
        providers: Sequence[FlightProviderInterface],
        usage_tracker: UsageTracker,
        timeout: float = 30.0,
        attempt_delay: float = 0.5,
    ):
        self._providers = [p for p in providers if p.is_enabled]
        self._usage = usage_tracker
        self._timeout = timeout
        self._attempt_delay = attempt_delay
        self.state = RotationState(provider_count=len(self._providers))

        skipped = [p.provider_name for p in providers if not p.is_enabled]
        if skipped:
            logger.info(f"[Rotation] Providers without credentials: {', '.join(skipped)}")
        logger.info(f"[Rotation] Enabled providers: {self.provider_names or 'none'}")

    @classmethod
    def from_settings(
        cls, settings: Settings, usage_tracker: UsageTracker, client: Optional[httpx.AsyncClient] = None
    ) -> "ProviderManager":
        return cls(
            build_providers(settings, client=client),
            usage_tracker,
            timeout=settings.provider_timeout_seconds,
            attempt_delay=settings.attempt_delay_seconds,
        )

    @property
    def usage_tracker(self) -> UsageTracker:
        return self._usage

    @property
    def provider_names(self) -> List[str]:
        return [p.provider_name for p in self._providers]

    @property
    def current_provider(self) -> Optional[str]:
        if not self._providers:
            return None
        return self._providers[self.state.index].provider_name

    async def fetch_offers(
        self, origin: str, destination: str, departure_date: date
    ) -> List[FlightOfferCreate]:
        """Try providers in rotation until one returns offers. Never raises for provider failures."""
        total = len(self._providers)
        if total == 0:
            logger.warning("[Rotation] No providers configured. Skipping fetch.")
            return []

        route = f"{origin}-{destination}"
        for attempt in range(1, total + 1):
            if attempt > 1 and self._attempt_delay > 0:
                await asyncio.sleep(self._attempt_delay)

            provider = self._providers[self.state.index]
            name = provider.provider_name
            logger.info(f"[Rotation] Attempt {attempt}/{total}: {name} for {route} on {departure_date}")

            try:
                offers = await asyncio.wait_for(
                    provider.fetch_offers(origin, destination, departure_date),
                    timeout=self._timeout,
                )
            except RateLimitedError as e:
                logger.warning(f"[Rotation] {name} rate limited: {e}. Rotating away.")
                await self._usage.record(name, success=False, rate_limited=True)
                self.state.advance()
                continue
            except asyncio.TimeoutError:
                logger.warning(f"[Rotation] {name} timed out after {self._timeout}s for {route}")
                await self._usage.record(name, success=False)
                self.state.advance()
                continue
            except Exception as e:
                # Adapters raise ProviderError; anything else is an adapter bug, still a failed attempt
                logger.error(f"[Rotation] {name} failed for {route}: {e}")
                await self._usage.record(name, success=False)
                self.state.advance()
                continue

            await self._usage.record(name, success=True)
            if offers:
                logger.info(f"[Rotation] {name} returned {len(offers)} offers for {route}")
                return list(offers)

            logger.info(f"[Rotation] {name} found no flights for {route}. Trying next provider.")
            self.state.advance()

        logger.warning(f"[Rotation] All providers exhausted for {route} on {departure_date}")
        return []

    def get_stats(self) -> Dict[str, Any]:
        """Rotation snapshot for the admin endpoint."""
        return {
            "providers": self.provider_names,
            "current_index": self.state.index,
            "current_provider": self.current_provider,
        }
