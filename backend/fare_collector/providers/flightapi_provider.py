"""
FlightAPI.io one-way trip provider.

The key and the whole query travel in the URL path:
  /onewaytrip/<key>/<from>/<to>/<date>/<adults>/<children>/<infants>/<cabin>/<currency>
"""
import logging
from datetime import date
from typing import List, Optional

import httpx

from app.schemas.flight_offer_schema import FlightOfferCreate
from fare_collector.providers.base import (
    FlightProviderInterface,
    ProviderError,
    RateLimitedError,
    is_rate_limit_message,
)

logger = logging.getLogger("Provider.FlightAPI")

FLIGHTAPI_BASE_URL = "https://api.flightapi.io/onewaytrip"


class FlightApiProvider(FlightProviderInterface):
    timeout = 25.0

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None, currency: str = "VND"):
        super().__init__(client=client, currency=currency)
        self._api_key = api_key

    @property
    def provider_name(self) -> str:
        return "flightapi"

    @property
    def is_enabled(self) -> bool:
        return bool(self._api_key)

    async def fetch_offers(
        self, origin: str, destination: str, departure_date: date
    ) -> List[FlightOfferCreate]:
        url = (
            f"{FLIGHTAPI_BASE_URL}/{self._api_key}/{origin}/{destination}/"
            f"{departure_date.isoformat()}/1/0/0/Economy/{self.currency}"
        )

        logger.info(f"[FlightAPI] Searching {origin}-{destination} on {departure_date}")
        data = await self._request("GET", url)

        message = data.get("message") or data.get("error")
        if message and not data.get("itineraries"):
            if is_rate_limit_message(message):
                raise RateLimitedError(self.provider_name, str(message))
            raise ProviderError(self.provider_name, str(message))

        offers = []
        for itinerary in data.get("itineraries") or []:
            legs = itinerary.get("legs") or []
            if not legs:
                continue
            leg = legs[0]
            carriers = leg.get("carriers") or [{}]
            flight_numbers = leg.get("flightNumbers") or [None]

            price = itinerary.get("price")
            if price is None:
                pricing_options = itinerary.get("pricing_options") or [{}]
                price = pricing_options[0].get("price")

            offer = self._make_offer(
                origin,
                destination,
                departure_date,
                airline=carriers[0].get("name"),
                price=price,
                flight_number=flight_numbers[0],
                departure_time=leg.get("departure"),
                arrival_time=leg.get("arrival"),
            )
            if offer:
                offers.append(offer)

        if not offers:
            logger.info(f"[FlightAPI] No flights found for {origin}-{destination}")
        else:
            logger.info(f"[FlightAPI] Found {len(offers)} flights for {origin}-{destination}")
        return offers
