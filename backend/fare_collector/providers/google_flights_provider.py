"""
Google Flights provider via SerpApi.

SerpApi's free tier allows 100 searches/month. Results come back in two
buckets (best_flights, other_flights); the first leg of each itinerary carries
the airline and times, the itinerary carries the total price.
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

logger = logging.getLogger("Provider.GoogleFlights")

SERPAPI_URL = "https://serpapi.com/search.json"


class GoogleFlightsProvider(FlightProviderInterface):
    timeout = 25.0

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None, currency: str = "VND"):
        super().__init__(client=client, currency=currency)
        self._api_key = api_key

    @property
    def provider_name(self) -> str:
        return "google_flights"

    @property
    def is_enabled(self) -> bool:
        return bool(self._api_key)

    async def fetch_offers(
        self, origin: str, destination: str, departure_date: date
    ) -> List[FlightOfferCreate]:
        params = {
            "engine": "google_flights",
            "departure_id": origin,
            "arrival_id": destination,
            "outbound_date": departure_date.isoformat(),
            "currency": self.currency,
            "hl": "vi",
            "gl": "vn",
            "type": "2",  # One-way
            "adults": 1,
            "api_key": self._api_key,
        }

        logger.info(f"[GoogleFlights] Searching {origin}-{destination} on {departure_date}")
        data = await self._request("GET", SERPAPI_URL, params=params)

        error = data.get("error")
        if error:
            if is_rate_limit_message(error):
                raise RateLimitedError(self.provider_name, str(error))
            if "returned any results" in str(error):
                logger.info(f"[GoogleFlights] No flights found for {origin}-{destination}")
                return []
            raise ProviderError(self.provider_name, str(error))

        offers = []
        for bucket in ("best_flights", "other_flights"):
            for itinerary in data.get(bucket) or []:
                legs = itinerary.get("flights") or []
                if not legs:
                    continue
                first_leg = legs[0]
                offer = self._make_offer(
                    origin,
                    destination,
                    departure_date,
                    airline=first_leg.get("airline"),
                    price=itinerary.get("price"),
                    flight_number=first_leg.get("flight_number"),
                    departure_time=(first_leg.get("departure_airport") or {}).get("time"),
                    arrival_time=(legs[-1].get("arrival_airport") or {}).get("time"),
                    class_type=first_leg.get("travel_class"),
                )
                if offer:
                    offers.append(offer)

        logger.info(f"[GoogleFlights] Found {len(offers)} flights for {origin}-{destination}")
        return offers
