"""
Skyscanner live search via RapidAPI.

The create-search response is keyed by id: itineraries reference legs,
legs reference carriers. Only the first pricing option of each itinerary is used.
"""
import logging
from datetime import date
from typing import List, Optional

import httpx

from app.schemas.flight_offer_schema import FlightOfferCreate
from fare_collector.providers.base import (
    FlightProviderInterface,
    RateLimitedError,
    is_rate_limit_message,
)

logger = logging.getLogger("Provider.Skyscanner")

SKYSCANNER_HOST = "skyscanner-api.p.rapidapi.com"
SKYSCANNER_SEARCH_URL = f"https://{SKYSCANNER_HOST}/v3/flights/live/search/create"


class SkyscannerProvider(FlightProviderInterface):
    timeout = 25.0

    def __init__(self, rapidapi_key: str, client: Optional[httpx.AsyncClient] = None, currency: str = "VND"):
        super().__init__(client=client, currency=currency)
        self._rapidapi_key = rapidapi_key

    @property
    def provider_name(self) -> str:
        return "skyscanner"

    @property
    def is_enabled(self) -> bool:
        return bool(self._rapidapi_key)

    async def fetch_offers(
        self, origin: str, destination: str, departure_date: date
    ) -> List[FlightOfferCreate]:
        payload = {
            "query": {
                "market": "VN",
                "locale": "vi-VN",
                "currency": self.currency,
                "queryLegs": [{
                    "originPlaceId": {"iata": origin},
                    "destinationPlaceId": {"iata": destination},
                    "date": {
                        "year": departure_date.year,
                        "month": departure_date.month,
                        "day": departure_date.day,
                    },
                }],
                "adults": 1,
                "cabinClass": "CABIN_CLASS_ECONOMY",
            }
        }
        headers = {
            "Content-Type": "application/json",
            "X-RapidAPI-Key": self._rapidapi_key,
            "X-RapidAPI-Host": SKYSCANNER_HOST,
        }

        logger.info(f"[Skyscanner] Searching {origin}-{destination} on {departure_date}")
        data = await self._request("POST", SKYSCANNER_SEARCH_URL, json=payload, headers=headers)

        # RapidAPI answers quota exhaustion with a 200 + message on some plans
        if "message" in data and "content" not in data and is_rate_limit_message(data["message"]):
            raise RateLimitedError(self.provider_name, str(data["message"]))

        results = (data.get("content") or {}).get("results") or {}
        itineraries = results.get("itineraries") or {}
        legs = results.get("legs") or {}
        carriers = results.get("carriers") or {}

        offers = []
        for itinerary in itineraries.values():
            leg_ids = itinerary.get("legIds") or []
            pricing_options = itinerary.get("pricingOptions") or []
            leg = legs.get(leg_ids[0]) if leg_ids else None
            if not leg or not pricing_options:
                continue

            carrier_ids = leg.get("operatingCarrierIds") or leg.get("marketingCarrierIds") or []
            carrier = carriers.get(carrier_ids[0], {}) if carrier_ids else {}
            segments = leg.get("segments") or [{}]

            offer = self._make_offer(
                origin,
                destination,
                departure_date,
                airline=carrier.get("name"),
                price=pricing_options[0].get("price"),
                flight_number=segments[0].get("flightNumber"),
                departure_time=leg.get("departureDateTime"),
                arrival_time=leg.get("arrivalDateTime"),
            )
            if offer:
                offers.append(offer)

        logger.info(f"[Skyscanner] Found {len(offers)} flights for {origin}-{destination}")
        return offers
