"""
Amadeus Flight Offers Search provider.

Keeps its own OAuth 2.0 client-credentials token and refreshes it 60 seconds
before expiry. A 401 on search drops the cached token so the next call
re-authenticates.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx

from app.schemas.flight_offer_schema import FlightOfferCreate
from fare_collector.providers.base import FlightProviderInterface, ProviderError

logger = logging.getLogger("Provider.Amadeus")


class AmadeusProvider(FlightProviderInterface):
    timeout = 15.0

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://test.api.amadeus.com",
        client: Optional[httpx.AsyncClient] = None,
        currency: str = "VND",
    ):
        super().__init__(client=client, currency=currency)
        self.base_url = base_url
        self.api_key = api_key
        self.api_secret = api_secret

        self._access_token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None

    @property
    def provider_name(self) -> str:
        return "amadeus"

    @property
    def is_enabled(self) -> bool:
        return bool(self.api_key and self.api_secret)

    async def _get_token(self) -> str:
        """
        Retrieves the OAuth 2.0 access token from Amadeus.
        Cached locally and refreshed 60 seconds prior to expiry.
        """
        if self._access_token and self._token_expiry:
            if datetime.now() < (self._token_expiry - timedelta(seconds=60)):
                return self._access_token

        auth_url = f"{self.base_url}/v1/security/oauth2/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": self.api_key,
            "client_secret": self.api_secret
        }

        auth_data = await self._request("POST", auth_url, data=data)
        token = auth_data.get("access_token")
        if not token:
            raise ProviderError(self.provider_name, "authentication response carried no access_token")

        self._access_token = token
        expires_in = auth_data.get("expires_in", 1799)
        self._token_expiry = datetime.now() + timedelta(seconds=expires_in)
        return self._access_token

    async def fetch_offers(
        self, origin: str, destination: str, departure_date: date
    ) -> List[FlightOfferCreate]:
        token = await self._get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.amadeus+json"
        }
        params = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": departure_date.isoformat(),
            "adults": 1,
            "nonStop": "false",
            "currencyCode": self.currency,
            "max": 50
        }

        logger.info(f"[Amadeus] Searching {origin}-{destination} on {departure_date}")
        try:
            data = await self._request(
                "GET", f"{self.base_url}/v2/shopping/flight-offers", headers=headers, params=params
            )
        except ProviderError as e:
            if e.status_code == 401:
                # Force token refresh next time around
                self._access_token = None
                self._token_expiry = None
            raise

        offers = self._normalize_offers(data, origin, destination, departure_date)
        logger.info(f"[Amadeus] Found {len(offers)} flights for {origin}-{destination}")
        return offers

    def _normalize_offers(
        self, amadeus_response: Dict[str, Any], origin: str, destination: str, departure_date: date
    ) -> List[FlightOfferCreate]:
        """
        Flattens the outbound itinerary of each Amadeus offer. A single structurally
        broken offer is skipped rather than failing the whole batch.
        """
        offers = []
        dictionaries = amadeus_response.get("dictionaries", {})
        airline_dict = dictionaries.get("carriers", {})

        for item in amadeus_response.get("data", []):
            try:
                itineraries = item.get("itineraries", [])
                if not itineraries:
                    continue
                segments = itineraries[0].get("segments", [])
                if not segments:
                    continue

                first_segment = segments[0]
                last_segment = segments[-1]
                airline_code = first_segment.get("carrierCode")

                traveler_pricings = item.get("travelerPricings") or [{}]
                fare_details = traveler_pricings[0].get("fareDetailsBySegment") or [{}]

                price_data = item.get("price", {})
                offer = self._make_offer(
                    origin,
                    destination,
                    departure_date,
                    airline=airline_dict.get(airline_code, airline_code),
                    price=price_data.get("grandTotal") or price_data.get("total"),
                    flight_number=f"{airline_code}{first_segment.get('number', '')}" if airline_code else None,
                    departure_time=first_segment.get("departure", {}).get("at"),
                    arrival_time=last_segment.get("arrival", {}).get("at"),
                    class_type=fare_details[0].get("cabin"),
                    seats_available=item.get("numberOfBookableSeats"),
                    currency=price_data.get("currency"),
                )
                if offer:
                    offers.append(offer)
            except (AttributeError, IndexError, TypeError, ValueError) as e:
                logger.warning(f"[Amadeus] Failed parsing single flight offer. Skipping. Cause: {e}")

        return offers
