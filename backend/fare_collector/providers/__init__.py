from fare_collector.providers.base import FlightProviderInterface, ProviderError, RateLimitedError
from fare_collector.providers.google_flights_provider import GoogleFlightsProvider
from fare_collector.providers.flightapi_provider import FlightApiProvider
from fare_collector.providers.skyscanner_provider import SkyscannerProvider
from fare_collector.providers.amadeus_provider import AmadeusProvider
from fare_collector.providers.provider_manager import ProviderManager, RotationState, build_providers

__all__ = [
    "FlightProviderInterface",
    "ProviderError",
    "RateLimitedError",
    "GoogleFlightsProvider",
    "FlightApiProvider",
    "SkyscannerProvider",
    "AmadeusProvider",
    "ProviderManager",
    "RotationState",
    "build_providers",
]
