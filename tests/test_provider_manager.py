"""Unit tests for provider rotation."""

import asyncio
from datetime import date
from unittest.mock import AsyncMock, call, patch

import pytest

from app.config import Settings
from fare_collector.providers.base import ProviderError, RateLimitedError
from fare_collector.providers.provider_manager import ProviderManager, RotationState, build_providers
from tests.conftest import StubProvider, make_offer

DEPARTURE = date(2025, 6, 1)


def _manager(providers, usage_tracker, timeout=5.0) -> ProviderManager:
    return ProviderManager(providers, usage_tracker, timeout=timeout, attempt_delay=0)


def _usage(usage_tracker, provider):
    return asyncio.run(usage_tracker.get_provider_usage(provider))


class TestRotationState:
    """Tests for the rotation cursor."""

    def test_advance_wraps(self) -> None:
        state = RotationState(provider_count=3)
        assert [state.advance() for _ in range(4)] == [1, 2, 0, 1]

    def test_initial_index_is_normalized(self) -> None:
        assert RotationState(provider_count=3, index=7).index == 1

    def test_no_providers_stays_at_zero(self) -> None:
        state = RotationState(provider_count=0)
        assert state.advance() == 0


class TestProviderManagerFetch:
    """Tests for ProviderManager.fetch_offers."""

    def test_no_enabled_providers_returns_empty_without_calls(self, usage_tracker) -> None:
        disabled = StubProvider("p1", [[make_offer(100)]], enabled=False)
        manager = _manager([disabled], usage_tracker)

        assert asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE)) == []
        assert disabled.calls == []
        assert asyncio.run(usage_tracker.get_usage()) == []

    def test_first_non_empty_result_wins(self, usage_tracker) -> None:
        p1 = StubProvider("p1", [[make_offer(1_000_000)]])
        p2 = StubProvider("p2", [[make_offer(900_000)]])
        manager = _manager([p1, p2], usage_tracker)

        offers = asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))

        assert [o.price for o in offers] == [1_000_000]
        assert p2.calls == []
        assert manager.current_provider == "p1"
        assert _usage(usage_tracker, "p1").success_count == 1

    def test_rate_limit_rotates_permanently(self, usage_tracker) -> None:
        """A rate-limited provider is not tried first by the next search."""
        p1 = StubProvider("p1", [RateLimitedError("p1", "HTTP 429"), [make_offer(500_000)]])
        p2 = StubProvider("p2", [[make_offer(1_200_000)]])
        manager = _manager([p1, p2], usage_tracker)

        first = asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))
        second = asyncio.run(manager.fetch_offers("DAD", "HAN", DEPARTURE))

        assert [o.price for o in first] == [1_200_000]
        assert [o.price for o in second] == [1_200_000]
        assert len(p1.calls) == 1
        assert len(p2.calls) == 2
        assert manager.current_provider == "p2"

        p1_usage = _usage(usage_tracker, "p1")
        assert (p1_usage.call_count, p1_usage.fail_count, p1_usage.rate_limit_count) == (1, 1, 1)

    def test_transient_error_falls_through(self, usage_tracker) -> None:
        p1 = StubProvider("p1", [ProviderError("p1", "HTTP 503")])
        p2 = StubProvider("p2", [[make_offer(800_000)]])
        manager = _manager([p1, p2], usage_tracker)

        offers = asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))

        assert [o.price for o in offers] == [800_000]
        p1_usage = _usage(usage_tracker, "p1")
        assert (p1_usage.fail_count, p1_usage.rate_limit_count) == (1, 0)

    def test_unexpected_exception_is_absorbed(self, usage_tracker) -> None:
        p1 = StubProvider("p1", [KeyError("itineraries")])
        p2 = StubProvider("p2", [[make_offer(800_000)]])
        manager = _manager([p1, p2], usage_tracker)

        offers = asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))

        assert len(offers) == 1
        assert _usage(usage_tracker, "p1").fail_count == 1

    def test_empty_result_counts_as_success_and_moves_on(self, usage_tracker) -> None:
        p1 = StubProvider("p1", [[]])
        p2 = StubProvider("p2", [[make_offer(700_000)]])
        manager = _manager([p1, p2], usage_tracker)

        offers = asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))

        assert [o.price for o in offers] == [700_000]
        p1_usage = _usage(usage_tracker, "p1")
        assert (p1_usage.success_count, p1_usage.fail_count) == (1, 0)

    def test_timeout_is_a_failed_attempt(self, usage_tracker) -> None:
        class SlowProvider(StubProvider):
            async def fetch_offers(self, origin, destination, departure_date):
                await asyncio.sleep(1)
                return [make_offer(100)]

        slow = SlowProvider("slow")
        p2 = StubProvider("p2", [[make_offer(600_000)]])
        manager = _manager([slow, p2], usage_tracker, timeout=0.01)

        offers = asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))

        assert [o.price for o in offers] == [600_000]
        assert _usage(usage_tracker, "slow").fail_count == 1

    def test_each_provider_tried_once_when_all_fail(self, usage_tracker) -> None:
        providers = [
            StubProvider("p1", [[]]),
            StubProvider("p2", [RateLimitedError("p2", "quota")]),
            StubProvider("p3", [ProviderError("p3", "boom")]),
        ]
        manager = _manager(providers, usage_tracker)

        assert asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE)) == []
        assert [len(p.calls) for p in providers] == [1, 1, 1]
        # Three advances on three providers wrap back to the start
        assert manager.state.index == 0

        for usage in asyncio.run(usage_tracker.get_usage()):
            assert usage.call_count == usage.success_count + usage.fail_count

    def test_attempts_start_from_cursor(self, usage_tracker) -> None:
        p1 = StubProvider("p1", [[make_offer(1)]])
        p2 = StubProvider("p2", [[make_offer(2)]])
        manager = _manager([p1, p2], usage_tracker)
        manager.state.index = 1

        offers = asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))

        assert offers[0].source == "stub"
        assert p1.calls == []
        assert len(p2.calls) == 1

    def test_stats_snapshot(self, usage_tracker) -> None:
        manager = _manager([StubProvider("p1"), StubProvider("p2", enabled=False)], usage_tracker)
        assert manager.get_stats() == {"providers": ["p1"], "current_index": 0, "current_provider": "p1"}


class TestProviderManagerPacing:
    """Tests for the pause between provider attempts."""

    def test_pauses_between_attempts_only(self, usage_tracker) -> None:
        """Three failing providers mean two pauses: none before the first attempt or after the last."""
        providers = [StubProvider(name, [ProviderError(name, "HTTP 503")]) for name in ("p1", "p2", "p3")]
        manager = ProviderManager(providers, usage_tracker, timeout=5.0, attempt_delay=0.5)

        with patch("fare_collector.providers.provider_manager.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE)) == []

        assert sleep.await_args_list == [call(0.5), call(0.5)]

    def test_no_pause_when_first_provider_answers(self, usage_tracker) -> None:
        providers = [StubProvider("p1", [[make_offer(1_000_000)]]), StubProvider("p2")]
        manager = ProviderManager(providers, usage_tracker, timeout=5.0, attempt_delay=0.5)

        with patch("fare_collector.providers.provider_manager.asyncio.sleep", new_callable=AsyncMock) as sleep:
            asyncio.run(manager.fetch_offers("SGN", "HAN", DEPARTURE))

        sleep.assert_not_awaited()


class TestBuildProviders:
    """Tests for provider construction from settings."""

    def test_order_and_enablement_follow_settings(self) -> None:
        settings = Settings(
            serpapi_key="",
            flightapi_key="fa",
            rapidapi_key="rk",
            amadeus_api_key="",
            amadeus_api_secret="",
            provider_order=["skyscanner", "google_flights", "unknown", "flightapi"],
        )

        providers = build_providers(settings)

        assert [p.provider_name for p in providers] == ["skyscanner", "google_flights", "flightapi"]
        assert [p.is_enabled for p in providers] == [True, False, True]

    @pytest.mark.parametrize("order", [[], ["amadeus"]])
    def test_manager_from_settings_without_credentials(self, usage_tracker, order) -> None:
        settings = Settings(amadeus_api_key="", amadeus_api_secret="", provider_order=order)
        manager = ProviderManager.from_settings(settings, usage_tracker)
        assert manager.provider_names == []
        assert manager.current_provider is None
