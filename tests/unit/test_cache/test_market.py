"""Unit tests for the market data cache."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from intelli_stock.cache import MarketCacheService
from intelli_stock.cache.market import (
    MARKET_SUMMARY_KEY,
    STOCK_STATIC_TTL_MS,
    TOP_STOCKS_KEY,
    stock_dynamic_key,
    stock_static_key,
)

NEW_YORK = ZoneInfo("America/New_York")
HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def market_now():
    return datetime(2024, 3, 15, 20, 0, tzinfo=NEW_YORK)


@pytest.fixture
def market_cache(cache_service, market_now):
    """Market cache pinned to 8pm New York time."""
    return MarketCacheService(cache_service, now=lambda: market_now)


class TestMidnightTtl:
    """Test TTL calculation up to the next market midnight."""

    def test_next_midnight(self, market_cache, market_now):
        """Test the next midnight is the start of the following market day."""
        assert market_cache.next_midnight(market_now) == datetime(
            2024, 3, 16, tzinfo=NEW_YORK
        )

    def test_ttl_until_midnight(self, market_cache):
        """Test TTL from 8pm is four hours."""
        assert market_cache.ttl_until_midnight_ms() == 4 * HOUR_MS

    def test_ttl_from_utc_time(self, market_cache):
        """Test non-market time zones are converted before computing midnight."""
        now = datetime(2024, 3, 15, 3, 0, tzinfo=timezone.utc)

        assert market_cache.ttl_until_midnight_ms(now) == HOUR_MS

    def test_ttl_across_dst_change(self, market_cache):
        """Test the skipped hour on the DST start day is not counted."""
        now = datetime(2024, 3, 10, 1, 0, tzinfo=NEW_YORK)

        assert market_cache.ttl_until_midnight_ms(now) == 22 * HOUR_MS

    def test_ttl_has_a_floor(self, market_cache):
        """Test a moment before midnight still yields a one second TTL."""
        now = datetime(2024, 3, 15, 23, 59, 59, 800_000, tzinfo=NEW_YORK)

        assert market_cache.ttl_until_midnight_ms(now) == 1000

    def test_other_market_timezone(self, cache_service):
        """Test a configurable market time zone."""
        seoul = ZoneInfo("Asia/Seoul")
        service = MarketCacheService(
            cache_service,
            timezone="Asia/Seoul",
            now=lambda: datetime(2024, 3, 15, 18, 0, tzinfo=seoul),
        )

        assert service.ttl_until_midnight_ms() == 6 * HOUR_MS


class TestMarketCache:
    """Test storing and loading market data."""

    @pytest.mark.asyncio
    async def test_cache_market_data_expires_at_midnight(
        self, market_cache, cache_service
    ):
        """Test market data defaults to a TTL ending at midnight."""
        await market_cache.cache_market_data(MARKET_SUMMARY_KEY, {"summary": "상승"})

        assert await market_cache.get_cached_market_data(MARKET_SUMMARY_KEY) == {
            "summary": "상승"
        }
        assert cache_service.get_remaining_ttl(MARKET_SUMMARY_KEY) == 4 * HOUR_MS

    @pytest.mark.asyncio
    async def test_cache_market_data_explicit_ttl(self, market_cache, cache_service):
        """Test an explicit TTL overrides the midnight TTL."""
        key = stock_static_key("aapl")

        await market_cache.cache_market_data(key, {"name": "Apple"}, STOCK_STATIC_TTL_MS)

        assert cache_service.get_remaining_ttl(key) == STOCK_STATIC_TTL_MS

    @pytest.mark.asyncio
    async def test_get_cached_market_data_miss(self, market_cache):
        """Test a miss returns None."""
        assert await market_cache.get_cached_market_data(TOP_STOCKS_KEY) is None

    @pytest.mark.asyncio
    async def test_invalidate(self, market_cache):
        """Test invalidate removes cached data."""
        await market_cache.cache_market_data(TOP_STOCKS_KEY, ["AAPL"])

        await market_cache.invalidate(TOP_STOCKS_KEY)

        assert await market_cache.get_cached_market_data(TOP_STOCKS_KEY) is None

    @pytest.mark.asyncio
    async def test_get_or_load_caches_loader_result(self, market_cache):
        """Test the loader runs only on the first call."""
        loader = AsyncMock(return_value={"marketCap": ["AAPL", "MSFT"]})

        first = await market_cache.get_or_load(TOP_STOCKS_KEY, loader)
        second = await market_cache.get_or_load(TOP_STOCKS_KEY, loader)

        assert first == second == {"marketCap": ["AAPL", "MSFT"]}
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_or_load_keeps_falsy_results(self, market_cache):
        """Test an empty loader result is cached and served."""
        loader = AsyncMock(return_value=[])

        await market_cache.get_or_load(TOP_STOCKS_KEY, loader)
        assert await market_cache.get_or_load(TOP_STOCKS_KEY, loader) == []

        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_or_load_loader_error(self, market_cache, cache_service):
        """Test loader failures propagate and nothing is cached."""
        loader = AsyncMock(side_effect=RuntimeError("provider down"))

        with pytest.raises(RuntimeError):
            await market_cache.get_or_load(TOP_STOCKS_KEY, loader)

        assert cache_service.get_keys() == []

    @pytest.mark.asyncio
    async def test_refresh_skips_failing_loaders(self, market_cache):
        """Test refresh reloads every key whose loader succeeds."""
        refreshed = await market_cache.refresh(
            {
                MARKET_SUMMARY_KEY: AsyncMock(return_value={"summary": "보합"}),
                TOP_STOCKS_KEY: AsyncMock(side_effect=RuntimeError("timeout")),
            }
        )

        assert refreshed == [MARKET_SUMMARY_KEY]
        assert await market_cache.get_cached_market_data(MARKET_SUMMARY_KEY) == {
            "summary": "보합"
        }
        assert await market_cache.get_cached_market_data(TOP_STOCKS_KEY) is None

    @pytest.mark.asyncio
    async def test_run_midnight_refresh_waits_for_midnight(self, market_cache):
        """Test the refresh loop sleeps until market midnight before reloading."""
        sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])
        loader = AsyncMock(return_value={"summary": "상승"})

        with pytest.raises(asyncio.CancelledError):
            await market_cache.run_midnight_refresh(
                {MARKET_SUMMARY_KEY: loader}, sleep=sleep
            )

        assert sleep.await_args_list[0].args == (4 * 60 * 60.0,)
        loader.assert_awaited_once()
        assert await market_cache.get_cached_market_data(MARKET_SUMMARY_KEY) == {
            "summary": "상승"
        }


def test_stock_keys_are_normalized():
    """Test per-ticker keys use upper-case tickers."""
    assert stock_static_key("aapl") == "stock-static-AAPL"
    assert stock_dynamic_key("Tsla") == "stock-dynamic-TSLA"
