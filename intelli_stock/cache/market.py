"""
시장 데이터 캐시 서비스

시장 요약, 상위 종목 같은 일 단위 데이터를 시장 시간대 기준
다음 자정까지 캐시합니다. 자정 갱신 작업은 refresh()로 로더를 다시 실행해
캐시를 채우고, run_midnight_refresh()는 매일 자정에 refresh()를 반복합니다.
create_app(market_loaders=...)를 쓰면 앱 수명주기 동안 이 작업이 실행됩니다.

알려진 키:
    - market-summary: AI 시장 요약
    - top-stocks: 상위 종목
    - stock-static-<ticker>: 종목 기본 정보 (7일 TTL)
    - stock-dynamic-<ticker>: 시세 및 분석
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional
from zoneinfo import ZoneInfo

import structlog

from intelli_stock.cache.service import CacheService
from intelli_stock.cache.store import MISSING

logger = structlog.get_logger(__name__)

MARKET_SUMMARY_KEY = "market-summary"
TOP_STOCKS_KEY = "top-stocks"
STOCK_STATIC_TTL_MS = 7 * 24 * 60 * 60 * 1000

Loader = Callable[[], Awaitable[Any]]


def stock_static_key(ticker: str) -> str:
    return f"stock-static-{ticker.upper()}"


def stock_dynamic_key(ticker: str) -> str:
    return f"stock-dynamic-{ticker.upper()}"


class MarketCacheService:
    """
    시장 시간대 자정 만료 캐시

    Attributes:
        timezone (ZoneInfo): 시장 시간대 (기본값: America/New_York)
    """

    def __init__(
        self,
        cache_service: CacheService,
        timezone: str = "America/New_York",
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._cache = cache_service
        self.timezone = ZoneInfo(timezone)
        self._now = now or (lambda: datetime.now(self.timezone))

    def next_midnight(self, now: Optional[datetime] = None) -> datetime:
        """시장 시간대 기준 다음 자정"""
        current = (now or self._now()).astimezone(self.timezone)
        tomorrow = current.date() + timedelta(days=1)
        return datetime(
            tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=self.timezone
        )

    def ttl_until_midnight_ms(self, now: Optional[datetime] = None) -> int:
        current = now or self._now()
        # 같은 tzinfo끼리 빼면 벽시계 차이가 되므로 UTC로 변환 후 계산
        remaining = self.next_midnight(current).astimezone(
            timezone.utc
        ) - current.astimezone(timezone.utc)
        # 자정 직전이라도 최소 1초는 유지
        return max(int(remaining.total_seconds() * 1000), 1000)

    async def cache_market_data(
        self, key: str, data: Any, ttl_ms: Optional[int] = None
    ) -> None:
        """
        시장 데이터 저장

        Args:
            key: 캐시 키
            data: 저장할 데이터
            ttl_ms: TTL (없으면 다음 자정까지)
        """
        ttl = ttl_ms or self.ttl_until_midnight_ms()
        await self._cache.set(key, data, ttl)
        logger.info("시장 데이터 캐시", key=key, ttl_ms=ttl)

    async def get_cached_market_data(self, key: str) -> Any:
        return await self._cache.get(key)

    async def invalidate(self, key: str) -> None:
        await self._cache.delete(key)
        logger.info("시장 데이터 캐시 무효화", key=key)

    async def get_or_load(
        self, key: str, loader: Loader, ttl_ms: Optional[int] = None
    ) -> Any:
        """
        캐시된 데이터를 반환하고, 없으면 로더 결과를 저장 후 반환

        로더 예외는 그대로 전파됩니다.
        """
        cached = await self._cache.get(key, default=MISSING)
        if cached is not MISSING:
            return cached

        data = await loader()
        await self.cache_market_data(key, data, ttl_ms)
        return data

    async def refresh(self, loaders: Mapping[str, Loader]) -> list[str]:
        """
        자정 캐시 갱신

        각 키의 로더를 실행해 캐시를 다시 채웁니다.
        실패한 로더는 로깅 후 건너뛰고 나머지 키는 계속 갱신합니다.

        Returns:
            list[str]: 갱신에 성공한 키 목록
        """
        logger.info("시장 캐시 갱신 시작", keys=list(loaders))
        refreshed = []
        for key, loader in loaders.items():
            try:
                data = await loader()
            except Exception as e:
                logger.error("시장 캐시 갱신 실패", key=key, error=str(e))
                continue
            await self.cache_market_data(key, data)
            refreshed.append(key)

        logger.info("시장 캐시 갱신 완료", refreshed=refreshed)
        return refreshed

    async def run_midnight_refresh(
        self,
        loaders: Mapping[str, Loader],
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        매일 시장 시간대 자정에 refresh() 실행

        취소될 때까지 반복합니다. 앱 수명주기에서 태스크로 실행하고
        종료 시 취소하는 용도입니다.
        """
        while True:
            delay_ms = self.ttl_until_midnight_ms()
            logger.debug("다음 시장 캐시 갱신 대기", delay_ms=delay_ms)
            await sleep(delay_ms / 1000)
            await self.refresh(loaders)
