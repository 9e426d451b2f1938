"""
FastAPI 의존성 주입

캐시 구성 요소는 create_app()에서 한 번 생성되어 app.state에 저장되며,
라우트는 아래 의존성으로 꺼내 사용합니다.

사용 패턴:
    ```python
    @router.get("/stocks/top-stocks")
    async def top_stocks(
        market: Annotated[MarketCacheService, Depends(get_market_cache)],
    ):
        return await market.get_or_load(TOP_STOCKS_KEY, load_top_stocks)
    ```
"""

from fastapi import Request

from intelli_stock.cache import CacheInterceptor, CacheService, MarketCacheService, TwoTierStore
from intelli_stock.config import AppConfig


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_cache_store(request: Request) -> TwoTierStore:
    return request.app.state.cache_store


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache_service


def get_interceptor(request: Request) -> CacheInterceptor:
    return request.app.state.cache_interceptor


def get_market_cache(request: Request) -> MarketCacheService:
    return request.app.state.market_cache
