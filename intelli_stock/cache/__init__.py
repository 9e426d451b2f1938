"""
HTTP 응답 캐싱 계층

주요 컴포넌트:
    TwoTierStore: 로컬(cachetools) + 원격(Redis) 2계층 저장소 어댑터
    CacheService: TTL 장부를 가진 캐시 서비스 (실패 시 안전한 기본값)
    cache_key / cache_ttl / no_cache: 라우트별 캐시 메타데이터 데코레이터
    CacheInterceptor / CacheRoute: GET 요청 응답 캐시 정책과 FastAPI 연동
    MarketCacheService: 시장 시간대 자정까지 유지되는 시장 데이터 캐시

사용 예시:
    ```python
    from intelli_stock.cache import CacheService, LocalTier, RedisTier, TwoTierStore

    store = TwoTierStore(
        LocalTier(max_size=1000),
        RedisTier.from_url("redis://localhost:6379", namespace="intelli-stock"),
    )
    cache = CacheService(store)

    await cache.set("top-stocks", results, ttl_ms=60 * 60 * 1000)
    cached = await cache.get("top-stocks")
    ```
"""

from .store import MISSING, LocalTier, RedisTier, TwoTierStore
from .service import CacheEntry, CacheService
from .decorators import CacheOptions, cache_key, cache_ttl, get_cache_options, no_cache
from .interceptor import CacheInterceptor, CacheRoute
from .market import MarketCacheService

__all__ = [
    "MISSING",
    "LocalTier",
    "RedisTier",
    "TwoTierStore",
    "CacheEntry",
    "CacheService",
    "CacheOptions",
    "cache_key",
    "cache_ttl",
    "get_cache_options",
    "no_cache",
    "CacheInterceptor",
    "CacheRoute",
    "MarketCacheService",
]
