"""
캐시 관리 및 헬스 체크 라우트

관리 라우트는 모두 no_cache로 선언되어 인터셉터를 통과하더라도
캐시에서 응답하지 않습니다.

엔드포인트:
    GET    /cache/stats                 캐시 통계
    GET    /cache/keys                  추적 중인 키 (expiring_within_ms로 만료 임박 키만)
    GET    /cache/keys/{key}/ttl        남은 TTL
    POST   /cache/keys/{key}/refresh    TTL 갱신
    DELETE /cache/keys/{key}            키 삭제
    DELETE /cache                       전체 삭제
    GET    /health                      서비스 및 Redis 상태
"""

from typing import Annotated, Any, Optional

import structlog
from fastapi import APIRouter, Depends, Query

from intelli_stock.api.dependencies import get_cache_service, get_cache_store, get_config
from intelli_stock.cache import CacheRoute, CacheService, TwoTierStore, no_cache
from intelli_stock.config import AppConfig
from intelli_stock.exceptions import ResourceNotFoundError

logger = structlog.get_logger(__name__)

cache_router = APIRouter(prefix="/cache", tags=["cache"], route_class=CacheRoute)
health_router = APIRouter(tags=["health"], route_class=CacheRoute)

CacheServiceDep = Annotated[CacheService, Depends(get_cache_service)]


def _require_tracked(cache: CacheService, key: str) -> None:
    if key not in cache.get_keys():
        raise ResourceNotFoundError(
            f"Cache key not found: {key}", resource_type="cache_key", resource_id=key
        )


@cache_router.get("/stats")
@no_cache
async def cache_stats(cache: CacheServiceDep) -> dict[str, Any]:
    return cache.get_stats()


@cache_router.get("/keys")
@no_cache
async def list_keys(
    cache: CacheServiceDep,
    expiring_within_ms: Annotated[Optional[int], Query(ge=0)] = None,
) -> dict[str, Any]:
    """추적 중인 키 목록, expiring_within_ms가 있으면 해당 구간 안에 만료될 키만"""
    if expiring_within_ms is None:
        keys = cache.get_keys()
    else:
        keys = cache.get_expiring_soon_keys(expiring_within_ms)
    return {"keys": keys, "count": len(keys)}


@cache_router.get("/keys/{key:path}/ttl")
@no_cache
async def key_ttl(key: str, cache: CacheServiceDep) -> dict[str, Any]:
    _require_tracked(cache, key)
    return {"key": key, "remaining_ttl_ms": cache.get_remaining_ttl(key)}


@cache_router.post("/keys/{key:path}/refresh")
@no_cache
async def refresh_key(
    key: str,
    cache: CacheServiceDep,
    ttl_ms: Annotated[Optional[int], Query(gt=0)] = None,
) -> dict[str, Any]:
    _require_tracked(cache, key)
    await cache.refresh_ttl(key, ttl_ms)
    logger.info("캐시 TTL 갱신 요청", key=key, ttl_ms=ttl_ms)
    return {"key": key, "remaining_ttl_ms": cache.get_remaining_ttl(key)}


@cache_router.delete("/keys/{key:path}")
@no_cache
async def delete_key(key: str, cache: CacheServiceDep) -> dict[str, Any]:
    await cache.delete(key)
    logger.info("캐시 키 삭제 요청", key=key)
    return {"key": key, "deleted": True}


@cache_router.delete("")
@no_cache
async def clear_cache(cache: CacheServiceDep) -> dict[str, Any]:
    await cache.clear()
    logger.info("전체 캐시 삭제 요청")
    return {"cleared": True}


@health_router.get("/health")
@no_cache
async def health(
    config: Annotated[AppConfig, Depends(get_config)],
    store: Annotated[TwoTierStore, Depends(get_cache_store)],
) -> dict[str, Any]:
    """헬스 체크 (Redis 연결 실패는 redis=False로만 보고)"""
    try:
        redis_ok = await store.ping()
    except Exception as e:
        logger.warning("Redis 헬스 체크 실패", error=str(e))
        redis_ok = False

    return {"status": "healthy", "service": config.name, "redis": redis_ok}
