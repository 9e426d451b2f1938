"""
FastAPI 애플리케이션 팩토리

캐시 계층 구성 요소를 한 번 생성해 app.state에 연결하고,
미들웨어와 예외 핸들러, 관리 라우터를 등록합니다.

생성되는 구성 요소 (app.state):
    config: AppConfig
    cache_store: TwoTierStore (로컬 + 선택적 Redis)
    cache_service: CacheService
    cache_interceptor: CacheInterceptor (CacheRoute가 사용)
    market_cache: MarketCacheService

수명주기:
    시작 시 Redis 연결 확인 (실패해도 서버는 시작, 캐시 오류는 요청 단위로 흡수)
    market_loaders가 있으면 자정 시장 캐시 갱신 태스크 실행
    종료 시 진행 중인 캐시 저장 완료 대기 후 Redis 연결 해제
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Iterable, Mapping, Optional

import structlog
from fastapi import APIRouter, FastAPI

from intelli_stock.api.routes import cache_router, health_router
from intelli_stock.cache import (
    CacheInterceptor,
    CacheService,
    LocalTier,
    MarketCacheService,
    RedisTier,
    TwoTierStore,
)
from intelli_stock.cache.market import Loader
from intelli_stock.config import AppConfig, CacheConfig
from intelli_stock.exceptions import ConfigurationError
from intelli_stock.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from intelli_stock.observability import configure_logging

logger = structlog.get_logger(__name__)


def build_store(config: CacheConfig) -> TwoTierStore:
    """설정에 따라 로컬 전용 또는 로컬 + Redis 저장소 생성"""
    local = LocalTier(max_size=config.local_max_size)
    remote = None
    if config.enable_remote:
        remote = RedisTier.from_url(config.redis_url, namespace=config.namespace)
    return TwoTierStore(local, remote, default_ttl_ms=config.default_ttl_ms)


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[TwoTierStore] = None,
    routers: Iterable[APIRouter] = (),
    market_loaders: Optional[Mapping[str, Loader]] = None,
) -> FastAPI:
    """
    애플리케이션 생성

    Args:
        config: 애플리케이션 설정 (없으면 환경 변수에서 로드)
        store: 사용할 저장소 (없으면 설정으로 생성)
        routers: 추가로 등록할 라우터 (캐시하려면 route_class=CacheRoute)
        market_loaders: 시장 데이터 키별 로더. 주면 수명주기 동안 매일 자정에
            MarketCacheService.refresh()로 다시 채웁니다.

    Raises:
        ConfigurationError: 설정 검증 실패
    """
    config = config or AppConfig.from_env()
    ok, errors = config.validate()
    if not ok:
        raise ConfigurationError("설정 검증 실패", errors=errors)

    configure_logging(config.logging)

    store = store or build_store(config.cache)
    cache_service = CacheService(
        store,
        default_ttl_ms=config.cache.default_ttl_ms,
        expiring_soon_window_ms=config.cache.expiring_soon_window_ms,
    )
    interceptor = CacheInterceptor(cache_service)
    market_cache = MarketCacheService(cache_service, timezone=config.market.timezone)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("서버 시작", service=config.name)
        try:
            await store.ping()
            logger.info("원격 캐시 연결 확인")
        except Exception as e:
            logger.warning("원격 캐시 연결 실패, 캐시 없이 계속 진행", error=str(e))

        refresh_task = None
        if market_loaders:
            refresh_task = asyncio.create_task(
                market_cache.run_midnight_refresh(market_loaders)
            )
            app.state.market_refresh_task = refresh_task

        yield

        if refresh_task is not None:
            refresh_task.cancel()
            with suppress(asyncio.CancelledError):
                await refresh_task
        await interceptor.flush()
        await store.close()
        logger.info("서버 종료", service=config.name)

    app = FastAPI(title=config.name, lifespan=lifespan)

    app.state.config = config
    app.state.cache_store = store
    app.state.cache_service = cache_service
    app.state.cache_interceptor = interceptor
    app.state.market_cache = market_cache

    app.middleware("http")(
        LoggingMiddleware(
            log_query_params=config.logging.log_query_params,
            slow_request_ms=config.logging.slow_request_ms,
            sensitive_fields=config.logging.sensitive_fields,
        )
    )
    ErrorHandlerMiddleware(
        include_error_details=config.logging.include_error_details
    ).register(app)

    app.include_router(health_router)
    app.include_router(cache_router)
    for router in routers:
        app.include_router(router)

    return app
