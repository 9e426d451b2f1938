"""HTTP 계층: 애플리케이션 팩토리, 의존성, 캐시 관리 라우트"""

from .app import build_store, create_app
from .dependencies import (
    get_cache_service,
    get_cache_store,
    get_config,
    get_interceptor,
    get_market_cache,
)
from .routes import cache_router, health_router

__all__ = [
    "build_store",
    "create_app",
    "get_cache_service",
    "get_cache_store",
    "get_config",
    "get_interceptor",
    "get_market_cache",
    "cache_router",
    "health_router",
]
