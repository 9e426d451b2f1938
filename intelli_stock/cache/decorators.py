"""
캐시 메타데이터 데코레이터

라우트 핸들러에 캐시 키, TTL, 캐시 제외 플래그를 선언적으로 붙입니다.
데코레이터 자체는 핸들러 동작을 바꾸지 않고 CacheOptions 레코드만 기록하며,
CacheRoute가 요청마다 이 레코드를 읽습니다. 라우터 데코레이터와의 순서는
상관없습니다.

사용 예시:
    ```python
    @router.get("/top-stocks")
    @cache_key("top-stocks")
    @cache_ttl(60 * 60 * 1000)
    async def get_top_stocks():
        ...

    @router.get("/search")
    @no_cache
    async def search_stocks(query: str):
        ...
    ```
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, TypeVar

from intelli_stock.exceptions import ValidationError

F = TypeVar("F", bound=Callable[..., Any])

CACHE_OPTIONS_ATTR = "__cache_options__"


@dataclass(frozen=True)
class CacheOptions:
    """
    라우트별 캐시 설정

    Attributes:
        key: 캐시 키 (None이면 route_<url> 사용)
        ttl_ms: TTL 밀리초 (None이면 서비스 기본값)
        no_cache: True면 캐시를 조회/저장하지 않음
    """

    key: Optional[str] = None
    ttl_ms: Optional[int] = None
    no_cache: bool = False


def get_cache_options(handler: Callable[..., Any]) -> CacheOptions:
    """핸들러에 붙은 CacheOptions 반환 (없으면 기본값)"""
    options = getattr(handler, CACHE_OPTIONS_ATTR, None)
    if isinstance(options, CacheOptions):
        return options
    return CacheOptions()


def _merge_options(handler: F, **changes: Any) -> F:
    options = replace(get_cache_options(handler), **changes)
    setattr(handler, CACHE_OPTIONS_ATTR, options)
    return handler


def cache_key(key: str) -> Callable[[F], F]:
    """엔드포인트의 캐시 키 지정"""
    if not key:
        raise ValidationError("Cache key must not be empty", field="key", value=key)

    def decorator(func: F) -> F:
        return _merge_options(func, key=key)

    return decorator


def cache_ttl(ttl_ms: int) -> Callable[[F], F]:
    """엔드포인트의 캐시 TTL 지정 (밀리초)"""
    if ttl_ms <= 0:
        raise ValidationError("Cache TTL must be positive", field="ttl_ms", value=ttl_ms)

    def decorator(func: F) -> F:
        return _merge_options(func, ttl_ms=ttl_ms)

    return decorator


def no_cache(func: Optional[F] = None) -> Any:
    """
    엔드포인트를 캐시 대상에서 제외

    `@no_cache`와 `@no_cache()` 두 형태 모두 지원합니다.
    """

    def decorator(inner: F) -> F:
        return _merge_options(inner, no_cache=True)

    if func is not None:
        return decorator(func)
    return decorator
