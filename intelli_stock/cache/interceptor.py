"""
HTTP 응답 캐시 인터셉터

요청마다 캐시에서 응답할지, 캐시를 우회할지, 핸들러 결과로 캐시를 채울지 결정합니다.

요청별 처리 순서:
    1. GET이 아닌 요청은 핸들러를 바로 실행 (변경 요청은 캐시하지 않음)
    2. no_cache 플래그가 있으면 핸들러를 바로 실행
    3. 키 결정: 선언된 키 또는 route_<url>
    4. TTL 결정: 선언된 TTL 또는 서비스 기본값
    5. 캐시 조회
        - 히트: 캐시된 값 반환, 핸들러는 실행하지 않음
        - 미스: 핸들러 실행 후 결과를 백그라운드에서 저장
    6. 조회 중 오류: 로깅 후 핸들러를 바로 실행

핸들러 예외는 그대로 전파되며 이 경우 아무것도 저장하지 않습니다.
같은 키에 대한 동시 미스는 각각 핸들러를 실행합니다 (마지막 쓰기가 남음).

FastAPI 연동:
    ```python
    router = APIRouter(route_class=CacheRoute)

    @router.get("/stocks/top-stocks")
    @cache_key("top-stocks")
    async def top_stocks():
        ...
    ```
    CacheRoute는 app.state.cache_interceptor를 사용합니다.
    200 JSON 응답의 본문만 저장하므로 같은 키의 시장 데이터와 항목을 공유합니다.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from intelli_stock.cache.decorators import CacheOptions, get_cache_options
from intelli_stock.cache.service import CacheService
from intelli_stock.cache.store import MISSING

logger = structlog.get_logger(__name__)

CACHE_STATUS_HEADER = "X-Cache"

Handler = Callable[[], Awaitable[Any]]
Transform = Callable[[Any], Any]


class CacheInterceptor:
    """
    요청 단위 캐시 정책

    Attributes:
        _cache (CacheService): 캐시 서비스
        _pending (set[asyncio.Task]): 진행 중인 백그라운드 저장 작업
    """

    def __init__(self, cache_service: CacheService):
        self._cache = cache_service
        self._pending: set[asyncio.Task] = set()

    @staticmethod
    def derive_key(url: str, options: CacheOptions) -> str:
        """선언된 키가 있으면 사용하고 없으면 route_<url>"""
        return options.key or f"route_{url}"

    def derive_ttl(self, options: CacheOptions) -> int:
        return options.ttl_ms or self._cache.default_ttl_ms

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    async def intercept(
        self,
        method: str,
        url: str,
        options: CacheOptions,
        handler: Handler,
        encode: Optional[Transform] = None,
        decode: Optional[Transform] = None,
    ) -> Any:
        """
        캐시 정책을 적용해 핸들러 실행

        Args:
            method: HTTP 메서드
            url: 요청 경로 (쿼리 문자열 포함)
            options: 라우트의 CacheOptions
            handler: 인자 없이 호출하는 비동기 핸들러
            encode: 저장 전 결과 변환 (MISSING을 반환하면 저장하지 않음)
            decode: 히트 시 캐시 값 변환

        Returns:
            캐시된 값(decode 적용) 또는 핸들러 결과
        """
        if method.upper() != "GET":
            return await handler()

        if options.no_cache:
            return await handler()

        key = self.derive_key(url, options)
        ttl_ms = self.derive_ttl(options)

        try:
            cached = await self._cache.get(key, default=MISSING)
            if cached is not MISSING:
                logger.debug("캐시 히트", key=key)
                return decode(cached) if decode else cached
        except Exception as e:
            logger.error("캐시 조회 오류, 핸들러 직접 실행", key=key, error=str(e))
            return await handler()

        result = await handler()
        self._schedule_store(key, result, ttl_ms, encode)
        return result

    def _schedule_store(
        self, key: str, result: Any, ttl_ms: int, encode: Optional[Transform]
    ) -> None:
        # 태스크 참조를 유지해야 완료 전에 GC되지 않음
        task = asyncio.create_task(self._store(key, result, ttl_ms, encode))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _store(
        self, key: str, result: Any, ttl_ms: int, encode: Optional[Transform]
    ) -> None:
        try:
            value = encode(result) if encode else result
            if value is MISSING:
                logger.debug("캐시 대상 아님", key=key)
                return
            await self._cache.set(key, value, ttl_ms)
            logger.debug("응답 캐시 저장", key=key, ttl_ms=ttl_ms)
        except Exception as e:
            logger.error("응답 캐시 저장 실패", key=key, error=str(e))

    async def flush(self) -> None:
        """진행 중인 백그라운드 저장이 모두 끝날 때까지 대기"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def request_cache_url(request: Request) -> str:
    """캐시 키에 사용할 요청 경로 (쿼리 문자열 포함)"""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def encode_response(response: Response) -> Any:
    """
    200 JSON 응답을 저장할 값(디코딩된 본문)으로 변환

    저장 값은 핸들러가 반환한 JSON 데이터 그대로이므로
    같은 키를 쓰는 MarketCacheService와 항목을 공유할 수 있습니다.
    200이 아니거나 JSON이 아니거나 본문이 없는 응답(스트리밍 등)은 MISSING.
    """
    if response.status_code != 200:
        return MISSING
    if not response.headers.get("content-type", "").startswith("application/json"):
        return MISSING
    body = getattr(response, "body", None)
    if body is None:
        return MISSING
    try:
        return json.loads(body)
    except ValueError:
        return MISSING


def decode_response(value: Any) -> Response:
    return JSONResponse(content=value, headers={CACHE_STATUS_HEADER: "HIT"})


class CacheRoute(APIRoute):
    """
    캐시 인터셉터를 적용하는 FastAPI 라우트 클래스

    엔드포인트의 CacheOptions는 요청마다 읽으므로 캐시 데코레이터를
    라우터 데코레이터 위아래 어디에 두어도 적용됩니다.
    app.state에 cache_interceptor가 없으면 캐시 없이 동작합니다.
    """

    @property
    def cache_options(self) -> CacheOptions:
        return get_cache_options(self.endpoint)

    def get_route_handler(self) -> Callable[[Request], Awaitable[Response]]:
        original_route_handler = super().get_route_handler()

        async def cached_route_handler(request: Request) -> Response:
            options = self.cache_options
            interceptor: Optional[CacheInterceptor] = getattr(
                request.app.state, "cache_interceptor", None
            )
            if interceptor is None:
                return await original_route_handler(request)

            response = await interceptor.intercept(
                request.method,
                request_cache_url(request),
                options,
                lambda: original_route_handler(request),
                encode=encode_response,
                decode=decode_response,
            )

            cacheable = request.method.upper() == "GET" and not options.no_cache
            if cacheable and CACHE_STATUS_HEADER not in response.headers:
                response.headers[CACHE_STATUS_HEADER] = "MISS"
            return response

        return cached_route_handler
