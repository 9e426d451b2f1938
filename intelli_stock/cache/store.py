"""
2계층 캐시 저장소 어댑터

프로세스 로컬 계층과 Redis 원격 계층을 묶어 하나의 저장소처럼 노출합니다.
CacheService는 이 어댑터를 통해서만 물리 저장소에 접근합니다.

계층 구조:
    TwoTierStore
        ├── LocalTier (cachetools.TLRUCache, 항목별 TTL + LRU 제거)
        └── RedisTier (redis.asyncio, 네임스페이스 격리, JSON 직렬화)

키 형식 (원격 계층):
    {namespace}:{key}
    예: "intelli-stock:route_/stocks/top-stocks"

오류 처리:
    - 원격 계층 실패는 CacheBackendError로 변환되어 호출자에게 전파됩니다.
    - 직렬화 실패는 CacheSerializationError로 전파됩니다.
    - 기본값으로 조용히 바꾸지 않습니다. degrade 정책은 CacheService의 책임입니다.

의존성:
    - redis: Redis 비동기 클라이언트
    - cachetools: 로컬 TTL/LRU 캐시
    - structlog: 구조화된 로깅
"""

import json
import time
import dataclasses
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Iterator, NamedTuple, Optional

import redis.asyncio as redis
import structlog
from cachetools import TLRUCache
from pydantic import BaseModel

from intelli_stock.config import DEFAULT_TTL_MS
from intelli_stock.exceptions import CacheBackendError, CacheSerializationError

logger = structlog.get_logger(__name__)


class _Missing:
    """캐시 미스를 나타내는 센티널 (None, 0, False 같은 실제 값과 구분)"""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _json_default(value: Any) -> Any:
    # json.dumps가 직접 처리하지 못하는 타입 변환
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_value(key: str, value: Any) -> str:
    """값을 JSON 문자열로 인코딩 (한글 유지)"""
    try:
        return json.dumps(value, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError) as e:
        raise CacheSerializationError(
            f"Cannot encode value for {key}", key=key, data={"error": str(e)}
        ) from e


def decode_value(key: str, raw: str) -> Any:
    """JSON 문자열을 값으로 디코딩"""
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise CacheSerializationError(
            f"Cannot decode value for {key}", key=key, data={"error": str(e)}
        ) from e


class _LocalItem(NamedTuple):
    value: Any
    ttl_seconds: float


class LocalTier:
    """
    프로세스 로컬 캐시 계층

    cachetools.TLRUCache로 항목별 만료 시간을 지원합니다.
    최대 크기를 넘으면 가장 오래 사용되지 않은 항목이 제거됩니다.
    프로세스 간에 공유되지 않습니다.
    """

    def __init__(
        self,
        max_size: int = 1000,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self._cache: TLRUCache = TLRUCache(
            maxsize=max_size,
            ttu=lambda _key, item, now: now + item.ttl_seconds,
            timer=timer,
        )

    async def get(self, key: str) -> Any:
        item = self._cache.get(key)
        if item is None:
            return MISSING
        return item.value

    async def set(self, key: str, value: Any, ttl_ms: int) -> None:
        self._cache[key] = _LocalItem(value, ttl_ms / 1000)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def has(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class RedisTier:
    """
    Redis 기반 원격 캐시 계층

    여러 프로세스가 공유하고 재시작 후에도 유지되는 계층입니다.
    모든 키는 네임스페이스 접두사 아래에 저장되며,
    값은 JSON으로 직렬화되고 TTL은 밀리초(PX) 단위로 설정됩니다.

    사용 예시:
        ```python
        tier = RedisTier.from_url("redis://localhost:6379", namespace="intelli-stock")
        await tier.ping()

        await tier.set("top-stocks", {"marketCap": []}, ttl_ms=60_000)
        value = await tier.get("top-stocks")
        ```

    Attributes:
        namespace (str): 키 접두사
        _client (redis.Redis): Redis 비동기 클라이언트
    """

    def __init__(self, client: redis.Redis, namespace: str = "intelli-stock"):
        """
        Args:
            client: Redis 비동기 클라이언트 (decode_responses=True 권장)
            namespace: 다른 애플리케이션과의 키 충돌 방지용 접두사
        """
        self._client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, redis_url: str, namespace: str = "intelli-stock") -> "RedisTier":
        """
        URL로 Redis 계층 생성

        연결 풀은 첫 명령 실행 시 연결됩니다.
        """
        client = redis.from_url(redis_url, decode_responses=True)
        return cls(client, namespace=namespace)

    def _generate_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    @contextmanager
    def _backend_errors(self, operation: str, key: Optional[str] = None) -> Iterator[None]:
        # Redis/소켓 에러를 CacheBackendError로 변환
        try:
            yield
        except (redis.RedisError, OSError) as e:
            raise CacheBackendError(
                f"Redis {operation} failed: {e}",
                operation=operation,
                key=key,
                data={"error": str(e)},
            ) from e

    async def ping(self) -> bool:
        with self._backend_errors("ping"):
            return bool(await self._client.ping())

    async def close(self) -> None:
        """Redis 연결 풀 해제"""
        await self._client.aclose()
        logger.info("Redis 캐시 연결 해제", namespace=self.namespace)

    async def get_with_ttl(self, key: str) -> tuple[Any, Optional[int]]:
        """
        값과 남은 TTL(밀리초)을 함께 조회

        Returns:
            (값 또는 MISSING, 남은 TTL 또는 None)
                TTL이 없는 키(-1)는 None, GET과 PTTL 사이에 만료된 키(-2)는 미스
        """
        cache_key = self._generate_key(key)
        with self._backend_errors("get", key):
            raw = await self._client.get(cache_key)
            if raw is None:
                return MISSING, None
            pttl = await self._client.pttl(cache_key)

        if pttl == -2:
            return MISSING, None
        value = decode_value(key, raw)
        return value, pttl if pttl and pttl > 0 else None

    async def get(self, key: str) -> Any:
        value, _ = await self.get_with_ttl(key)
        return value

    async def set(self, key: str, value: Any, ttl_ms: int) -> None:
        payload = encode_value(key, value)
        with self._backend_errors("set", key):
            await self._client.set(self._generate_key(key), payload, px=ttl_ms)

    async def delete(self, key: str) -> None:
        with self._backend_errors("delete", key):
            await self._client.delete(self._generate_key(key))

    async def has(self, key: str) -> bool:
        with self._backend_errors("has", key):
            return await self._client.exists(self._generate_key(key)) > 0

    async def clear(self) -> int:
        """
        네임스페이스의 모든 키 삭제

        SCAN으로 키를 점진적으로 조회한 뒤 일괄 삭제합니다.
        다른 네임스페이스에는 영향이 없습니다.

        Returns:
            int: 삭제된 키 개수
        """
        pattern = f"{self.namespace}:*"
        with self._backend_errors("clear"):
            keys = [key async for key in self._client.scan_iter(match=pattern)]
            if keys:
                return await self._client.delete(*keys)
        return 0


class TwoTierStore:
    """
    로컬 + 원격 2계층 저장소

    조회 순서:
        1. 로컬 계층 조회 (히트 시 즉시 반환)
        2. 원격 계층 조회
        3. 원격 히트는 남은 TTL로 로컬 계층에 다시 채움

    쓰기 순서:
        원격 계층에 먼저 쓰고 성공하면 로컬 계층에 씁니다.
        원격 쓰기가 실패하면 로컬에도 남지 않습니다.

    원격 계층 없이 생성하면 로컬 전용 저장소로 동작합니다.
    """

    def __init__(
        self,
        local: LocalTier,
        remote: Optional[RedisTier] = None,
        default_ttl_ms: int = DEFAULT_TTL_MS,
    ):
        self.local = local
        self.remote = remote
        self.default_ttl_ms = default_ttl_ms

    async def get(self, key: str) -> Any:
        value = await self.local.get(key)
        if value is not MISSING or self.remote is None:
            return value

        value, remaining_ms = await self.remote.get_with_ttl(key)
        if value is not MISSING:
            await self.local.set(key, value, remaining_ms or self.default_ttl_ms)
            logger.debug("원격 캐시 히트, 로컬 계층 보충", key=key, ttl_ms=remaining_ms)
        return value

    async def set(self, key: str, value: Any, ttl_ms: int) -> None:
        if self.remote is not None:
            await self.remote.set(key, value, ttl_ms)
        await self.local.set(key, value, ttl_ms)

    async def delete(self, key: str) -> None:
        await self.local.delete(key)
        if self.remote is not None:
            await self.remote.delete(key)

    async def has(self, key: str) -> bool:
        if await self.local.has(key):
            return True
        if self.remote is None:
            return False
        return await self.remote.has(key)

    async def clear(self) -> None:
        await self.local.clear()
        if self.remote is not None:
            await self.remote.clear()

    async def ping(self) -> bool:
        """원격 계층 연결 확인 (로컬 전용이면 항상 True)"""
        if self.remote is None:
            return True
        return await self.remote.ping()

    async def close(self) -> None:
        if self.remote is not None:
            await self.remote.close()
