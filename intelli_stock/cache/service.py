"""
캐시 서비스

저장소 어댑터 위에 TTL 관리와 로컬 만료 장부(bookkeeping)를 얹은
애플리케이션의 유일한 캐시 진입점입니다.

주요 기능:
    - get/set/delete/has/clear (실패 시 안전한 기본값으로 degrade)
    - 키별 만료 시각 장부: 남은 TTL, 만료 임박 키, 통계
    - TTL 갱신 (값을 다시 써서 만료 시각 연장)

장부(bookkeeping) 특성:
    - 이 서비스를 통한 set이 성공한 키만 기록됩니다.
    - delete/clear 시에만 제거되며 만료 시 정리(sweep)하지 않습니다.
    - 물리 저장소의 실제 만료와 어긋날 수 있는 낙관적 사본입니다.

오류 처리:
    - get: 미스(default) 반환
    - set/delete/clear: 로깅 후 무시
    - has: False 반환
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from intelli_stock.config import DEFAULT_TTL_MS, DEFAULT_EXPIRING_SOON_WINDOW_MS
from intelli_stock.cache.store import MISSING, TwoTierStore

logger = structlog.get_logger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """장부 레코드 (프로세스 메모리에만 존재)"""

    key: str
    expires_at: int  # epoch 밀리초


class CacheService:
    """
    TTL 장부를 가진 캐시 서비스

    사용 예시:
        ```python
        service = CacheService(store)

        await service.set("top-stocks", {"marketCap": [...]}, ttl_ms=86_400_000)
        data = await service.get("top-stocks")
        remaining = service.get_remaining_ttl("top-stocks")
        ```

    Attributes:
        default_ttl_ms (int): TTL 미지정 시 사용하는 기본값 (24시간)
        _entries (dict[str, CacheEntry]): 키별 만료 시각 장부
    """

    def __init__(
        self,
        store: TwoTierStore,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        expiring_soon_window_ms: int = DEFAULT_EXPIRING_SOON_WINDOW_MS,
        clock: Callable[[], int] = _epoch_ms,
    ):
        """
        Args:
            store: 물리 저장소 어댑터
            default_ttl_ms: 기본 TTL (밀리초)
            expiring_soon_window_ms: 통계에 사용할 만료 임박 구간 (밀리초)
            clock: 현재 시각(epoch 밀리초)을 반환하는 함수, 테스트에서 교체 가능
        """
        self._store = store
        self.default_ttl_ms = default_ttl_ms
        self.expiring_soon_window_ms = expiring_soon_window_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._errors = 0

    async def get(self, key: str, default: Any = None) -> Any:
        """
        캐시에서 값 조회

        Args:
            key: 캐시 키
            default: 미스이거나 저장소 오류 시 반환할 값

        Returns:
            저장된 값 또는 default (예외를 발생시키지 않음)
        """
        try:
            logger.debug("캐시 조회", key=key)
            value = await self._store.get(key)
        except Exception as e:
            self._errors += 1
            logger.error("캐시 조회 실패", key=key, error=str(e))
            return default

        if value is MISSING:
            self._misses += 1
            logger.debug("캐시 미스", key=key)
            return default

        self._hits += 1
        logger.debug("캐시 히트", key=key)
        return value

    async def set(self, key: str, value: Any, ttl_ms: Optional[int] = None) -> None:
        """
        캐시에 값 저장

        TTL이 없거나 0 이하이면 기본 TTL을 사용합니다.
        저장에 성공하면 장부에 만료 시각을 기록(덮어쓰기)합니다.
        저장 실패는 로깅 후 무시합니다 (best-effort).
        """
        ttl_to_use = ttl_ms if ttl_ms and ttl_ms > 0 else self.default_ttl_ms
        try:
            logger.debug("캐시 저장", key=key, ttl_ms=ttl_to_use)
            await self._store.set(key, value, ttl_to_use)
        except Exception as e:
            self._errors += 1
            logger.error("캐시 저장 실패", key=key, error=str(e))
            return

        self._entries[key] = CacheEntry(key=key, expires_at=self._clock() + ttl_to_use)
        logger.debug("캐시 저장 성공", key=key)

    async def delete(self, key: str) -> None:
        """장부와 저장소에서 키 삭제 (저장소 오류는 로깅 후 무시)"""
        self._entries.pop(key, None)
        try:
            logger.debug("캐시 삭제", key=key)
            await self._store.delete(key)
        except Exception as e:
            self._errors += 1
            logger.error("캐시 삭제 실패", key=key, error=str(e))

    async def has(self, key: str) -> bool:
        """저장소의 키 존재 여부 (오류 시 False)"""
        try:
            return await self._store.has(key)
        except Exception as e:
            self._errors += 1
            logger.error("캐시 존재 확인 실패", key=key, error=str(e))
            return False

    async def clear(self) -> None:
        """장부와 저장소 전체 삭제 (저장소 오류는 로깅 후 무시)"""
        self._entries.clear()
        try:
            logger.debug("전체 캐시 삭제")
            await self._store.clear()
            logger.info("전체 캐시 삭제 완료")
        except Exception as e:
            self._errors += 1
            logger.error("전체 캐시 삭제 실패", error=str(e))

    async def refresh_ttl(self, key: str, ttl_ms: Optional[int] = None) -> None:
        """
        TTL 갱신

        저장소에 touch 명령이 없으므로 현재 값을 읽어 새 TTL로 다시 씁니다.
        키가 없으면 아무 일도 하지 않습니다.
        """
        value = await self.get(key, default=MISSING)
        if value is MISSING:
            logger.debug("TTL 갱신 대상 없음", key=key)
            return
        await self.set(key, value, ttl_ms)

    def get_remaining_ttl(self, key: str) -> Optional[int]:
        """
        장부 기준 남은 TTL (밀리초)

        물리 저장소의 실제 TTL이 아니라 로컬 장부에서 계산합니다.

        Returns:
            남은 밀리초, 알 수 없거나 이미 만료된 키는 None
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        remaining = entry.expires_at - self._clock()
        return remaining if remaining > 0 else None

    def get_keys(self) -> list[str]:
        """장부에 기록된 키 목록 (서비스를 우회해 저장된 키는 포함되지 않음)"""
        return list(self._entries)

    def get_expiring_soon_keys(
        self, window_ms: int = DEFAULT_EXPIRING_SOON_WINDOW_MS
    ) -> list[str]:
        """window_ms 안에 만료될 키 목록 (이미 만료된 키 제외)"""
        now = self._clock()
        return [
            entry.key
            for entry in self._entries.values()
            if 0 < entry.expires_at - now < window_ms
        ]

    def get_stats(self) -> dict[str, Any]:
        """
        캐시 통계 스냅샷

        Returns:
            dict: total_keys, keys, expiring_soon, status, hits, misses, errors
                status는 고정값 "available" (원격 계층 헬스 체크 아님)
        """
        keys = self.get_keys()
        return {
            "total_keys": len(keys),
            "keys": keys,
            "expiring_soon": self.get_expiring_soon_keys(self.expiring_soon_window_ms),
            "status": "available",
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
        }
