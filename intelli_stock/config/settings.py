"""
애플리케이션 설정 클래스

intelli-stock 캐시 계층과 HTTP 서버의 모든 설정을 관리합니다.
각 설정 클래스는 기본값을 가지며 환경 변수로 오버라이드할 수 있습니다.

주요 기능:
    - 컴포넌트별 설정 (캐시, 시장 데이터, 로깅)
    - 환경 변수 로더 (from_env)
    - 설정 검증 (validate)
"""

import os
from dataclasses import dataclass, field
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL_MS = 24 * 60 * 60 * 1000  # 24시간
DEFAULT_EXPIRING_SOON_WINDOW_MS = 5 * 60 * 1000  # 5분


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class CacheConfig:
    """
    캐싱 설정

    2계층 캐시(프로세스 로컬 + Redis)를 위한 설정입니다.
    모든 TTL 값은 밀리초 단위입니다.
    """

    redis_url: str = "redis://localhost:6379"
    namespace: str = "intelli-stock"
    default_ttl_ms: int = DEFAULT_TTL_MS
    local_max_size: int = 1000
    expiring_soon_window_ms: int = DEFAULT_EXPIRING_SOON_WINDOW_MS
    enable_remote: bool = True

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """환경 변수에서 캐시 설정 로드"""
        return cls(
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            namespace=os.getenv("CACHE_NAMESPACE", "intelli-stock"),
            default_ttl_ms=int(os.getenv("CACHE_DEFAULT_TTL_MS", str(DEFAULT_TTL_MS))),
            local_max_size=int(os.getenv("CACHE_LOCAL_MAX_SIZE", "1000")),
            expiring_soon_window_ms=int(
                os.getenv(
                    "CACHE_EXPIRING_SOON_WINDOW_MS",
                    str(DEFAULT_EXPIRING_SOON_WINDOW_MS),
                )
            ),
            enable_remote=_env_bool("CACHE_ENABLE_REMOTE", "true"),
        )


@dataclass
class MarketConfig:
    """시장 데이터 캐시 설정 (자정 기준 만료에 사용할 시간대)"""

    timezone: str = "America/New_York"

    @classmethod
    def from_env(cls) -> "MarketConfig":
        return cls(timezone=os.getenv("MARKET_TIMEZONE", "America/New_York"))


@dataclass
class LoggingConfig:
    """
    로깅 설정

    구조화된 로깅과 요청 로깅 미들웨어를 위한 설정입니다.
    """

    log_level: str = "INFO"
    json_logs: bool = False
    log_query_params: bool = False
    slow_request_ms: int = 1000
    include_error_details: bool = False
    sensitive_fields: list[str] = field(
        default_factory=lambda: ["password", "token", "api_key", "secret", "auth"]
    )

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """환경 변수에서 로깅 설정 로드"""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            json_logs=_env_bool("LOG_JSON", "false"),
            log_query_params=_env_bool("LOG_QUERY_PARAMS", "false"),
            slow_request_ms=int(os.getenv("SLOW_REQUEST_MS", "1000")),
            include_error_details=_env_bool("INCLUDE_ERROR_DETAILS", "false"),
            sensitive_fields=os.getenv(
                "SENSITIVE_FIELDS", "password,token,api_key,secret,auth"
            ).split(","),
        )


@dataclass
class AppConfig:
    """
    통합 애플리케이션 설정

    사용 예시:
        # 기본값
        config = AppConfig()

        # 환경 변수 기반 생성
        config = AppConfig.from_env()
        ok, errors = config.validate()
    """

    name: str = "intelli-stock"
    cache: CacheConfig = field(default_factory=CacheConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        환경 변수에서 설정 로드

        Returns:
            환경 변수 기반 AppConfig 인스턴스
        """
        config = cls(
            name=os.getenv("APP_NAME", "intelli-stock"),
            cache=CacheConfig.from_env(),
            market=MarketConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

        logger.info(
            "환경 변수 기반 설정 로드 완료",
            name=config.name,
            redis_url=config.cache.redis_url,
            namespace=config.cache.namespace,
            remote_cache=config.cache.enable_remote,
        )

        return config

    def validate(self) -> tuple[bool, list[str]]:
        """
        설정 유효성 검증

        Returns:
            (유효 여부, 오류 메시지 목록)
        """
        errors = []

        if self.cache.enable_remote and not self.cache.redis_url:
            errors.append("원격 캐시가 활성화되었지만 REDIS_URL이 설정되지 않음")

        if not self.cache.namespace:
            errors.append("CACHE_NAMESPACE가 비어 있음")

        if self.cache.default_ttl_ms <= 0:
            errors.append(f"잘못된 기본 TTL: {self.cache.default_ttl_ms}")

        if self.cache.local_max_size <= 0:
            errors.append(f"잘못된 로컬 캐시 크기: {self.cache.local_max_size}")

        if self.cache.expiring_soon_window_ms < 0:
            errors.append(
                f"잘못된 만료 임박 구간: {self.cache.expiring_soon_window_ms}"
            )

        if _load_zone(self.market.timezone) is None:
            errors.append(f"알 수 없는 시간대: {self.market.timezone}")

        if self.logging.log_level.upper() not in {
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        }:
            errors.append(f"잘못된 로그 레벨: {self.logging.log_level}")

        return len(errors) == 0, errors

    def to_dict(self) -> dict[str, Any]:
        """설정을 딕셔너리로 변환"""
        return {
            "name": self.name,
            "cache": self.cache.__dict__,
            "market": self.market.__dict__,
            "logging": self.logging.__dict__,
        }


def _load_zone(name: str) -> Optional[ZoneInfo]:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None
