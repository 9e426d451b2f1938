"""
설정 관리 모듈

캐시 계층과 HTTP 서버의 모든 설정을 중앙에서 관리합니다.

주요 구성요소:
    - AppConfig: 메인 애플리케이션 설정 클래스
    - CacheConfig / MarketConfig / LoggingConfig: 컴포넌트별 설정
"""

from .settings import (
    AppConfig,
    CacheConfig,
    LoggingConfig,
    MarketConfig,
    DEFAULT_TTL_MS,
    DEFAULT_EXPIRING_SOON_WINDOW_MS,
)

__all__ = [
    "AppConfig",
    "CacheConfig",
    "LoggingConfig",
    "MarketConfig",
    "DEFAULT_TTL_MS",
    "DEFAULT_EXPIRING_SOON_WINDOW_MS",
]
