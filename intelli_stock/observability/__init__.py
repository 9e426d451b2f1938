"""관찰 가능성 모듈 (구조화된 로깅 설정)"""

from .logging import configure_logging

__all__ = ["configure_logging"]
