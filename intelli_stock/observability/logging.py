"""
구조화된 로깅 설정

표준 logging 레벨과 structlog 프로세서 체인을 한 번에 구성합니다.
개발 환경에서는 콘솔 렌더러, 운영 환경에서는 JSON 렌더러를 사용합니다.
"""

import logging
import sys

import structlog

from intelli_stock.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """
    structlog 및 표준 logging 설정

    Args:
        config: 로깅 설정 (레벨, JSON 출력 여부)
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
