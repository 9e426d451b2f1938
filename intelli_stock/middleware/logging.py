"""
HTTP 요청 로깅 미들웨어

모든 HTTP 요청과 응답을 구조화된 형태로 로깅합니다.

주요 기능:
    요청/응답 로깅:
        - 고유 요청 ID 생성 및 X-Request-ID 헤더로 반환
        - 메서드, 경로, 상태 코드, 캐시 상태(X-Cache) 로깅
        - 쿼리 파라미터 로깅 (선택적, 민감 정보 마스킹)

    성능 모니터링:
        - 요청 처리 시간 측정 (밀리초 단위)
        - 느린 요청 감지 및 경고

사용 예시:
    ```python
    app.middleware("http")(
        LoggingMiddleware(log_query_params=True, sensitive_fields=["token"])
    )
    ```
"""

from typing import Any, Awaitable, Callable
import time
import uuid

import structlog
from fastapi import Request, Response

from intelli_stock.cache.interceptor import CACHE_STATUS_HEADER

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware:
    """
    요청/응답 추적 및 성능 모니터링을 위한 로깅 미들웨어

    로깅 과정:
        1. 요청 수신 시 고유 ID 생성 (클라이언트가 보낸 X-Request-ID 우선)
        2. request.state.request_id에 저장 (에러 핸들러에서 사용)
        3. 다음 처리 단계로 요청 전달
        4. 완료 로깅 (소요 시간, 상태 코드, 캐시 상태)
        5. 느린 요청 경고
    """

    def __init__(
        self,
        log_query_params: bool = False,
        slow_request_ms: int = 1000,
        sensitive_fields: list[str] | None = None,
    ):
        """
        Args:
            log_query_params: 쿼리 파라미터 로깅 여부
            slow_request_ms: 느린 요청 경고 기준 (밀리초)
            sensitive_fields: 마스킹할 파라미터 이름 키워드
                이 필드들은 "[REDACTED]"로 대체됨
        """
        self.log_query_params = log_query_params
        self.slow_request_ms = slow_request_ms
        self.sensitive_fields = sensitive_fields or [
            "password",
            "token",
            "api_key",
            "secret",
        ]

    async def __call__(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.time()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        log_context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }
        if self.log_query_params and request.query_params:
            log_context["query_params"] = self._sanitize_data(
                dict(request.query_params)
            )

        logger.debug("HTTP 요청 수신", **log_context)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.exception(
                "요청 처리 중 미처리 예외 발생",
                **log_context,
                duration_ms=duration_ms,
                error=str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        final_context = {
            **log_context,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "cache": response.headers.get(CACHE_STATUS_HEADER),
        }

        log_level = "error" if response.status_code >= 500 else "info"
        getattr(logger, log_level)("HTTP 요청 완료", **final_context)

        if duration_ms > self.slow_request_ms:
            logger.warning(
                "느린 요청 감지", **final_context, threshold_ms=self.slow_request_ms
            )

        return response

    def _sanitize_data(self, data: Any) -> Any:
        """
        로그에서 민감한 데이터를 재귀적으로 마스킹

        - dict: 키 이름에 민감 키워드가 있으면 "[REDACTED]"
        - list: 각 요소 재귀 처리
        - str: 1000자 초과 시 절단
        """
        if isinstance(data, dict):
            sanitized = {}
            for key, value in data.items():
                if any(sensitive in key.lower() for sensitive in self.sensitive_fields):
                    sanitized[key] = "[REDACTED]"
                else:
                    sanitized[key] = self._sanitize_data(value)
            return sanitized
        elif isinstance(data, list):
            return [self._sanitize_data(item) for item in data]
        elif isinstance(data, str) and len(data) > 1000:
            return data[:1000] + "... [TRUNCATED]"
        else:
            return data
