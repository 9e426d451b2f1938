"""
HTTP 서버용 미들웨어 컴포넌트 모음

미들웨어 컴포넌트:
    LoggingMiddleware: 구조화된 요청/응답 로깅
        - 요청 ID 생성 및 추적
        - 처리 시간, 캐시 상태 로깅

    ErrorHandlerMiddleware: 전역 예외 처리
        - IntelliStockError를 JSON 에러 응답으로 변환
        - 예상치 못한 예외는 500 응답과 스택 트레이스 로깅

사용 패턴:
    ```python
    app = FastAPI()
    app.middleware("http")(LoggingMiddleware())
    ErrorHandlerMiddleware().register(app)
    ```
"""

from .logging import LoggingMiddleware, REQUEST_ID_HEADER
from .error_handler import ErrorHandlerMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware", "REQUEST_ID_HEADER"]
