"""
사용자 정의 예외 및 에러 처리 모듈

이 모듈은 intelli-stock 캐시 계층과 HTTP 서버의 모든 에러를 정의합니다.
각 예외는 에러 코드와 HTTP 상태 코드를 함께 가지며,
JSON 에러 응답으로 변환할 수 있습니다.

주요 구성요소:
    - ErrorCode: 에러 코드 열거형
    - IntelliStockError: 모든 애플리케이션 예외의 기본 클래스
    - 구체적인 예외 클래스들: 캐시 백엔드, 직렬화, 검증, 리소스 없음 등
    - ErrorHandler: 중앙 집중식 에러 처리기

에러 전파 정책:
    - 캐시 저장소(어댑터) 에러는 CacheBackendError로 호출자에게 전파됩니다.
    - CacheService는 이 에러를 잡아 로깅한 뒤 안전한 기본값으로 변환합니다.
    - API 에러(ResourceNotFoundError, ValidationError)만 클라이언트에 노출됩니다.
"""

from typing import Any, Dict, Optional
from enum import Enum
import asyncio


class ErrorCode(Enum):
    """
    애플리케이션 에러 코드 열거형

    문자열 코드는 응답 본문의 error.code 필드에 그대로 노출됩니다.
    """

    INTERNAL_ERROR = "internal_error"  # 내부 서버 에러
    VALIDATION_ERROR = "validation_error"  # 입력값 검증 실패
    RESOURCE_NOT_FOUND = "resource_not_found"  # 리소스를 찾을 수 없음
    CONFIGURATION_ERROR = "configuration_error"  # 잘못된 설정
    CACHE_ERROR = "cache_error"  # 일반 캐시 에러
    CACHE_BACKEND_ERROR = "cache_backend_error"  # 원격 캐시 계층 실패
    CACHE_SERIALIZATION_ERROR = "cache_serialization_error"  # 직렬화 실패
    TIMEOUT_ERROR = "timeout_error"  # 작업 시간 초과


# 에러 코드별 HTTP 상태 코드
HTTP_STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.CACHE_ERROR: 500,
    ErrorCode.CACHE_BACKEND_ERROR: 503,
    ErrorCode.CACHE_SERIALIZATION_ERROR: 500,
    ErrorCode.TIMEOUT_ERROR: 504,
}


class IntelliStockError(Exception):
    """
    모든 intelli-stock 에러의 기본 예외 클래스

    Attributes:
        message (str): 에러 메시지
        code (ErrorCode): 에러 코드
        data (dict): 추가 에러 정보 (선택사항)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 사용자에게 표시될 에러 메시지
            code: 에러 코드 (기본값: INTERNAL_ERROR)
            data: 디버깅에 유용한 추가 정보 (선택사항)
        """
        self.message = message
        self.code = code
        self.data = data or {}
        super().__init__(message)

    @property
    def status_code(self) -> int:
        """에러 코드에 대응하는 HTTP 상태 코드"""
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        """
        에러를 응답용 딕셔너리로 변환

        data 필드는 값이 있을 때만 포함됩니다.

        Returns:
            Dict[str, Any]: code, message, data(선택)
        """
        error_dict = {"code": self.code.value, "message": self.message}
        if self.data:
            error_dict["data"] = self.data
        return error_dict


class CacheError(IntelliStockError):
    """캐시 계층 에러의 기본 클래스"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CACHE_ERROR,
        data: Optional[Dict[str, Any]] = None,
    ):
        if data is None:
            data = {}
        if key is not None:
            data["key"] = key
        self.key = key
        super().__init__(message=message, code=code, data=data)


class CacheBackendError(CacheError):
    """
    캐시 저장소 작업 실패 에러

    원격 계층(Redis)에 연결할 수 없거나 명령이 실패했을 때 발생합니다.
    저장소 어댑터는 이 에러를 삼키지 않고 호출자에게 전파하며,
    CacheService가 degrade 정책(미스, no-op, False)을 결정합니다.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 에러 메시지
            operation: 실패한 저장소 작업 (예: "get", "set", "clear")
            key: 대상 캐시 키 (선택사항)
            data: 추가 정보 (예: 원본 에러)
        """
        if data is None:
            data = {}
        if operation:
            data["operation"] = operation
        self.operation = operation
        super().__init__(
            message=message, key=key, code=ErrorCode.CACHE_BACKEND_ERROR, data=data
        )


class CacheSerializationError(CacheError):
    """저장된 값을 JSON으로 인코딩/디코딩할 수 없을 때 발생"""

    def __init__(
        self,
        message: str = "Cache value could not be serialized",
        key: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            key=key,
            code=ErrorCode.CACHE_SERIALIZATION_ERROR,
            data=data,
        )


class ValidationError(IntelliStockError):
    """
    입력값 검증 실패 에러

    어떤 필드가 문제인지, 어떤 값이 잘못되었는지 정보를 포함할 수 있습니다.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 에러 메시지
            field: 검증에 실패한 필드 이름 (선택사항)
            value: 잘못된 값 (선택사항)
            data: 추가 정보
        """
        if data is None:
            data = {}
        if field:
            data["field"] = field
        if value is not None:
            # 긴 값은 100자로 잘라서 로그에 과도한 데이터 방지
            data["value"] = str(value)[:100]

        super().__init__(message=message, code=ErrorCode.VALIDATION_ERROR, data=data)


class ResourceNotFoundError(IntelliStockError):
    """
    리소스를 찾을 수 없음 에러

    요청된 리소스(캐시 키, 종목 등)가 존재하지 않을 때 발생합니다.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        if data is None:
            data = {}
        if resource_type:
            data["resource_type"] = resource_type
        if resource_id:
            data["resource_id"] = resource_id

        super().__init__(
            message=message, code=ErrorCode.RESOURCE_NOT_FOUND, data=data
        )


class ConfigurationError(IntelliStockError):
    """설정 검증 실패 에러"""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        data = {"errors": errors} if errors else None
        super().__init__(
            message=message, code=ErrorCode.CONFIGURATION_ERROR, data=data
        )


class TimeoutError(IntelliStockError):
    """작업 시간 초과 에러"""

    def __init__(
        self,
        message: str = "Operation timed out",
        operation: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        if data is None:
            data = {}
        if operation:
            data["operation"] = operation
        super().__init__(message=message, code=ErrorCode.TIMEOUT_ERROR, data=data)


class ErrorHandler:
    """
    중앙 집중식 에러 처리기

    모든 예외를 JSON 에러 응답 본문으로 변환하고
    로깅용 에러 컨텍스트를 생성하는 유틸리티 클래스입니다.
    """

    @staticmethod
    def to_app_error(error: Exception) -> IntelliStockError:
        """
        임의의 예외를 IntelliStockError로 변환

        - IntelliStockError: 그대로 반환
        - asyncio.TimeoutError: TimeoutError
        - ValueError: ValidationError
        - 기타: 상세 정보를 data에만 담은 INTERNAL_ERROR
        """
        if isinstance(error, IntelliStockError):
            return error
        if isinstance(error, asyncio.TimeoutError):
            return TimeoutError("Operation timed out")
        if isinstance(error, ValueError):
            return ValidationError(str(error))
        return IntelliStockError(
            message="Internal server error",
            code=ErrorCode.INTERNAL_ERROR,
            data={
                "exception_type": type(error).__name__,
                "exception_message": str(error),
            },
        )

    @staticmethod
    def handle_error(
        error: Exception, request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        모든 예외를 에러 응답 본문으로 변환

        Args:
            error: 처리할 예외
            request_id: 요청 추적을 위한 ID (선택사항)

        Returns:
            Dict[str, Any]: {"error": {...}, "request_id": ...}
        """
        app_error = ErrorHandler.to_app_error(error)
        return {"error": app_error.to_dict(), "request_id": request_id}

    @staticmethod
    def create_error_context(
        error: Exception,
        method: Optional[str] = None,
        path: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        로깅을 위한 에러 컨텍스트 생성

        Returns:
            Dict[str, Any]: error_type, error_message 및 제공된 선택 항목,
                IntelliStockError인 경우 error_code, error_data 포함
        """
        context = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }

        if method:
            context["method"] = method
        if path:
            context["path"] = path
        if request_id:
            context["request_id"] = request_id

        if isinstance(error, IntelliStockError):
            context["error_code"] = error.code.value
            context["error_data"] = error.data

        return context
