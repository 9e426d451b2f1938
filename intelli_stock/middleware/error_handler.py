"""Error handling for the HTTP surface."""

from typing import Any, Dict

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from intelli_stock.exceptions import ErrorHandler, IntelliStockError, ValidationError

logger = structlog.get_logger(__name__)


class ErrorHandlerMiddleware:
    """Render errors as JSON bodies and keep simple error statistics."""

    def __init__(self, include_error_details: bool = False):
        """Initialize error handler.

        Args:
            include_error_details: Whether unexpected errors expose the exception
                type and message in the response data. Application errors always
                keep their data.
        """
        self.include_error_details = include_error_details
        self._error_counts: Dict[str, Any] = {"total": 0, "by_type": {}}

    def register(self, app: FastAPI) -> None:
        """Install exception handlers on the application."""
        app.add_exception_handler(IntelliStockError, self.handle_app_error)
        app.add_exception_handler(
            RequestValidationError, self.handle_request_validation_error
        )
        app.add_exception_handler(Exception, self.handle_unexpected_error)

    async def handle_app_error(
        self, request: Request, exc: IntelliStockError
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        self._record(exc)
        logger.warning(
            "애플리케이션 에러",
            **ErrorHandler.create_error_context(
                exc, request.method, request.url.path, request_id
            ),
        )
        return self._render(exc, request_id)

    async def handle_request_validation_error(
        self, request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(
            "Request validation failed",
            data={"errors": jsonable_encoder(exc.errors())},
        )
        return await self.handle_app_error(request, error)

    async def handle_unexpected_error(
        self, request: Request, exc: Exception
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        self._record(exc)
        logger.error(
            "예상치 못한 에러",
            exc_info=exc,
            **ErrorHandler.create_error_context(
                exc, request.method, request.url.path, request_id
            ),
        )
        return self._render(exc, request_id)

    def _render(self, exc: Exception, request_id: Any) -> JSONResponse:
        app_error = ErrorHandler.to_app_error(exc)
        body = ErrorHandler.handle_error(app_error, request_id)
        if not isinstance(exc, IntelliStockError) and not self.include_error_details:
            body["error"].pop("data", None)
        return JSONResponse(status_code=app_error.status_code, content=body)

    def _record(self, exc: Exception) -> None:
        error_type = type(exc).__name__
        self._error_counts["total"] += 1
        self._error_counts["by_type"][error_type] = (
            self._error_counts["by_type"].get(error_type, 0) + 1
        )

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        return {
            "total": self._error_counts["total"],
            "by_type": dict(self._error_counts["by_type"]),
        }
