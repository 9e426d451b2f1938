"""Unit tests for custom exceptions and error handling."""

import asyncio

from intelli_stock.exceptions import (
    CacheBackendError,
    CacheError,
    CacheSerializationError,
    ConfigurationError,
    ErrorCode,
    ErrorHandler,
    IntelliStockError,
    ResourceNotFoundError,
    TimeoutError,
    ValidationError,
)


class TestIntelliStockError:
    """Test IntelliStockError base class."""

    def test_error_creation(self):
        """Test creating IntelliStockError."""
        error = IntelliStockError("Test error", ErrorCode.INTERNAL_ERROR, {"detail": "test"})

        assert str(error) == "Test error"
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.data == {"detail": "test"}
        assert error.status_code == 500

    def test_error_to_dict(self):
        """Test converting IntelliStockError to dict."""
        error = IntelliStockError("Bad input", ErrorCode.VALIDATION_ERROR, {"field": "ttl"})
        error_dict = error.to_dict()

        assert error_dict["code"] == "validation_error"
        assert error_dict["message"] == "Bad input"
        assert error_dict["data"] == {"field": "ttl"}

    def test_error_without_data(self):
        """Test IntelliStockError without additional data."""
        error_dict = IntelliStockError("Simple error").to_dict()

        assert error_dict["code"] == ErrorCode.INTERNAL_ERROR.value
        assert "data" not in error_dict


class TestSpecificErrors:
    """Test specific error types."""

    def test_cache_error(self):
        """Test CacheError."""
        error = CacheError("Cache failed", key="top-stocks")

        assert error.code == ErrorCode.CACHE_ERROR
        assert error.data["key"] == "top-stocks"

    def test_cache_backend_error(self):
        """Test CacheBackendError."""
        error = CacheBackendError("Redis get failed", operation="get", key="k")

        assert isinstance(error, CacheError)
        assert error.code == ErrorCode.CACHE_BACKEND_ERROR
        assert error.status_code == 503
        assert error.data == {"key": "k", "operation": "get"}

    def test_cache_serialization_error(self):
        """Test CacheSerializationError."""
        error = CacheSerializationError(key="k")

        assert error.code == ErrorCode.CACHE_SERIALIZATION_ERROR
        assert error.message == "Cache value could not be serialized"

    def test_validation_error(self):
        """Test ValidationError truncates long values."""
        error = ValidationError("Invalid TTL", field="ttl_ms", value="x" * 200)

        assert error.status_code == 422
        assert error.data["field"] == "ttl_ms"
        assert len(error.data["value"]) == 100

    def test_resource_not_found_error(self):
        """Test ResourceNotFoundError."""
        error = ResourceNotFoundError(
            "Cache key not found", resource_type="cache_key", resource_id="k"
        )

        assert error.status_code == 404
        assert error.data == {"resource_type": "cache_key", "resource_id": "k"}

    def test_configuration_error(self):
        """Test ConfigurationError lists the problems."""
        error = ConfigurationError("Invalid config", errors=["bad ttl"])

        assert error.code == ErrorCode.CONFIGURATION_ERROR
        assert error.data == {"errors": ["bad ttl"]}

    def test_timeout_error(self):
        """Test TimeoutError."""
        error = TimeoutError(operation="redis.get")

        assert error.status_code == 504
        assert error.data["operation"] == "redis.get"


class TestErrorHandler:
    """Test ErrorHandler conversions."""

    def test_handle_app_error(self):
        """Test application errors keep their code."""
        error = ResourceNotFoundError("Cache key not found", resource_id="k")

        body = ErrorHandler.handle_error(error, request_id="req-1")

        assert body["request_id"] == "req-1"
        assert body["error"]["code"] == "resource_not_found"

    def test_handle_asyncio_timeout(self):
        """Test asyncio timeouts map to TimeoutError."""
        body = ErrorHandler.handle_error(asyncio.TimeoutError())

        assert body["error"]["code"] == ErrorCode.TIMEOUT_ERROR.value
        assert body["request_id"] is None

    def test_handle_value_error(self):
        """Test ValueError maps to a validation error."""
        body = ErrorHandler.handle_error(ValueError("bad ticker"))

        assert body["error"]["code"] == ErrorCode.VALIDATION_ERROR.value
        assert body["error"]["message"] == "bad ticker"

    def test_handle_unexpected_error(self):
        """Test unknown exceptions become internal errors."""
        body = ErrorHandler.handle_error(RuntimeError("kaboom"))

        assert body["error"]["code"] == ErrorCode.INTERNAL_ERROR.value
        assert body["error"]["message"] == "Internal server error"
        assert body["error"]["data"]["exception_type"] == "RuntimeError"

    def test_create_error_context(self):
        """Test building log context."""
        error = CacheBackendError("Redis down", operation="get")

        context = ErrorHandler.create_error_context(
            error, method="GET", path="/cache/stats", request_id="req-1"
        )

        assert context["error_type"] == "CacheBackendError"
        assert context["error_code"] == "cache_backend_error"
        assert context["method"] == "GET"
        assert context["path"] == "/cache/stats"
        assert context["request_id"] == "req-1"
        assert context["error_data"] == {"operation": "get"}
