"""
Consolidated exception system with error codes, context, and correlation support.

Every error raised by the paste engine derives from BaseError so callers (an HTTP
layer, the sweeper, tests) can map it to a status code with ``status_code`` and
serialize it with ``to_dict()``.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONNECTION_ERROR = "1002"
    ENTROPY_UNAVAILABLE = "1005"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"
    CONSTRAINT_VIOLATION = "2004"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    CONFLICT = "3002"

    # Business logic errors (4xxx)
    UNAUTHORIZED = "4000"
    RATE_LIMITED = "4002"

    # External service errors (5xxx)
    STORE_UNAVAILABLE = "5000"
    OBJECT_STORE_WRITE_FAILED = "5001"
    METADATA_COMMIT_FAILED = "5002"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Lazy import: the logger module imports config, which must not import us back
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(
                f"Error {self.error_code.value}: {self.message}", extra=log_data, exc_info=self.cause
            )
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(
        self, include_cause: bool = False, include_traceback: bool = False
    ) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include cause information (useful for debugging)
            include_traceback: Include full traceback (only in debug mode)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }
            if include_traceback:
                result["error"]["cause"]["traceback"] = self.context["cause"]["traceback"]

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """Add additional context to the error (fluent interface)."""
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Repository layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class ValidationError(BaseError):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class ExternalServiceError(BaseError):
    """External service integration errors."""

    def __init__(
        self,
        message: str,
        service_name: str,
        error_code: ErrorCode = ErrorCode.STORE_UNAVAILABLE,
        status_code: int = 502,
        cause: Optional[Exception] = None,
        **context,
    ):
        context["service_name"] = service_name
        super().__init__(message, error_code, status_code, cause, **context)


# ==================== LIMITS REJECTIONS ====================


class ValidationRejected(ValidationError):
    """A proposed paste violates a configured limit.

    ``limit`` is the bound that was crossed and ``actual`` the offending value,
    so a client can correct the request without guessing.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        limit: Any = None,
        actual: Any = None,
        error_code: ErrorCode = ErrorCode.CONSTRAINT_VIOLATION,
        **context,
    ):
        self.limit = limit
        self.actual = actual
        super().__init__(message, field=field, error_code=error_code, limit=limit, actual=actual, **context)


class TooManyDocuments(ValidationRejected):
    pass


class TooFewDocuments(ValidationRejected):
    pass


class DocumentTooLarge(ValidationRejected):
    pass


class DocumentTooSmall(ValidationRejected):
    pass


class PasteTooLarge(ValidationRejected):
    pass


class PasteTooSmall(ValidationRejected):
    pass


class NameTooShort(ValidationRejected):
    pass


class NameTooLong(ValidationRejected):
    pass


class ExpiryOutOfRange(ValidationRejected):
    pass


class UnsupportedDocumentType(ValidationRejected):
    pass


class TypeTooLong(ValidationRejected):
    pass


class DuplicateDocumentName(ValidationRejected):
    pass


class UnknownDocument(ValidationRejected):
    """A patch names a document the paste does not own."""


# ==================== ACCESS AND RESOURCE ERRORS ====================


class Unauthorized(BaseError):
    """Bearer token missing or not bound to the paste."""

    def __init__(self, message: str = "Invalid or missing paste token", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.UNAUTHORIZED, status_code=401, **kwargs)


class NotFound(BaseError):
    """Unknown, expired or already deleted paste or document."""

    def __init__(self, message: str = "Not found", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.NOT_FOUND, status_code=404, **kwargs)


class Conflict(BaseError):
    """A concurrent mutation committed first; the caller may retry."""

    def __init__(self, message: str = "Paste was modified concurrently", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.CONFLICT, status_code=409, **kwargs)


class RateLimited(BaseError):
    """Admission denied by one of the rate limit layers."""

    def __init__(self, retry_after: int, message: Optional[str] = None, **kwargs):
        self.retry_after = retry_after
        super().__init__(
            message=message or f"Rate limited, retry after {retry_after}s",
            error_code=ErrorCode.RATE_LIMITED,
            status_code=429,
            retry_after=retry_after,
            **kwargs,
        )


# ==================== STORE FAILURES ====================


class StoreUnavailable(ExternalServiceError):
    """Transient failure of the relational or object store."""

    def __init__(
        self,
        message: str,
        service_name: str = "store",
        error_code: ErrorCode = ErrorCode.STORE_UNAVAILABLE,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, service_name, error_code, 503, cause, **context)


class ObjectStoreWriteFailed(StoreUnavailable):
    """A blob write failed; already written blobs were removed."""

    def __init__(self, message: str = "Failed to write document content", **kwargs):
        super().__init__(
            message, service_name="object_store", error_code=ErrorCode.OBJECT_STORE_WRITE_FAILED, **kwargs
        )


class MetadataCommitFailed(StoreUnavailable):
    """The relational commit failed after blobs were written; new blobs were removed."""

    def __init__(self, message: str = "Failed to commit paste metadata", **kwargs):
        super().__init__(
            message, service_name="database", error_code=ErrorCode.METADATA_COMMIT_FAILED, **kwargs
        )


class EntropyUnavailable(BaseError):
    """The randomness source could not produce an identifier or token."""

    def __init__(self, message: str = "Randomness source unavailable", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.ENTROPY_UNAVAILABLE, status_code=503, **kwargs
        )


# Factory functions for common error patterns
def duplicate(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> RepositoryError:
    """Factory for duplicate resource errors (409)."""
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"Duplicate {resource_type}"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return RepositoryError(
        message,
        error_code=ErrorCode.DUPLICATE,
        status_code=409,
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
