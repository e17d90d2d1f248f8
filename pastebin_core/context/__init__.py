"""Cross-cutting operation context and service decorators."""

from .operation_context import OperationContext, OperationHandler, operation
from .service_decorators import handle_repository_errors

__all__ = ["OperationContext", "OperationHandler", "handle_repository_errors", "operation"]
