"""
Operation context for handling cross-cutting concerns.

Wraps service calls with ENTER/EXIT logging, a per-operation id, the
thread's correlation id and the elapsed time.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar, cast

from ..exceptions import BaseError, clear_correlation_id, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger


class OperationContext:
    """Context for a specific operation."""

    def __init__(
        self,
        operation_name: str,
        /,
        context: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())

        self.previous_correlation_id = get_correlation_id()
        self.correlation_id = correlation_id or self.previous_correlation_id or str(uuid.uuid4())
        set_correlation_id(self.correlation_id)

        self.context = dict(context or {})
        self.context["operation_id"] = self.operation_id
        self.context["correlation_id"] = self.correlation_id

        self.start_time = time.monotonic()

    @property
    def duration_ms(self) -> float:
        """Get the operation duration in milliseconds."""
        return (time.monotonic() - self.start_time) * 1000

    def restore_correlation_id(self) -> None:
        """Hand the thread back the correlation id it had before this operation."""
        if self.previous_correlation_id is None:
            clear_correlation_id()
        else:
            set_correlation_id(self.previous_correlation_id)


class OperationHandler:
    """Handles operation logging and error enrichment."""

    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, /, **context):
        """
        Context manager for operations.

        ``context`` holds arbitrary caller keywords (including ``name``); they
        are logged, never interpreted.
        """
        op_ctx = OperationContext(name, context)

        self.logger.info(
            f"ENTER: {name}",
            extra={
                **context,
                "operation_id": op_ctx.operation_id,
                "correlation_id": op_ctx.correlation_id,
            },
        )

        try:
            yield op_ctx

            self.logger.info(
                f"EXIT: {name}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "status": "success",
                },
            )

        except BaseError as e:
            e.add_context(
                operation_name=name,
                operation_id=op_ctx.operation_id,
                operation_duration_ms=op_ctx.duration_ms,
            )

            # BaseError already logged itself
            log = self.logger.error if e.status_code >= 500 else self.logger.info
            log(
                f"ERROR: {name} -> {e.error_code.value}: {e.message}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "error_id": e.error_id,
                    "error_code": e.error_code.value,
                    "status": "error",
                },
            )
            raise

        except Exception as e:
            self.logger.exception(
                f"ERROR: {name} -> {type(e).__name__}: {str(e)}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "error_type": type(e).__name__,
                    "status": "error",
                },
            )
            raise

        finally:
            # Pooled worker threads outlive the operation
            op_ctx.restore_correlation_id()


F = TypeVar("F", bound=Callable[..., Any])


def _sanitize_param(param):
    """Keep log lines small: scalars as-is, everything else by type name."""
    if param is None or isinstance(param, (str, int, float, bool)):
        return param
    if isinstance(param, (bytes, bytearray)):
        return f"<{len(param)} bytes>"
    return type(param).__name__


def operation(name: Optional[str] = None):
    """
    Decorator that runs a method inside ``OperationHandler.operation``.

    Args:
        name: Optional operation name; defaults to ``Class.method``.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if name is not None:
                op_name = name
            elif args and hasattr(args[0], "__class__"):
                op_name = f"{args[0].__class__.__name__}.{func.__name__}"
            else:
                op_name = func.__name__

            context = {k: _sanitize_param(v) for k, v in kwargs.items() if k != "token"}
            handler = OperationHandler()
            with handler.operation(op_name, **context):
                return func(*args, **kwargs)

        return cast(F, wrapper)

    return decorator
