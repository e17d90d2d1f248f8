"""
Service layer decorators for translating repository failures.

Repository errors reaching a service boundary become either a user-facing
NotFound or a StoreUnavailable; everything that is already a domain error
passes through unchanged.
"""

from functools import wraps
from typing import Any, Callable, Optional, TypeVar, cast

from ..exceptions import ErrorCode, NotFound, RepositoryError, StoreUnavailable

F = TypeVar("F", bound=Callable[..., Any])


def handle_repository_errors(operation_name: Optional[str] = None):
    """
    Decorator converting RepositoryError raised inside a service method.

    Usage:
        @handle_repository_errors("get_paste")
        def get_paste(self, paste_id):
            ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            op_name = operation_name or func.__name__
            try:
                return func(self, *args, **kwargs)
            except RepositoryError as e:
                entity_id = args[0] if args else kwargs.get("paste_id")
                if e.error_code == ErrorCode.NOT_FOUND:
                    raise NotFound(e.message, cause=e, operation=op_name, entity_id=entity_id) from e
                raise StoreUnavailable(
                    f"Error in {op_name}: {e.message}",
                    service_name="database",
                    cause=e,
                    operation=op_name,
                    entity_id=entity_id,
                ) from e

        return cast(F, wrapper)

    return decorator
