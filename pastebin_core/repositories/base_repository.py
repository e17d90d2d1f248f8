"""
Base repository implementation with common functionality for all repositories.

Repositories receive a session and never commit or roll back; the service
layer owns the transaction.
"""

from contextlib import contextmanager
from typing import Any, Generic, NoReturn, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.db_config import Base
from ..exceptions import ErrorCode, RepositoryError, duplicate
from ..utils.logger import get_logger

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository with common functionality for all repositories."""

    def __init__(self, session: Session, entity_class: Type[T]):
        """
        Initialize the base repository.

        Args:
            session: SQLAlchemy session for database operations
            entity_class: SQLAlchemy model class this repository handles
        """
        self.session = session
        self.entity_class = entity_class
        self.logger = get_logger()
        self.entity_name = entity_class.__name__

    def _handle_db_error(
        self,
        e: Exception,
        operation_name: str,
        entity_id: Optional[Any] = None,
        **context: Any,
    ) -> NoReturn:
        """
        Map database exceptions to RepositoryError with operation context.

        Raises:
            RepositoryError: With appropriate error code and context
        """
        if isinstance(e, RepositoryError):
            raise e

        error_context = {
            "operation_name": operation_name,
            "entity_type": self.entity_name,
            **context,
        }
        if entity_id is not None:
            error_context["entity_id"] = entity_id

        if isinstance(e, IntegrityError):
            error_message = str(e.orig).lower() if hasattr(e, "orig") else str(e).lower()

            if "foreign key constraint" in error_message:
                self.logger.warning(
                    f"Foreign key constraint violation in {operation_name}: {str(e)}",
                    extra=error_context,
                )
                raise RepositoryError(
                    f"Invalid reference in {self.entity_name}: {str(e)}",
                    error_code=ErrorCode.CONSTRAINT_VIOLATION,
                    cause=e,
                    **error_context,
                ) from e

            elif "unique constraint" in error_message or "duplicate" in error_message:
                self.logger.warning(
                    f"Duplicate {self.entity_name} in {operation_name}: {str(e)}",
                    extra=error_context,
                )
                raise duplicate(resource_type=self.entity_name, cause=e, **error_context) from e

            else:
                self.logger.error(
                    f"Integrity constraint violation in {operation_name}: {str(e)}",
                    extra=error_context,
                )
                raise RepositoryError(
                    f"Database constraint violation for {self.entity_name}: {str(e)}",
                    error_code=ErrorCode.CONSTRAINT_VIOLATION,
                    cause=e,
                    **error_context,
                ) from e

        elif isinstance(e, OperationalError):
            self.logger.error(
                f"Database unavailable in {operation_name}: {str(e)}",
                extra=error_context,
            )
            raise RepositoryError(
                f"Database unavailable for {self.entity_name}: {str(e)}",
                error_code=ErrorCode.CONNECTION_ERROR,
                status_code=503,
                cause=e,
                **error_context,
            ) from e

        elif isinstance(e, SQLAlchemyError):
            self.logger.error(
                f"Database error in {operation_name}: {str(e)}",
                extra=error_context,
            )
            raise RepositoryError(
                f"Database error for {self.entity_name}: {str(e)}",
                error_code=ErrorCode.DATABASE_ERROR,
                cause=e,
                **error_context,
            ) from e

        else:
            self.logger.error(
                f"Unexpected error in {operation_name}: {str(e)}",
                extra=error_context,
            )
            raise RepositoryError(
                f"Unexpected error for {self.entity_name}: {str(e)}",
                error_code=ErrorCode.INTERNAL_ERROR,
                cause=e,
                **error_context,
            ) from e

    @contextmanager
    def _session_operation(
        self, operation_name: str, entity_id: Optional[Any] = None, is_read_only: bool = False
    ):
        """
        Context manager for operations on the caller's session with error handling.

        Args:
            operation_name: Name of the operation for error reporting
            entity_id: Optional ID of the entity being operated on
            is_read_only: If True, skip the flush

        Raises:
            RepositoryError: If there's a database error
        """
        try:
            yield self.session
            # Flush writes so constraint violations surface here, not at commit
            if not is_read_only:
                self.session.flush()
        except Exception as e:
            self._handle_db_error(e, operation_name, entity_id)
