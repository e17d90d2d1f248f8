"""
Base service implementation with common functionality for all services.

Services own transactions: each unit of work opens a session from the
factory, commits on success and rolls back on any error.
"""

from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ErrorCode, RepositoryError
from ..utils.logger import get_logger


class BaseService:
    """Base service with common functionality for all services."""

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Args:
            session_factory: Callable returning a new Session, usually a sessionmaker
        """
        self.session_factory = session_factory
        self.logger = get_logger()

    @contextmanager
    def _session_scope(self, operation_name: str = "transaction") -> Iterator[Session]:
        """Run a unit of work in its own session and transaction."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise RepositoryError(
                f"Transaction failed in {operation_name}: {str(e)}",
                error_code=ErrorCode.DATABASE_ERROR,
                cause=e,
                operation_name=operation_name,
            ) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
