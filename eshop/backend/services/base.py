"""
Base Service.

Services hold the business rules. They orchestrate repositories, translate
database failures into application errors and log what they do.

Usage:
    from eshop.backend.services.base import BaseService

    class UserService(BaseService):
        def __init__(self, session: AsyncSession) -> None:
            super().__init__(session)
            self.repo = UserRepository(session)
"""

from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.exceptions import (
    ConflictError,
    DatabaseError,
    ValidationError,
)
from eshop.backend.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class BaseService:
    """
    Base class for all services.

    Subclasses call super().__init__(session) and create their repositories
    in __init__.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._logger = get_logger(self.__class__.__module__)

    @property
    def session(self) -> AsyncSession:
        """Get the database session."""
        return self._session

    async def _execute_db_operation(
        self,
        operation: str,
        coro: Any,
        conflict_message: str = "Resource already exists",
    ) -> T:
        """
        Await a repository call, converting SQLAlchemy errors.

        Args:
            operation: Name of the operation for logging
            coro: Coroutine to execute
            conflict_message: Message for a unique constraint violation

        Raises:
            ConflictError: For unique constraint violations
            DatabaseError: For other database errors
        """
        try:
            return await coro
        except IntegrityError as e:
            self._logger.warning(
                "Database integrity error",
                extra={"operation": operation, "error": str(e)},
            )
            error_str = str(e).lower()
            if "unique" in error_str or "duplicate" in error_str:
                raise ConflictError(conflict_message) from e
            raise DatabaseError(f"Database constraint violation: {operation}") from e
        except SQLAlchemyError as e:
            self._logger.error(
                "Database error",
                extra={"operation": operation, "error": str(e)},
            )
            raise DatabaseError(f"Database operation failed: {operation}") from e

    def _validate_required(
        self,
        fields: dict[str, Any],
        field_names: list[str],
        message: str = "Required fields missing",
    ) -> None:
        """
        Check that required fields are present and not blank.

        Raises:
            ValidationError: Listing the missing fields in details
        """
        missing = []
        for name in field_names:
            value = fields.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)

        if missing:
            raise ValidationError(message, details={"missing_fields": missing})

    def _log_operation(self, operation: str, **context: Any) -> None:
        """Info-level log tagged with the service name."""
        self._logger.info(
            operation,
            extra={"service": self.__class__.__name__, **context},
        )

    def _log_debug(self, message: str, **context: Any) -> None:
        """Debug-level log tagged with the service name."""
        self._logger.debug(
            message,
            extra={"service": self.__class__.__name__, **context},
        )
