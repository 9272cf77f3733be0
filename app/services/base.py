"""Base service class with common functionality for all services."""

import logging
from typing import Optional, Callable, TypeVar, Any
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

T = TypeVar("T")


class BaseService:
    """Base service class shared by request-scoped and job-scoped services.

    Provides:
    - Commit/rollback around a unit of work
    - Structured logging keyed by correlation ID (request id or plan job id)
    """

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id
        self.logger = logging.getLogger(self.__class__.__name__)

    def _set_repositories(self, **repositories):
        """Attach repository instances as attributes."""
        for name, repo in repositories.items():
            setattr(self, name, repo)

    def run_in_transaction(self, db: Session, operation: Callable[[], T]) -> T:
        """Run `operation` and commit; roll back and re-raise on any exception.

        Args:
            db: Session the operation writes through
            operation: Callable performing the writes

        Returns:
            Whatever `operation` returns
        """
        try:
            result = operation()
            db.commit()
        except Exception as e:
            db.rollback()
            kind = "Database" if isinstance(e, SQLAlchemyError) else "Unexpected"
            self.log_failure(f"{kind} error, transaction rolled back", e)
            raise
        self.logger.debug(
            "Transaction committed",
            extra={"correlation_id": self.correlation_id, "service": self.__class__.__name__},
        )
        return result

    def log_operation(self, operation: str, **kwargs: Any) -> None:
        """Log a service operation with structured fields."""
        log_data = {
            "correlation_id": self.correlation_id,
            "service": self.__class__.__name__,
            "operation": operation,
            **kwargs
        }
        self.logger.info(f"Service operation: {operation}", extra=log_data)

    def log_failure(self, message: str, error: BaseException, **kwargs: Any) -> None:
        self.logger.error(
            message,
            extra={
                "correlation_id": self.correlation_id,
                "service": self.__class__.__name__,
                "error": str(error),
                "error_type": type(error).__name__,
                **kwargs
            }
        )
