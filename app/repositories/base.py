"""Base repository class with common CRUD operations."""

import logging
from abc import ABC
from typing import Generic, TypeVar, Type, Optional, List, Any, Dict, Iterable
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType")
UpdateSchemaType = TypeVar("UpdateSchemaType")


class BaseRepository(Generic[ModelType], ABC):
    """Base repository class providing common CRUD operations.

    Provides:
    - Create (single and batch), read, update
    - Structured logging for data operations

    Repositories flush but never commit; the owning service decides
    the transaction boundary.
    """

    def __init__(self, db: Session, model: Type[ModelType], correlation_id: Optional[str] = None):
        """Initialize repository with database session and model type.

        Args:
            db: SQLAlchemy database session
            model: SQLAlchemy model class
            correlation_id: Optional request correlation ID for logging
        """
        self.db = db
        self.model = model
        self.correlation_id = correlation_id
        self.logger = logging.getLogger(self.__class__.__name__)

    def create(self, obj_in: CreateSchemaType, **kwargs: Any) -> ModelType:
        """Create a new record in the database.

        Args:
            obj_in: Pydantic model or dict with creation data
            **kwargs: Additional fields to set on the model

        Returns:
            Created model instance

        Raises:
            SQLAlchemyError: On database operation failure
        """
        try:
            db_obj = self.model(**self._to_data(obj_in, kwargs))
            self.db.add(db_obj)
            self.db.flush()
            self.db.refresh(db_obj)

            self._log_operation("create", model=self.model.__name__, id=getattr(db_obj, 'id', None))
            return db_obj

        except SQLAlchemyError as e:
            self._log_failure("create", e)
            raise

    def create_many(self, rows: Iterable[CreateSchemaType]) -> List[ModelType]:
        """Insert several records with a single flush.

        Args:
            rows: Pydantic models or dicts with creation data

        Returns:
            Created model instances, in input order
        """
        try:
            objs = [self.model(**self._to_data(row, {})) for row in rows]
            if not objs:
                return []
            self.db.add_all(objs)
            self.db.flush()

            self._log_operation("create_many", model=self.model.__name__, count=len(objs))
            return objs

        except SQLAlchemyError as e:
            self._log_failure("create_many", e)
            raise

    def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get a record by primary key.

        Args:
            id: Record ID

        Returns:
            Model instance or None if not found
        """
        result = self.db.query(self.model).filter(self.model.id == id).first()
        self._log_operation("get_by_id", model=self.model.__name__, id=id, found=result is not None)
        return result

    def update(self, id: Any, obj_in: UpdateSchemaType, **kwargs: Any) -> Optional[ModelType]:
        """Update a record by ID.

        Args:
            id: Record ID
            obj_in: Pydantic model or dict with update data
            **kwargs: Additional fields to update

        Returns:
            Updated model instance or None if not found

        Raises:
            SQLAlchemyError: On database operation failure
        """
        try:
            db_obj = self.get_by_id(id)
            if not db_obj:
                return None

            for field, value in self._to_data(obj_in, kwargs).items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)

            self.db.flush()
            self.db.refresh(db_obj)

            self._log_operation("update", model=self.model.__name__, id=id)
            return db_obj

        except SQLAlchemyError as e:
            self._log_failure("update", e, id=id)
            raise

    @staticmethod
    def _to_data(obj_in: Any, extra: Dict[str, Any]) -> Dict[str, Any]:
        if hasattr(obj_in, 'model_dump'):
            # Pydantic model
            data = obj_in.model_dump(exclude_unset=True)
        else:
            data = dict(obj_in)
        data.update(extra)
        return data

    def _log_failure(self, operation: str, error: Exception, **kwargs: Any) -> None:
        self.logger.error(
            f"Failed to {operation} {self.model.__name__}",
            extra={
                "correlation_id": self.correlation_id,
                "repository": self.__class__.__name__,
                "error": str(error),
                **kwargs
            }
        )

    def _log_operation(self, operation: str, **kwargs: Any) -> None:
        """Log repository operation with structured fields.

        Args:
            operation: Name of the operation being performed
            **kwargs: Additional fields to include in log
        """
        log_data = {
            "correlation_id": self.correlation_id,
            "repository": self.__class__.__name__,
            "operation": operation,
            **kwargs
        }
        self.logger.info(f"Repository operation: {operation}", extra=log_data)
