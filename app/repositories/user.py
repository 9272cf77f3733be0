"""User repository for user-related database operations."""

from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.user import User


class UserRepository(BaseRepository[User]):
    """Repository for User entity operations."""

    def __init__(self, db: Session, correlation_id: Optional[str] = None):
        super().__init__(db, User, correlation_id)

    def get_active(self, user_id: int) -> Optional[User]:
        """Get an active user by ID.

        Args:
            user_id: User ID decoded from the access token

        Returns:
            User instance or None if missing or deactivated
        """
        result = self.db.query(self.model).filter(
            self.model.id == user_id,
            self.model.is_active == True  # noqa: E712
        ).first()

        self._log_operation("get_active", user_id=user_id, found=result is not None)
        return result
