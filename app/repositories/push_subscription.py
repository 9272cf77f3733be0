from typing import Optional, List
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.push_subscription import PushSubscription


class PushSubscriptionRepository(BaseRepository[PushSubscription]):
	"""Repository for a user's Web Push endpoints."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, PushSubscription, correlation_id)

	def list_for_user(self, user_id: int) -> List[PushSubscription]:
		return self.db.query(self.model).filter(self.model.user_id == user_id).all()

	def delete_by_endpoint(self, endpoint: str) -> int:
		deleted = self.db.query(self.model).filter(
			self.model.endpoint == endpoint,
		).delete(synchronize_session=False)
		self._log_operation("delete_by_endpoint", deleted=deleted)
		return deleted
