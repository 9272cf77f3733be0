from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.notification_log import NotificationLog


class NotificationLogRepository(BaseRepository[NotificationLog]):
	"""Repository for sent-notification records used for deduplication."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, NotificationLog, correlation_id)

	def sent_since(self, user_id: int, category: str, since: datetime) -> bool:
		result = self.db.query(self.model.id).filter(
			self.model.user_id == user_id,
			self.model.category == category,
			self.model.created_at >= since,
		).first() is not None
		self._log_operation("sent_since", user_id=user_id, category=category, found=result)
		return result
