"""Trip repository for itinerary header rows."""

from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.trip import Trip


class TripRepository(BaseRepository[Trip]):
	"""Repository for Trip entity operations."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, Trip, correlation_id)

	def get_by_id_and_user(self, trip_id: int, user_id: int) -> Optional[Trip]:
		result = self.db.query(self.model).filter(
			self.model.id == trip_id,
			self.model.user_id == user_id,
		).first()
		self._log_operation("get_by_id_and_user", trip_id=trip_id, user_id=user_id, found=result is not None)
		return result
