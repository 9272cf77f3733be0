from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.trip_stop import TripStop


class TripStopRepository(BaseRepository[TripStop]):
	"""Repository for TripStop entity operations."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, TripStop, correlation_id)
