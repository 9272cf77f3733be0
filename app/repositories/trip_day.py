from typing import Optional, Dict, List
from datetime import date
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.trip_day import TripDay


class TripDayRepository(BaseRepository[TripDay]):
	"""Repository for TripDay entity operations."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, TripDay, correlation_id)

	def ensure_days(self, trip_id: int, dates: List[date]) -> Dict[date, int]:
		"""Create missing days for `dates` and return a date -> day id lookup.

		Existing days are reused so an enhanced trip keeps its day ids.
		"""
		existing = {
			day.date: day.id
			for day in self.db.query(self.model).filter(self.model.trip_id == trip_id).all()
		}
		missing = [d for d in dict.fromkeys(dates) if d not in existing]
		created = self.create_many({"trip_id": trip_id, "date": d} for d in missing)
		for day in created:
			existing[day.date] = day.id
		self._log_operation("ensure_days", trip_id=trip_id, requested=len(dates), created=len(created))
		return existing
