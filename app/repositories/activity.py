from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.activity import Activity


class ActivityRepository(BaseRepository[Activity]):
	"""Repository for Activity entity operations."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, Activity, correlation_id)

