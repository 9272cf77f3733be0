"""Fixed-window request counters shared through the database."""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.rate_limit_window import RateLimitWindow


class RateLimitRepository(BaseRepository[RateLimitWindow]):
	"""Repository for RateLimitWindow counters."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, RateLimitWindow, correlation_id)

	def _increment(self, key: str, window_index: int) -> Optional[int]:
		stmt = (
			update(RateLimitWindow)
			.where(RateLimitWindow.key == key, RateLimitWindow.window_index == window_index)
			.values(count=RateLimitWindow.count + 1)
			.returning(RateLimitWindow.count)
			.execution_options(synchronize_session=False)
		)
		return self.db.execute(stmt).scalar_one_or_none()

	def hit(self, key: str, window_index: int) -> int:
		"""Count one request in the window and return the window total.

		The caller owns the transaction; a concurrent first insert for the
		same window is resolved by retrying the increment.
		"""
		count = self._increment(key, window_index)
		if count is not None:
			return count
		try:
			with self.db.begin_nested():
				self.db.add(RateLimitWindow(key=key, window_index=window_index, count=1))
			count = 1
		except IntegrityError:
			count = self._increment(key, window_index) or 1
		self._log_operation("hit", key=key, window_index=window_index, count=count)
		return count

	def purge_before(self, window_index: int) -> int:
		return self.db.query(self.model).filter(
			self.model.window_index < window_index,
		).delete(synchronize_session=False)
