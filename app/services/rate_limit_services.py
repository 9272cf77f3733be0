from __future__ import annotations

import time
from typing import Optional, Callable

from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.base import BaseService
from app.services.exceptions import RateLimitExceededError
from app.repositories.rate_limit import RateLimitRepository


class RateLimitService(BaseService):
	"""Fixed-window request limiter backed by a shared table."""

	def __init__(
		self,
		rate_repo: RateLimitRepository,
		correlation_id: Optional[str] = None,
		max_requests: Optional[int] = None,
		window_seconds: Optional[int] = None,
		clock: Callable[[], float] = time.time,
	):
		super().__init__(correlation_id)
		self._set_repositories(rate_repo=rate_repo)
		self.max_requests = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
		self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
		self.clock = clock

	def check(self, key: str, db: Session) -> int:
		"""Count a request for `key`; raise RateLimitExceededError past the limit."""
		window_index = int(self.clock()) // self.window_seconds

		def op():
			count = self.rate_repo.hit(key, window_index)
			if count == 1:
				# First hit of a new window: drop windows that can no longer matter
				self.rate_repo.purge_before(window_index - 1)
			return count
		count = self.run_in_transaction(db, op)

		if count > self.max_requests:
			self.log_operation("rate_limited", key=key, count=count, limit=self.max_requests)
			raise RateLimitExceededError(key, self.max_requests, self.window_seconds, self.correlation_id)
		return count
