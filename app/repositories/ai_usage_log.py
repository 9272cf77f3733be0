from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.ai_usage_log import AiUsageLog


class AiUsageLogRepository(BaseRepository[AiUsageLog]):
	"""Repository for per-call completion model usage records."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, AiUsageLog, correlation_id)
