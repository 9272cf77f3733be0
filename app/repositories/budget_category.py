from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.budget_category import BudgetCategory


class BudgetCategoryRepository(BaseRepository[BudgetCategory]):
	"""Repository for BudgetCategory entity operations."""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, BudgetCategory, correlation_id)
