"""Credit ledger: atomic per-user balance mutations."""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.user import User

INSUFFICIENT_CREDITS = -1


class CreditRepository(BaseRepository[User]):
	"""Balance operations on `users.ai_credits`.

	Every mutation is a single conditional UPDATE; the balance is never
	read and then written from Python.
	"""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, User, correlation_id)

	def deduct(self, user_id: int, amount: int) -> int:
		"""Subtract `amount` when the balance covers it.

		Returns:
			The new balance, or INSUFFICIENT_CREDITS when nothing was deducted
		"""
		stmt = (
			update(User)
			.where(User.id == user_id, User.ai_credits >= amount)
			.values(ai_credits=User.ai_credits - amount)
			.returning(User.ai_credits)
			.execution_options(synchronize_session=False)
		)
		balance = self.db.execute(stmt).scalar_one_or_none()
		self._log_operation("deduct", user_id=user_id, amount=amount, balance=balance)
		return INSUFFICIENT_CREDITS if balance is None else balance

	def refund(self, user_id: int, amount: int) -> Optional[int]:
		"""Add `amount` back; no-op for non-positive amounts."""
		if amount <= 0:
			return None
		stmt = (
			update(User)
			.where(User.id == user_id)
			.values(ai_credits=User.ai_credits + amount)
			.returning(User.ai_credits)
			.execution_options(synchronize_session=False)
		)
		balance = self.db.execute(stmt).scalar_one_or_none()
		self._log_operation("refund", user_id=user_id, amount=amount, balance=balance)
		return balance

	def get_balance(self, user_id: int) -> Optional[int]:
		return self.db.query(User.ai_credits).filter(User.id == user_id).scalar()
