from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from app.services.base import BaseService
from app.repositories.credit import CreditRepository, INSUFFICIENT_CREDITS


class CreditService(BaseService):
	"""Atomic deduct/refund of a user's AI credit balance.

	Each call is its own committed transaction so a charge is durable
	before the work it pays for starts.
	"""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(correlation_id)
		self.db = db
		self._set_repositories(credit_repo=CreditRepository(db, correlation_id))

	def deduct(self, user_id: int, amount: int) -> int:
		"""Return the new balance, or INSUFFICIENT_CREDITS."""
		balance = self.run_in_transaction(self.db, lambda: self.credit_repo.deduct(user_id, amount))
		self.log_operation("deduct", user_id=user_id, amount=amount, sufficient=balance != INSUFFICIENT_CREDITS)
		return balance

	def refund(self, user_id: int, amount: int) -> None:
		if amount <= 0:
			return
		self.run_in_transaction(self.db, lambda: self.credit_repo.refund(user_id, amount))
		self.log_operation("refund", user_id=user_id, amount=amount)

	def balance(self, user_id: int) -> Optional[int]:
		return self.credit_repo.get_balance(user_id)
