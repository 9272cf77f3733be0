"""Plan job repository: the persisted state machine behind plan generation."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.repositories.base import BaseRepository
from app.db.models.plan_job import PlanJob

TERMINAL_STATUSES = ("completed", "failed", "cancelled")
ACTIVE_STATUSES = ("pending", "generating")


class PlanJobRepository(BaseRepository[PlanJob]):
	"""Repository for PlanJob entity operations.

	Status writes are conditional UPDATE statements so that a terminal
	state written by another actor (cancellation, sweeper) is never
	overwritten by the executor.
	"""

	def __init__(self, db: Session, correlation_id: Optional[str] = None):
		super().__init__(db, PlanJob, correlation_id)

	def get_by_id_and_user(self, job_id: str, user_id: int) -> Optional[PlanJob]:
		"""Get job by ID ensuring ownership by user."""
		result = self.db.query(self.model).filter(
			self.model.id == job_id,
			self.model.user_id == user_id,
		).first()
		self._log_operation("get_by_id_and_user", job_id=job_id, user_id=user_id, found=result is not None)
		return result

	def get_status(self, job_id: str) -> Optional[str]:
		"""Read only the status column, straight from the database."""
		return self.db.query(self.model.status).filter(self.model.id == job_id).scalar()

	def get_active_for_user(self, user_id: int) -> Optional[PlanJob]:
		result = self.db.query(self.model).filter(
			self.model.user_id == user_id,
			self.model.status.in_(ACTIVE_STATUSES),
		).order_by(self.model.created_at.desc()).first()
		self._log_operation("get_active_for_user", user_id=user_id, found=result is not None)
		return result

	def list_pending(self, limit: int = 10) -> List[str]:
		"""Ids of pending jobs, oldest first."""
		rows = self.db.query(self.model.id).filter(
			self.model.status == "pending",
		).order_by(self.model.created_at.asc()).limit(limit).all()
		return [row[0] for row in rows]

	def update_fields(self, job_id: str, fields: Dict[str, Any]) -> bool:
		"""Patch arbitrary non-status fields and refresh the heartbeat."""
		values = dict(fields)
		values["heartbeat_at"] = datetime.now(timezone.utc)
		updated = self.db.query(self.model).filter(
			self.model.id == job_id,
		).update(values, synchronize_session=False)
		self._log_operation("update_fields", job_id=job_id, fields=list(fields.keys()), updated=updated)
		return updated > 0

	def transition(
		self,
		job_id: str,
		status: str,
		fields: Optional[Dict[str, Any]] = None,
		from_statuses: Optional[Iterable[str]] = None,
	) -> bool:
		"""Move the job to `status` unless it is already terminal.

		Args:
			job_id: Job ID
			status: Target status
			fields: Extra columns written in the same statement
			from_statuses: Restrict the transition to these current statuses

		Returns:
			True when a row was updated
		"""
		values = dict(fields or {})
		values["status"] = status
		values["heartbeat_at"] = datetime.now(timezone.utc)
		query = self.db.query(self.model).filter(
			self.model.id == job_id,
			self.model.status.notin_(TERMINAL_STATUSES),
		)
		if from_statuses is not None:
			query = query.filter(self.model.status.in_(tuple(from_statuses)))
		updated = query.update(values, synchronize_session=False)
		self._log_operation("transition", job_id=job_id, status=status, updated=updated)
		return updated > 0

	def claim(self, job_id: str) -> bool:
		"""Atomic pending -> generating; at most one caller wins."""
		return self.transition(job_id, "generating", from_statuses=("pending",))

	def fail_stale(self, cutoff: datetime, message: str, statuses: Iterable[str] = ACTIVE_STATUSES) -> int:
		"""Fail jobs in `statuses` whose heartbeat (or creation time) predates `cutoff`."""
		statuses = tuple(statuses)
		last_seen = func.coalesce(self.model.heartbeat_at, self.model.created_at)
		now = datetime.now(timezone.utc)
		updated = self.db.query(self.model).filter(
			self.model.status.in_(statuses),
			last_seen < cutoff,
		).update({"status": "failed", "error": message, "completed_at": now}, synchronize_session=False)
		self._log_operation("fail_stale", cutoff=cutoff.isoformat(), statuses=list(statuses), updated=updated)
		return updated
