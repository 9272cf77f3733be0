from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Callable

import pydantic
from sqlalchemy.orm import Session

from app.core.config import settings
from app.gemini.client import is_configured
from app.services.base import BaseService
from app.services.exceptions import (
	MissingParametersError,
	ModelNotConfiguredError,
	PlanJobNotFoundError,
	ValidationError,
)
from app.repositories.plan_job import PlanJobRepository
from app.db.models.plan_job import PlanJob
from app.schemas.plan import PlanContext
from app.schemas.plan_job import JobStatus

STALE_JOB_ERROR = "Plan generation was interrupted. Please try again."
CANCELLED_BEFORE_START_ERROR = "Plan generation was cancelled before it started."


class PlanJobService(BaseService):
	"""Submission and the read/cancel surface of plan jobs."""

	def __init__(self, job_repo: PlanJobRepository, correlation_id: Optional[str] = None):
		super().__init__(correlation_id)
		self._set_repositories(job_repo=job_repo)

	def submit(
		self,
		user_id: int,
		context: Optional[Dict[str, Any]],
		messages: Optional[List[Any]],
		structure_json: Optional[Dict[str, Any]],
		db: Session,
		launch: Optional[Callable[[str], None]] = None,
	) -> PlanJob:
		"""Persist one pending job and hand its id to `launch`.

		`launch` is None when a worker process drains pending jobs.
		"""
		missing = [name for name, value in (("context", context), ("messages", messages)) if not value]
		if missing:
			raise MissingParametersError(missing, self.correlation_id)
		if not is_configured():
			raise ModelNotConfiguredError(self.correlation_id)
		try:
			plan_context = PlanContext.model_validate(context)
		except pydantic.ValidationError as e:
			raise ValidationError("context", "has invalid fields", self.correlation_id, [
				{"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]} for err in e.errors()
			]) from e

		def op():
			return self.job_repo.create({
				"user_id": user_id,
				"trip_id": plan_context.trip_id,
				"status": JobStatus.PENDING.value,
				"context": context,
				"messages": messages,
				"structure_json": structure_json,
				"progress": None,
				"credits_charged": 0,
			})
		job = self.run_in_transaction(db, op)
		self.log_operation("submit", job_id=job.id, user_id=user_id, mode="enhance" if plan_context.is_enhance else "create")

		if launch is not None:
			launch(job.id)
		return job

	def get_owned(self, job_id: str, user_id: int) -> PlanJob:
		job = self.job_repo.get_by_id_and_user(job_id, user_id)
		if not job:
			raise PlanJobNotFoundError(job_id, user_id, self.correlation_id)
		return job

	def get_active(self, user_id: int) -> PlanJob:
		job = self.job_repo.get_active_for_user(user_id)
		if not job:
			raise PlanJobNotFoundError("active", user_id, self.correlation_id)
		return job

	def cancel(self, job_id: str, user_id: int, db: Session) -> PlanJob:
		"""Request cooperative cancellation; terminal jobs are returned unchanged.

		A running job becomes cancelled and the executor stops before its
		next day. A job that has not been claimed yet is failed instead, so
		pending only ever leaves through generating or failed.
		"""
		job = self.get_owned(job_id, user_id)

		def op():
			now = datetime.now(timezone.utc)
			if self.job_repo.transition(
				job_id,
				JobStatus.FAILED.value,
				{"completed_at": now, "error": CANCELLED_BEFORE_START_ERROR},
				from_statuses=(JobStatus.PENDING.value,),
			):
				return JobStatus.FAILED.value
			if self.job_repo.transition(
				job_id,
				JobStatus.CANCELLED.value,
				{"completed_at": now},
				from_statuses=(JobStatus.GENERATING.value,),
			):
				return JobStatus.CANCELLED.value
			return None
		outcome = self.run_in_transaction(db, op)
		self.log_operation("cancel", job_id=job_id, user_id=user_id, outcome=outcome)
		db.refresh(job)
		return job

	def sweep_stale_jobs(self, db: Session, lease_seconds: Optional[int] = None) -> int:
		"""Fail jobs whose heartbeat is older than the lease.

		In worker mode pending rows are the queue and may wait longer than
		the lease, so only generating jobs are swept there.
		"""
		lease = lease_seconds if lease_seconds is not None else settings.JOB_LEASE_SECONDS
		cutoff = datetime.now(timezone.utc) - timedelta(seconds=lease)
		if settings.PLAN_JOB_EXECUTION == "worker":
			statuses = (JobStatus.GENERATING.value,)
		else:
			statuses = (JobStatus.PENDING.value, JobStatus.GENERATING.value)
		swept = self.run_in_transaction(db, lambda: self.job_repo.fail_stale(cutoff, STALE_JOB_ERROR, statuses))
		if swept:
			self.log_operation("sweep_stale_jobs", swept=swept, lease_seconds=lease, statuses=list(statuses))
		return swept
