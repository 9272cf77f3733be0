"""Standalone executor for plan jobs.

Run with `python -m app.worker` and set PLAN_JOB_EXECUTION=worker on the API
so submissions only persist pending rows. Several workers may run at once;
the pending -> generating claim decides which one executes a job.
"""

import asyncio
import logging

from app.core.config import settings
from app.db.session import SessionLocal
from app.repositories.plan_job import PlanJobRepository
from app.services.plan_generation import run_plan_job
from app.services.plan_job_services import PlanJobService
from app.db import base  # noqa: F401

logger = logging.getLogger("PlanJobWorker")


def _poll_pending(batch_size: int) -> list:
	db = SessionLocal()
	try:
		PlanJobService(job_repo=PlanJobRepository(db)).sweep_stale_jobs(db)
		return PlanJobRepository(db).list_pending(batch_size)
	finally:
		db.close()


async def drain_once(batch_size: int = 10) -> int:
	"""Run every currently pending job once; returns how many were picked up."""
	job_ids = _poll_pending(batch_size)
	for job_id in job_ids:
		await run_plan_job(job_id)
	return len(job_ids)


async def run_forever() -> None:
	logger.info("Plan job worker started (poll every %ss)", settings.WORKER_POLL_SECONDS)
	while True:
		try:
			picked = await drain_once()
		except Exception:
			logger.exception("Plan job poll failed")
			picked = 0
		if not picked:
			await asyncio.sleep(settings.WORKER_POLL_SECONDS)


if __name__ == "__main__":
	logging.basicConfig(level=settings.LOG_LEVEL)
	asyncio.run(run_forever())
