"""Service dependency providers for FastAPI dependency injection."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from typing import Optional

from app.api.dependencies.database import get_db
from app.services.plan_job_services import PlanJobService
from app.services.place_services import PlaceService
from app.services.rate_limit_services import RateLimitService
from app.repositories.plan_job import PlanJobRepository
from app.repositories.rate_limit import RateLimitRepository


def get_correlation_id(request: Request) -> Optional[str]:
	"""Extract or generate correlation ID for logging and tracing."""
	from app.core.observability import generate_correlation_id
	cid = getattr(request.state, "correlation_id", None)
	if not cid:
		cid = generate_correlation_id(request.headers.get("X-Correlation-ID"))
		setattr(request.state, "correlation_id", cid)
	return cid


# Repository Dependencies
def get_plan_job_repository(
	db: Session = Depends(get_db),
	correlation_id: Optional[str] = Depends(get_correlation_id)
) -> PlanJobRepository:
	"""Provide PlanJobRepository instance."""
	return PlanJobRepository(db=db, correlation_id=correlation_id)


def get_rate_limit_repository(
	db: Session = Depends(get_db),
	correlation_id: Optional[str] = Depends(get_correlation_id)
) -> RateLimitRepository:
	"""Provide RateLimitRepository instance."""
	return RateLimitRepository(db=db, correlation_id=correlation_id)


# Service Dependencies
def get_plan_job_service(
	job_repo: PlanJobRepository = Depends(get_plan_job_repository),
	correlation_id: Optional[str] = Depends(get_correlation_id)
) -> PlanJobService:
	"""Provide PlanJobService instance with required repository."""
	return PlanJobService(job_repo=job_repo, correlation_id=correlation_id)


def get_rate_limit_service(
	rate_repo: RateLimitRepository = Depends(get_rate_limit_repository),
	correlation_id: Optional[str] = Depends(get_correlation_id)
) -> RateLimitService:
	"""Provide RateLimitService instance for per-user submission limits."""
	return RateLimitService(rate_repo=rate_repo, correlation_id=correlation_id)


def get_place_service(
	correlation_id: Optional[str] = Depends(get_correlation_id)
) -> PlaceService:
	"""Provide PlaceService instance.

	Stateless apart from configuration; talks to Google Places directly.
	"""
	return PlaceService(correlation_id=correlation_id)
