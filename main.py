# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.endpoints import plans, plan_jobs
from app.core.config import settings
from app.core.observability import RequestLoggingMiddleware
from app.db.session import SessionLocal
from app.repositories.plan_job import PlanJobRepository
from app.services.exceptions import ServiceError, create_error_response, get_http_status_for_error
from app.services.plan_job_services import PlanJobService
# Import all models to ensure relationships are properly resolved
from app.db import base  # This imports all models

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	# Jobs left active by a previous process can never finish
	db = SessionLocal()
	try:
		swept = PlanJobService(job_repo=PlanJobRepository(db)).sweep_stale_jobs(db)
		if swept:
			logger.warning("Failed %d stale plan job(s) at startup", swept)
	finally:
		db.close()
	yield


app = FastAPI(lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
	return JSONResponse(status_code=get_http_status_for_error(exc), content=create_error_response(exc))


app.include_router(plans.router)
app.include_router(plan_jobs.router, prefix="/plan-jobs")
