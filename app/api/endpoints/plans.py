from fastapi import Depends, HTTPException, BackgroundTasks
from sqlalchemy.orm import Session

from app.api.router import create_router
from app.api.dependencies.auth import get_current_user
from app.api.dependencies.database import get_db
from app.api.dependencies.services import get_plan_job_service, get_rate_limit_service, get_place_service
from app.core.config import settings
from app.db.models.user import User
from app.schemas.plan_job import GeneratePlanRequest, GeneratePlanResponse
from app.schemas.place import EnrichPlanRequest, EnrichPlanResponse
from app.services.exceptions import ServiceError
from app.services.plan_generation import run_plan_job
from app.services.plan_job_services import PlanJobService
from app.services.place_services import PlaceService
from app.services.rate_limit_services import RateLimitService


router = create_router(name="plans", tags=["plans"])


@router.post("/generate-plan", response_model=GeneratePlanResponse)
def generate_plan(
	payload: GeneratePlanRequest,
	background_tasks: BackgroundTasks,
	db: Session = Depends(get_db),
	current_user: User = Depends(get_current_user),
	job_service: PlanJobService = Depends(get_plan_job_service),
	rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
	"""Accept a plan request and return its job id before any generation work."""
	def launch(job_id: str) -> None:
		background_tasks.add_task(run_plan_job, job_id)

	try:
		rate_limiter.check(f"generate-plan:{current_user.id}", db)
		job = job_service.submit(
			current_user.id,
			payload.context,
			payload.messages,
			payload.structure_json,
			db,
			launch=launch if settings.PLAN_JOB_EXECUTION == "inline" else None,
		)
	except ServiceError as e:
		raise HTTPException(status_code=e.http_status, detail=e.user_message)
	return GeneratePlanResponse(job_id=job.id)


@router.post("/plans/enrich", response_model=EnrichPlanResponse)
async def enrich_plan(
	payload: EnrichPlanRequest,
	current_user: User = Depends(get_current_user),
	place_service: PlaceService = Depends(get_place_service),
):
	plan = dict(payload.plan)
	enriched = await place_service.enrich_plan(plan, payload.destination)
	return EnrichPlanResponse(plan=plan, enriched=enriched)
