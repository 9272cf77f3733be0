from fastapi import Depends, HTTPException, WebSocket, WebSocketDisconnect
import asyncio
from app.api.router import create_router
from sqlalchemy.orm import Session
from app.api.dependencies.auth import get_current_user
from app.api.dependencies.database import get_db
from app.api.dependencies.services import get_plan_job_service
from app.core.security import decode_access_token
from app.services.exceptions import ServiceError
from app.services.plan_job_services import PlanJobService
from app.schemas.plan_job import PlanJobRead
from app.db.models.user import User
from app.repositories.plan_job import PlanJobRepository, TERMINAL_STATUSES


router = create_router(name="plan_jobs", tags=["plan-jobs"])


@router.get("/active", response_model=PlanJobRead)
def get_active_job(
	current_user: User = Depends(get_current_user),
	job_service: PlanJobService = Depends(get_plan_job_service),
):
	try:
		return job_service.get_active(current_user.id)
	except ServiceError as e:
		raise HTTPException(status_code=e.http_status, detail=e.user_message)


@router.get("/{job_id}", response_model=PlanJobRead)
def get_job_status(
	job_id: str,
	current_user: User = Depends(get_current_user),
	job_service: PlanJobService = Depends(get_plan_job_service),
):
	try:
		return job_service.get_owned(job_id, current_user.id)
	except ServiceError as e:
		raise HTTPException(status_code=e.http_status, detail=e.user_message)


@router.post("/{job_id}/cancel", response_model=PlanJobRead)
def cancel_job(
	job_id: str,
	db: Session = Depends(get_db),
	current_user: User = Depends(get_current_user),
	job_service: PlanJobService = Depends(get_plan_job_service),
):
	try:
		return job_service.cancel(job_id, current_user.id, db)
	except ServiceError as e:
		raise HTTPException(status_code=e.http_status, detail=e.user_message)


def _snapshot(job) -> dict:
	return PlanJobRead.model_validate(job).model_dump(mode="json")


@router.websocket("/ws/{job_id}")
async def job_status_ws(
	websocket: WebSocket,
	job_id: str,
	db: Session = Depends(get_db)
):
	try:
		await websocket.accept()
		# Simple token auth: query param ?token=<jwt> or Authorization: Bearer <jwt>
		token = websocket.query_params.get("token") or websocket.headers.get("authorization") or ""
		if token.lower().startswith("bearer "):
			token = token[7:]
		user_id = decode_access_token(token) if token else None
		if user_id is None:
			await websocket.send_json({"event": "unauthorized"})
			await websocket.close(code=4401)
			return
		job_repo = PlanJobRepository(db=db)
		# We do a lightweight poll loop; replace with pub/sub if available
		last_payload = None
		while True:
			# Ensure session doesn't serve stale cached objects
			db.expire_all()
			job = job_repo.get_by_id_and_user(job_id, user_id)
			if not job:
				await websocket.send_json({"event": "not_found"})
				await websocket.close()
				return
			payload = _snapshot(job)
			if payload != last_payload:
				await websocket.send_json({"event": "update", "data": payload})
				last_payload = payload
			# Exit when terminal state
			if job.status in TERMINAL_STATUSES:
				await websocket.close()
				return
			await asyncio.sleep(1.0)
	except WebSocketDisconnect:
		return
