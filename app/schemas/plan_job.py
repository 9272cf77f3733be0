from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, validator


class JobStatus(str, Enum):
	PENDING = "pending"
	GENERATING = "generating"
	COMPLETED = "completed"
	FAILED = "failed"
	CANCELLED = "cancelled"

	@property
	def is_terminal(self) -> bool:
		return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class PlanPhase(str, Enum):
	STRUCTURE = "structure"
	ACTIVITIES = "activities"
	DONE = "done"


class PlanProgress(BaseModel):
	phase: PlanPhase
	current_day: int = 0
	total_days: int = 0
	current_date: Optional[str] = None
	trip_id: Optional[int] = None

	@validator('current_day', 'total_days')
	def validate_non_negative(cls, v: int) -> int:
		return max(0, v)


class GeneratePlanRequest(BaseModel):
	# Optional here so that missing values surface as 400, not 422
	context: Optional[Dict[str, Any]] = None
	messages: Optional[List[Any]] = None
	structure_json: Optional[Dict[str, Any]] = None


class GeneratePlanResponse(BaseModel):
	job_id: str
	status: JobStatus = JobStatus.PENDING


class PlanJobRead(BaseModel):
	id: str
	status: JobStatus
	trip_id: Optional[int] = None
	progress: Optional[PlanProgress] = None
	structure_json: Optional[Dict[str, Any]] = None
	credits_charged: int = Field(default=0, ge=0)
	error: Optional[str] = None
	completed_at: Optional[datetime] = None
	created_at: datetime
	updated_at: datetime

	class Config:
		from_attributes = True
