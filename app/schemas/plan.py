"""Typed views over the planning context and the structure document."""

from __future__ import annotations

import datetime
from typing import Optional, Any, List, Dict
from pydantic import BaseModel, ConfigDict, Field, validator
from pydantic.alias_generators import to_camel


class PlanContext(BaseModel):
	"""Conversation-derived planning inputs.

	Clients send camelCase keys (`tripId`, `startDate`); snake_case is
	accepted too. Unknown keys are kept and reach the prompts untouched.
	"""
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

	trip_id: Optional[int] = None
	destination: Optional[str] = None
	destination_lat: Optional[float] = None
	destination_lng: Optional[float] = None
	start_date: Optional[str] = None
	end_date: Optional[str] = None
	currency: Optional[str] = None
	preferences: Optional[Any] = None
	existing_data: Optional[Any] = None
	user_memory: Optional[Any] = None
	today_date: Optional[str] = None
	travelers_count: Optional[int] = None
	group_type: Optional[str] = None
	trip_type: Optional[str] = None
	weather: Optional[Any] = None

	@property
	def is_enhance(self) -> bool:
		return self.trip_id is not None


def _lenient_date(v: Any) -> Optional[datetime.date]:
	if v is None or isinstance(v, datetime.date):
		return v
	try:
		return datetime.date.fromisoformat(str(v).strip()[:10])
	except ValueError:
		return None


class TripDraft(BaseModel):
	model_config = ConfigDict(extra="ignore")

	name: Optional[str] = None
	destination: Optional[str] = None
	destination_lat: Optional[float] = None
	destination_lng: Optional[float] = None
	start_date: Optional[datetime.date] = None
	end_date: Optional[datetime.date] = None
	currency: Optional[str] = None
	notes: Optional[str] = None

	@validator('start_date', 'end_date', pre=True)
	def parse_dates(cls, v: Any) -> Optional[datetime.date]:
		return _lenient_date(v)


class StopDraft(BaseModel):
	model_config = ConfigDict(extra="ignore")

	name: str
	lat: Optional[float] = None
	lng: Optional[float] = None
	address: Optional[str] = None
	place_id: Optional[str] = None
	type: str = "overnight"
	nights: Optional[int] = None
	arrival_date: Optional[datetime.date] = None
	departure_date: Optional[datetime.date] = None
	sort_order: Optional[int] = None

	@validator('arrival_date', 'departure_date', pre=True)
	def parse_dates(cls, v: Any) -> Optional[datetime.date]:
		return _lenient_date(v)

	@validator('type', pre=True)
	def validate_type(cls, v: Any) -> str:
		return v if v in ("overnight", "waypoint") else "overnight"

	@property
	def has_coordinates(self) -> bool:
		return self.lat is not None and self.lng is not None


class DayDraft(BaseModel):
	model_config = ConfigDict(extra="ignore")

	date: datetime.date


class BudgetCategoryDraft(BaseModel):
	model_config = ConfigDict(extra="ignore")

	name: str
	color: Optional[str] = None
	budget_limit: Optional[float] = None


class PlanStructure(BaseModel):
	"""Skeleton produced by the structure phase: trip, stops, days, budget."""
	model_config = ConfigDict(extra="ignore")

	trip: TripDraft = Field(default_factory=TripDraft)
	stops: List[StopDraft] = Field(default_factory=list)
	days: List[DayDraft] = Field(default_factory=list)
	budget_categories: List[BudgetCategoryDraft] = Field(default_factory=list)

	def dates(self) -> List[datetime.date]:
		return [day.date for day in self.days]

	@classmethod
	def from_document(cls, document: Dict[str, Any]) -> "PlanStructure":
		return cls.model_validate(document)
