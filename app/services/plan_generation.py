"""Background execution of a plan job: structure, skeleton, per-day activities."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable, Set

import pydantic
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.gemini import prompts
from app.gemini.services import CompletionModelClient, CompletionResult
from app.services.base import BaseService
from app.services.exceptions import (
	CompletionModelError,
	InsufficientCreditsError,
	MissingTripError,
	PlanParseError,
	ServiceError,
)
from app.services.credit_services import CreditService
from app.services.place_services import PlaceService, active_stop_name
from app.services.notification_services import NotificationService
from app.services.cover_image_services import CoverImageService
from app.services.plan_mapping import parse_plan_json, extract_day_activities, map_activity, budget_color
from app.repositories.credit import INSUFFICIENT_CREDITS
from app.repositories.plan_job import PlanJobRepository
from app.repositories.trip import TripRepository
from app.repositories.trip_day import TripDayRepository
from app.repositories.trip_stop import TripStopRepository
from app.repositories.budget_category import BudgetCategoryRepository
from app.repositories.activity import ActivityRepository
from app.repositories.ai_usage_log import AiUsageLogRepository
from app.schemas.plan import PlanContext, PlanStructure
from app.schemas.plan_job import JobStatus, PlanPhase

logger = logging.getLogger(__name__)

# Strong references to fire-and-forget side tasks
_side_tasks: Set[asyncio.Task] = set()


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _log_task_error(task: asyncio.Task) -> None:
	_side_tasks.discard(task)
	if task.cancelled():
		return
	exc = task.exception()
	if exc is not None:
		logger.error("Background side task failed: %s", exc, exc_info=exc)


class PlanGenerationService(BaseService):
	"""Drives one plan job from pending to completed, failed or cancelled.

	Owns its own session; every write is committed immediately so pollers
	see progress as it happens. Status writes are guarded and never leave
	a terminal state.
	"""

	def __init__(
		self,
		job_id: str,
		session_factory: Callable[[], Session] = SessionLocal,
		model_client: Optional[CompletionModelClient] = None,
		place_service: Optional[PlaceService] = None,
		notification_service: Optional[NotificationService] = None,
		cover_image_service: Optional[CoverImageService] = None,
	):
		super().__init__(correlation_id=job_id)
		self.job_id = job_id
		self.session_factory = session_factory
		self.model_client = model_client or CompletionModelClient(correlation_id=job_id)
		self.place_service = place_service or PlaceService(correlation_id=job_id)
		self.notification_service = notification_service or NotificationService(session_factory, correlation_id=job_id)
		self.cover_image_service = cover_image_service or CoverImageService(session_factory, correlation_id=job_id)

	async def run(self) -> None:
		db = self.session_factory()
		self._bind(db)
		try:
			await self._execute(db)
		except ServiceError as e:
			db.rollback()
			self.log_failure("Plan generation failed", e, error_code=e.error_code)
			self._fail(db, e.user_message)
		except Exception as e:
			db.rollback()
			self.log_failure("Plan generation crashed", e)
			self._fail(db, str(e) or type(e).__name__)
		finally:
			db.close()

	def _bind(self, db: Session) -> None:
		cid = self.correlation_id
		self._set_repositories(
			job_repo=PlanJobRepository(db, cid),
			trip_repo=TripRepository(db, cid),
			day_repo=TripDayRepository(db, cid),
			stop_repo=TripStopRepository(db, cid),
			budget_repo=BudgetCategoryRepository(db, cid),
			activity_repo=ActivityRepository(db, cid),
			usage_repo=AiUsageLogRepository(db, cid),
		)
		self.credits = CreditService(db, cid)

	# ------------------------------------------------------------------
	# Job store helpers
	# ------------------------------------------------------------------

	def _patch(self, db: Session, **fields: Any) -> None:
		self.run_in_transaction(db, lambda: self.job_repo.update_fields(self.job_id, fields))

	def _transition(self, db: Session, status: JobStatus, **fields: Any) -> bool:
		return self.run_in_transaction(db, lambda: self.job_repo.transition(self.job_id, status.value, fields))

	def _fail(self, db: Session, message: str) -> None:
		failed = self._transition(db, JobStatus.FAILED, error=message, completed_at=_now())
		self.log_operation("job_failed", job_id=self.job_id, recorded=failed, error_message=message)

	def _record_usage(self, db: Session, user_id: int, trip_id: Optional[int], task_type: str, credits: int, result: CompletionResult) -> None:
		self.run_in_transaction(db, lambda: self.usage_repo.create({
			"user_id": user_id,
			"trip_id": trip_id,
			"job_id": self.job_id,
			"task_type": task_type,
			"credits_charged": credits,
			"model": result.model,
			"input_tokens": result.input_tokens,
			"output_tokens": result.output_tokens,
			"duration_ms": result.duration_ms,
		}))

	# ------------------------------------------------------------------
	# Phases
	# ------------------------------------------------------------------

	async def _execute(self, db: Session) -> None:
		job = self.job_repo.get_by_id(self.job_id)
		if job is None:
			self.log_operation("job_missing", job_id=self.job_id)
			return

		# Phase 0: only one executor wins the pending -> generating claim
		if not self.run_in_transaction(db, lambda: self.job_repo.claim(self.job_id)):
			self.log_operation("claim_lost", job_id=self.job_id)
			return

		user_id = job.user_id
		context = PlanContext.model_validate(job.context or {})
		credits_charged = job.credits_charged or 0

		structure, credits_charged = await self._structure_phase(db, user_id, context, job.structure_json, credits_charged)
		total_days = len(structure.days)

		trip_id, destination, day_ids = await self._skeleton_phase(db, user_id, context, structure, job.trip_id)
		progress = {
			"phase": PlanPhase.ACTIVITIES.value,
			"current_day": 0,
			"total_days": total_days,
			"trip_id": trip_id,
		}
		self._patch(db, trip_id=trip_id, progress=progress)

		if not context.is_enhance:
			self._launch_cover(trip_id, destination)

		credits_charged = await self._activities_phase(db, user_id, context, structure, trip_id, destination, day_ids, credits_charged)
		if credits_charged is None:
			return

		# Phase 4
		completed = self._transition(
			db,
			JobStatus.COMPLETED,
			credits_charged=credits_charged,
			completed_at=_now(),
			progress={**progress, "phase": PlanPhase.DONE.value, "current_day": total_days},
		)
		if not completed:
			# Cancelled after the last day was written
			self._patch(db, credits_charged=credits_charged, completed_at=_now())
			self.log_operation("completion_preempted", job_id=self.job_id)
			return
		self.log_operation("job_completed", job_id=self.job_id, trip_id=trip_id, credits_charged=credits_charged)
		await self.notification_service.notify_completion(user_id, self.job_id, trip_id, destination)

	async def _structure_phase(
		self,
		db: Session,
		user_id: int,
		context: PlanContext,
		precomputed: Optional[Dict[str, Any]],
		credits_charged: int,
	):
		"""Phase 1: charge, call the model, parse and persist the skeleton document."""
		if precomputed is not None:
			structure = self._validate_structure(precomputed)
			self._patch(db, progress=self._structure_progress(structure))
			return structure, credits_charged

		cost = settings.STRUCTURE_CREDIT_COST
		if self.credits.deduct(user_id, cost) == INSUFFICIENT_CREDITS:
			raise InsufficientCreditsError(user_id, cost, correlation_id=self.correlation_id)
		credits_charged += cost
		self._patch(db, credits_charged=credits_charged)

		try:
			result = await self.model_client.complete(
				prompts.create_structure_prompt(context),
				prompts.create_structure_request(),
				settings.STRUCTURE_MAX_TOKENS,
				operation="plan_structure",
			)
			self._record_usage(db, user_id, context.trip_id, "plan_structure", cost, result)
			document = parse_plan_json(result.text, phase="structure")
			structure = self._validate_structure(document)
		except Exception:
			# No structure was stored for this charge
			self.credits.refund(user_id, cost)
			credits_charged -= cost
			self._patch(db, credits_charged=credits_charged)
			raise

		self._patch(db, structure_json=document, progress=self._structure_progress(structure))
		return structure, credits_charged

	def _validate_structure(self, document: Dict[str, Any]) -> PlanStructure:
		try:
			return PlanStructure.from_document(document)
		except pydantic.ValidationError as e:
			raise PlanParseError("structure", f"unexpected shape: {e.error_count()} error(s)", self.correlation_id) from e

	@staticmethod
	def _structure_progress(structure: PlanStructure) -> Dict[str, Any]:
		return {"phase": PlanPhase.STRUCTURE.value, "current_day": 0, "total_days": len(structure.days)}

	async def _skeleton_phase(
		self,
		db: Session,
		user_id: int,
		context: PlanContext,
		structure: PlanStructure,
		job_trip_id: Optional[int],
	):
		"""Phase 2: trip, days, stops and budget categories. Returns (trip_id, destination, day_ids)."""
		destination = context.destination or structure.trip.destination
		currency = context.currency or structure.trip.currency or "EUR"

		trip_id = job_trip_id or context.trip_id
		if trip_id is not None:
			if self.trip_repo.get_by_id_and_user(trip_id, user_id) is None:
				raise MissingTripError(self.job_id, self.correlation_id)
		else:
			trip_id = self.run_in_transaction(db, lambda: self._create_trip(user_id, context, structure, destination, currency))
		if trip_id is None:
			raise MissingTripError(self.job_id, self.correlation_id)

		day_ids = self.run_in_transaction(db, lambda: self.day_repo.ensure_days(trip_id, structure.dates()))

		missing = [s for s in structure.stops if not s.has_coordinates]
		found = await self.place_service.enrich_batch(
			(s.name, f"{s.name}, {destination}" if destination else s.name) for s in missing
		)
		for stop in missing:
			place = found.get(stop.name)
			if place is not None:
				stop.lat = place.latitude
				stop.lng = place.longitude
				stop.address = place.formatted_address or stop.address
				stop.place_id = place.place_id

		def op():
			self.stop_repo.create_many({
				"trip_id": trip_id,
				"name": stop.name,
				"lat": stop.lat,
				"lng": stop.lng,
				"address": stop.address,
				"place_id": stop.place_id,
				"type": stop.type,
				"nights": stop.nights,
				"arrival_date": stop.arrival_date,
				"departure_date": stop.departure_date,
				"sort_order": stop.sort_order if stop.sort_order is not None else index,
			} for index, stop in enumerate(structure.stops))
			self.budget_repo.create_many({
				"trip_id": trip_id,
				"name": category.name,
				"color": budget_color(category.name, category.color),
				"budget_limit": category.budget_limit,
			} for category in structure.budget_categories)
		self.run_in_transaction(db, op)

		self.log_operation(
			"skeleton_persisted",
			trip_id=trip_id,
			stops=len(structure.stops),
			stops_enriched=len(found),
			budget_categories=len(structure.budget_categories),
		)
		return trip_id, destination, day_ids

	def _create_trip(self, user_id: int, context: PlanContext, structure: PlanStructure, destination: Optional[str], currency: str) -> int:
		draft = structure.trip
		dates = structure.dates()
		trip = self.trip_repo.create({
			"user_id": user_id,
			"name": draft.name or (f"Trip to {destination}" if destination else "New trip"),
			"destination": destination,
			"destination_lat": context.destination_lat if context.destination_lat is not None else draft.destination_lat,
			"destination_lng": context.destination_lng if context.destination_lng is not None else draft.destination_lng,
			"start_date": draft.start_date or (min(dates) if dates else None),
			"end_date": draft.end_date or (max(dates) if dates else None),
			"currency": currency,
			"notes": draft.notes,
		})
		return trip.id

	def _launch_cover(self, trip_id: int, destination: Optional[str]) -> None:
		task = asyncio.create_task(self.cover_image_service.apply_cover(trip_id, destination))
		_side_tasks.add(task)
		task.add_done_callback(_log_task_error)

	async def _activities_phase(
		self,
		db: Session,
		user_id: int,
		context: PlanContext,
		structure: PlanStructure,
		trip_id: int,
		destination: Optional[str],
		day_ids: Dict[Any, int],
		credits_charged: int,
	) -> Optional[int]:
		"""Phase 3: one model call per day. Returns credits charged, or None when the job stopped early."""
		total_days = len(structure.days)
		stops = [s.model_dump(mode="json") for s in structure.stops]

		def advance(index: int, day: str) -> None:
			self._patch(db, progress={
				"phase": PlanPhase.ACTIVITIES.value,
				"current_day": index + 1,
				"total_days": total_days,
				"current_date": day,
				"trip_id": trip_id,
			})

		for index, draft in enumerate(structure.days):
			day = draft.date.isoformat()

			status = self.job_repo.get_status(self.job_id)
			if status == JobStatus.CANCELLED.value:
				self._patch(db, credits_charged=credits_charged, completed_at=_now())
				self.log_operation("job_cancelled", job_id=self.job_id, day_index=index, credits_charged=credits_charged)
				return None
			if status != JobStatus.GENERATING.value:
				self.log_operation("job_no_longer_active", job_id=self.job_id, status=status)
				return None

			charge = 0
			if index % settings.ACTIVITY_CREDIT_BLOCK_DAYS == 0:
				charge = settings.ACTIVITY_CREDIT_COST
				if self.credits.deduct(user_id, charge) == INSUFFICIENT_CREDITS:
					error = InsufficientCreditsError(user_id, charge, partial=True, correlation_id=self.correlation_id)
					self._transition(
						db,
						JobStatus.FAILED,
						error=error.user_message,
						completed_at=_now(),
						credits_charged=credits_charged,
						progress={
							"phase": PlanPhase.ACTIVITIES.value,
							"current_day": index,
							"total_days": total_days,
							"current_date": day,
							"trip_id": trip_id,
						},
					)
					self.log_operation("job_out_of_credits", job_id=self.job_id, day_index=index)
					return None
				credits_charged += charge
				self._patch(db, credits_charged=credits_charged)

			stop_name = active_stop_name(stops, day)
			try:
				result = await self.model_client.complete(
					prompts.create_activities_prompt(context, day, stop_name),
					prompts.create_activities_request(day),
					settings.ACTIVITIES_MAX_TOKENS,
					operation="plan_activities",
				)
			except CompletionModelError as e:
				self.log_failure("Activities call failed, skipping day", e, day=day)
				advance(index, day)
				continue
			self._record_usage(db, user_id, trip_id, "plan_activities", charge, result)

			try:
				activities = extract_day_activities(parse_plan_json(result.text, phase="activities"), day)
			except PlanParseError as e:
				self.log_failure("Activities response unreadable, skipping day", e, day=day)
				advance(index, day)
				continue

			await self.place_service.enrich_activities(activities, destination)

			day_id = day_ids.get(draft.date)
			rows = [
				row for row in (map_activity(raw, i, trip_id, day_id) for i, raw in enumerate(activities))
				if row is not None
			]
			self.run_in_transaction(db, lambda: self.activity_repo.create_many(rows))
			self.log_operation("day_persisted", day=day, activities=len(rows))
			advance(index, day)

		return credits_charged


async def run_plan_job(job_id: str) -> None:
	"""Entry point for BackgroundTasks and the worker loop."""
	await PlanGenerationService(job_id).run()
