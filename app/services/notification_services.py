from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Callable, Tuple

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.base import BaseService
from app.services.push_sender import (
	PushSender,
	PushNotification,
	PushDeliveryError,
	InvalidPushSubscriptionError,
	build_push_sender,
)
from app.repositories.user import UserRepository
from app.repositories.push_subscription import PushSubscriptionRepository
from app.repositories.notification_log import NotificationLogRepository

PLAN_READY = "plan_ready"


def compose_plan_ready(destination: Optional[str], trip_id: Optional[int]) -> Tuple[str, str, str]:
	"""Title, body and deep link for the plan-ready push."""
	if destination:
		title = f"Your trip to {destination} is ready"
		body = f"Your itinerary for {destination} has been generated. Tap to explore your days."
	else:
		title = "Your trip plan is ready"
		body = "Your itinerary has been generated. Tap to explore your days."
	url = f"{settings.SITE_URL.rstrip('/')}/trip/{trip_id}" if trip_id else settings.SITE_URL
	return title, body, url


class NotificationService(BaseService):
	"""Best-effort, deduplicated push notice when a plan completes."""

	def __init__(
		self,
		session_factory: Callable[[], Session] = SessionLocal,
		push_sender: Optional[PushSender] = None,
		correlation_id: Optional[str] = None,
	):
		super().__init__(correlation_id)
		self.session_factory = session_factory
		self.push_sender = push_sender or build_push_sender()

	async def notify_completion(self, user_id: int, job_id: str, trip_id: Optional[int], destination: Optional[str]) -> bool:
		"""Send the plan-ready push. Never raises; returns True when something was delivered."""
		try:
			return await self._notify(user_id, job_id, trip_id, destination)
		except Exception as e:
			self.log_failure("Plan-ready notification failed", e, user_id=user_id, job_id=job_id)
			return False

	async def _notify(self, user_id: int, job_id: str, trip_id: Optional[int], destination: Optional[str]) -> bool:
		db = self.session_factory()
		try:
			user = UserRepository(db, self.correlation_id).get_by_id(user_id)
			if not user or not (user.notifications_enabled and user.notification_push_enabled and user.notification_push_plan_ready):
				self.log_operation("notify_skipped", user_id=user_id, reason="disabled")
				return False

			log_repo = NotificationLogRepository(db, self.correlation_id)
			since = datetime.now(timezone.utc) - timedelta(hours=settings.NOTIFICATION_DEDUP_HOURS)
			if log_repo.sent_since(user_id, PLAN_READY, since):
				self.log_operation("notify_skipped", user_id=user_id, reason="recently_sent")
				return False

			sub_repo = PushSubscriptionRepository(db, self.correlation_id)
			title, body, url = compose_plan_ready(destination, trip_id)
			data = {"url": url, "job_id": job_id, "trip_id": str(trip_id or ""), "category": PLAN_READY}

			delivered = 0
			for subscription in sub_repo.list_for_user(user_id):
				notification = PushNotification(
					endpoint=subscription.endpoint,
					p256dh=subscription.p256dh,
					auth=subscription.auth,
					title=title,
					body=body,
					data=data,
				)
				try:
					await run_in_threadpool(self.push_sender.send, notification)
					delivered += 1
				except InvalidPushSubscriptionError:
					self.run_in_transaction(db, lambda: sub_repo.delete_by_endpoint(subscription.endpoint))
				except PushDeliveryError as e:
					self.log_failure("Push delivery failed", e, user_id=user_id)

			if delivered:
				self.run_in_transaction(db, lambda: log_repo.create({
					"user_id": user_id,
					"category": PLAN_READY,
					"job_id": job_id,
					"title": title,
					"body": body,
					"delivered_count": delivered,
				}))
			self.log_operation("notify_completion", user_id=user_id, job_id=job_id, delivered=delivered)
			return delivered > 0
		finally:
			db.close()
