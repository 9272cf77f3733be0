"""Web Push delivery."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Dict, Optional

from pywebpush import WebPushException, webpush

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushNotification:
	endpoint: str
	p256dh: str
	auth: str
	title: str
	body: str
	data: Dict[str, str] = field(default_factory=dict)


class PushDeliveryError(Exception):
	"""Push provider rejected or failed a delivery."""


class InvalidPushSubscriptionError(PushDeliveryError):
	"""Subscription endpoint is gone (404/410) and should be deleted."""


class PushSender:
	def send(self, notification: PushNotification) -> None:
		raise NotImplementedError


class WebPushSender(PushSender):
	"""`pywebpush` sender signing requests with the configured VAPID key."""

	def __init__(self, private_key: str, subject: str, timeout_seconds: float = 10.0):
		self.private_key = private_key
		self.subject = subject
		self.timeout_seconds = timeout_seconds

	def send(self, notification: PushNotification) -> None:
		payload = {"title": notification.title, "body": notification.body, "data": notification.data}
		subscription_info = {"endpoint": notification.endpoint, "keys": {"p256dh": notification.p256dh, "auth": notification.auth}}
		try:
			webpush(
				subscription_info=subscription_info,
				data=json.dumps(payload),
				vapid_private_key=self.private_key,
				vapid_claims={"sub": self.subject},
				timeout=self.timeout_seconds,
			)
		except WebPushException as exc:
			status_code = _status_code(exc)
			if status_code in (HTTPStatus.NOT_FOUND, HTTPStatus.GONE):
				raise InvalidPushSubscriptionError(f"Push subscription is invalid (status={status_code})") from exc
			raise PushDeliveryError(f"Push delivery failed (status={status_code or 'unknown'})") from exc


class NullPushSender(PushSender):
	"""Used when no VAPID keys are configured."""

	def send(self, notification: PushNotification) -> None:
		logger.debug("Push notifications disabled; dropping push endpoint_present=%s", bool(notification.endpoint))


def _status_code(exc: WebPushException) -> Optional[int]:
	response = getattr(exc, "response", None)
	status = getattr(response, "status_code", None)
	return status if isinstance(status, int) else None


def build_push_sender() -> PushSender:
	if settings.push_enabled:
		return WebPushSender(settings.VAPID_PRIVATE_KEY, settings.VAPID_SUBJECT, settings.PUSH_TIMEOUT_SECONDS)
	return NullPushSender()
