from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable, Optional, Any, TypeVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.background import BackgroundTask

from app.core.config import settings
from app.db.session import SessionLocal
from app.repositories.request_log import RequestLogRepository

T = TypeVar("T")


def generate_correlation_id(existing: Optional[str]) -> str:
	if existing and existing.strip():
		return existing.strip()
	return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Middleware to log inbound HTTP requests with correlation IDs."""

	async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
		if not settings.ENABLE_REQUEST_LOGGING:
			return await call_next(request)

		from random import random
		sampled_out = (settings.LOG_SAMPLE_RATE < 1.0) and (random() > float(settings.LOG_SAMPLE_RATE))

		correlation_id = generate_correlation_id(request.headers.get("X-Correlation-ID"))
		setattr(request.state, "correlation_id", correlation_id)

		start_ns = time.monotonic_ns()
		response = await call_next(request)
		duration_ms = int((time.monotonic_ns() - start_ns) / 1_000_000)

		response.headers["X-Correlation-ID"] = correlation_id
		if not sampled_out:
			payload = _build_inbound_payload(request, correlation_id, response.status_code, duration_ms)
			response.background = _chain_background(response.background, BackgroundTask(_write_log, "inbound", payload))
		return response


def _chain_background(existing: Optional[BackgroundTask], log_task: BackgroundTask) -> BackgroundTask:
	# Plan submissions already carry a background task; the log insert must not replace it
	if existing is None:
		return log_task

	async def _run_both() -> None:
		await existing()
		await log_task()

	return BackgroundTask(_run_both)


def route_template(raw_path: str, route_path: Optional[str]) -> Optional[str]:
	"""Full path template for a matched route.

	Routes included under a router prefix may report only their own path
	(`/active` for `/plan-jobs/active`); the missing leading segments are
	taken from the raw path when the remaining segments line up.
	"""
	if not route_path:
		return None
	raw_parts = raw_path.rstrip("/").split("/")
	route_parts = route_path.rstrip("/").split("/")
	extra = len(raw_parts) - len(route_parts)
	if extra <= 0:
		return route_path
	tail = raw_parts[extra + 1:]
	for raw, part in zip(tail, route_parts[1:]):
		if part != raw and not (part.startswith("{") and part.endswith("}")):
			return route_path
	return "/".join(raw_parts[:extra + 1]) + route_path


def _build_inbound_payload(request: Request, correlation_id: str, status_code: int, duration_ms: int) -> dict:
	# Route template and name may be unavailable for 404 or early errors
	path_template = None
	route_name = None
	route = request.scope.get("route")
	if route is not None:
		path_template = route_template(request.url.path, getattr(route, "path", None))
		route_name = getattr(request.scope.get("endpoint"), "__name__", None)

	# Client IP determination (basic)
	xff = request.headers.get("x-forwarded-for")
	client_ip = (xff.split(",")[0].strip() if xff else (request.client.host if request.client else None))

	auth_header = request.headers.get("authorization") or ""
	auth_type = "bearer" if auth_header.lower().startswith("bearer ") else "none"

	return {
		"correlation_id": correlation_id,
		"connection_type": "http",
		"method": request.method,
		"raw_path": request.url.path,
		"path_template": path_template or request.url.path,
		"route_name": route_name,
		"status_code": status_code,
		"duration_ms": duration_ms,
		"client_ip": client_ip,
		"user_agent": (request.headers.get("user-agent") or "")[:256],
		"auth_type": auth_type,
		"user_id": getattr(request.state, "user_id", None),
	}


def _write_log(direction: str, payload: dict) -> None:
	# Telemetry never fails the caller
	db = SessionLocal()
	try:
		repo = RequestLogRepository(db)
		if direction == "inbound":
			repo.insert_inbound(payload)
		else:
			repo.insert_outbound(payload)
	except Exception:
		db.rollback()
	finally:
		db.close()


async def log_outbound_call_async(
	provider: str,
	target: str,
	operation: str,
	correlation_id: Optional[str],
	call: Callable[[], Awaitable[T]],
) -> T:
	"""Await an outbound call and record its duration.

	Args:
		provider: External provider name (e.g., gemini, google_places, unsplash)
		target: Target entity (e.g., model name, search query)
		operation: Operation name
		correlation_id: Correlation ID for linkage (the plan job id for background work)
		call: Zero-argument coroutine factory performing the request

	Returns:
		Result of `await call()`
	"""
	if not settings.ENABLE_OUTBOUND_LOGGING:
		return await call()

	start_ns = time.monotonic_ns()
	error_code: Optional[str] = None
	try:
		return await call()
	except Exception as e:
		error_code = type(e).__name__
		raise
	finally:
		duration_ms = int((time.monotonic_ns() - start_ns) / 1_000_000)
		_write_log("outbound", {
			"correlation_id": correlation_id or str(uuid.uuid4()),
			"connection_type": "http",
			"provider": provider,
			"operation": operation,
			"target": target,
			"duration_ms": duration_ms,
			"error_code": error_code,
		})
