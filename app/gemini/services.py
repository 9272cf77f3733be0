import asyncio
import random
import time
import logging
from dataclasses import dataclass
from typing import Optional, Any

import httpx
from google.genai import errors, types

from app.core.config import settings
from app.core.observability import log_outbound_call_async
from app.services.exceptions import CompletionModelError
from .client import get_client

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


@dataclass
class CompletionResult:
	text: str
	model: str
	input_tokens: Optional[int] = None
	output_tokens: Optional[int] = None
	duration_ms: int = 0


class CompletionModelClient:
	"""Gemini text completion with a fixed system prompt per call.

	Returns raw text; callers parse it. Any transport, HTTP or timeout
	failure surfaces as CompletionModelError after retries on quota (429)
	and server-side (5xx) responses.
	"""

	def __init__(
		self,
		client: Any = None,
		model: Optional[str] = None,
		timeout_seconds: Optional[float] = None,
		max_retries: Optional[int] = None,
		correlation_id: Optional[str] = None,
	):
		self._client = client
		self.model = model or settings.GEMINI_MODEL
		self.timeout_seconds = timeout_seconds or settings.MODEL_TIMEOUT_SECONDS
		self.max_retries = max(1, max_retries or settings.MODEL_MAX_RETRIES)
		self.correlation_id = correlation_id

	@property
	def client(self):
		if self._client is None:
			self._client = get_client()
		return self._client

	async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int, operation: str = "generate_content") -> CompletionResult:
		config = types.GenerateContentConfig(
			system_instruction=system_prompt,
			response_mime_type="application/json",
			max_output_tokens=max_tokens,
			temperature=settings.STRUCTURED_TEMPERATURE,
		)

		async def _call():
			return await asyncio.wait_for(
				self.client.aio.models.generate_content(model=self.model, contents=user_prompt, config=config),
				timeout=self.timeout_seconds,
			)

		start = time.monotonic()
		for attempt in range(self.max_retries):
			try:
				response = await log_outbound_call_async("gemini", self.model, operation, self.correlation_id, _call)
				return self._to_result(response, int((time.monotonic() - start) * 1000))

			except errors.APIError as e:
				if e.code in RETRYABLE_STATUS and attempt + 1 < self.max_retries:
					# 5xx overloaded or flaky, 429 quota
					wait = (2 ** attempt) + random.random()
					logger.warning(
						f"[Gemini] {e.code} on {operation}. Retrying in {wait:.1f}s... ({attempt + 1}/{self.max_retries})",
						extra={"correlation_id": self.correlation_id},
					)
					await asyncio.sleep(wait)
					continue
				raise CompletionModelError(f"HTTP {e.code}: {e.message}", self.model, self.correlation_id) from e

			except asyncio.TimeoutError as e:
				raise CompletionModelError(f"timed out after {self.timeout_seconds:.0f}s", self.model, self.correlation_id) from e

			except httpx.HTTPError as e:
				raise CompletionModelError(f"transport error: {e}", self.model, self.correlation_id) from e

		raise CompletionModelError("max retries reached, model still unavailable", self.model, self.correlation_id)

	def _to_result(self, response: Any, duration_ms: int) -> CompletionResult:
		usage = getattr(response, "usage_metadata", None)
		return CompletionResult(
			text=response.text or "",
			model=self.model,
			input_tokens=getattr(usage, "prompt_token_count", None),
			output_tokens=getattr(usage, "candidates_token_count", None),
			duration_ms=duration_ms,
		)
