from typing import Optional

from google import genai
from google.genai import types

from app.core.config import settings
from app.services.exceptions import ModelNotConfiguredError

_client: Optional[genai.Client] = None


def is_configured() -> bool:
	return bool(settings.GOOGLE_GEMINI_API_KEY)


def get_client() -> genai.Client:
	"""Shared Gemini client, created on first use."""
	global _client
	if _client is None:
		if not is_configured():
			raise ModelNotConfiguredError()
		_client = genai.Client(
			api_key=settings.GOOGLE_GEMINI_API_KEY,
			# milliseconds
			http_options=types.HttpOptions(timeout=int(settings.MODEL_TIMEOUT_SECONDS * 1000)),
		)
	return _client
