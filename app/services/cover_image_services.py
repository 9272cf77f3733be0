from __future__ import annotations

from typing import Optional, Dict, Any, Callable

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.observability import log_outbound_call_async
from app.db.session import SessionLocal
from app.services.base import BaseService
from app.repositories.trip import TripRepository


class CoverImageService(BaseService):
	"""Unsplash cover photo for newly created trips. Advisory only."""

	def __init__(
		self,
		session_factory: Callable[[], Session] = SessionLocal,
		http_client: Optional[httpx.AsyncClient] = None,
		access_key: Optional[str] = None,
		correlation_id: Optional[str] = None,
	):
		super().__init__(correlation_id)
		self.session_factory = session_factory
		self.http_client = http_client
		self.access_key = access_key if access_key is not None else settings.UNSPLASH_ACCESS_KEY

	async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
		headers = {"Authorization": f"Client-ID {self.access_key}", "Accept-Version": "v1"}
		if self.http_client is not None:
			return await self.http_client.get(url, params=params, headers=headers)
		async with httpx.AsyncClient(timeout=settings.UNSPLASH_TIMEOUT_SECONDS) as client:
			return await client.get(url, params=params, headers=headers)

	async def search_photo(self, query: str) -> Optional[Dict[str, str]]:
		"""First landscape photo for `query` as {url, attribution, download_location}."""
		url = f"{settings.UNSPLASH_BASE_URL}/search/photos"
		params = {"query": query, "per_page": 1, "orientation": "landscape"}
		try:
			resp = await log_outbound_call_async("unsplash", query, "search_photos", self.correlation_id, lambda: self._get(url, params))
			if resp.status_code != 200:
				self.log_operation("search_photo_http_error", status_code=resp.status_code)
				return None
			results = resp.json().get("results") or []
		except (httpx.HTTPError, ValueError) as e:
			self.log_operation("search_photo_failed", error=str(e))
			return None
		if not results:
			return None
		photo = results[0]
		photographer = (photo.get("user") or {}).get("name") or "Unknown"
		return {
			"url": (photo.get("urls") or {}).get("regular"),
			"attribution": f"Photo by {photographer} on Unsplash",
			"download_location": (photo.get("links") or {}).get("download_location"),
		}

	async def apply_cover(self, trip_id: int, destination: Optional[str]) -> Optional[str]:
		"""Store a cover image on the trip; returns the image URL when one was set."""
		if not self.access_key or not destination:
			return None
		photo = await self.search_photo(destination)
		if not photo or not photo.get("url"):
			return None

		db = self.session_factory()
		try:
			repo = TripRepository(db, self.correlation_id)
			self.run_in_transaction(db, lambda: repo.update(trip_id, {
				"cover_image_url": photo["url"],
				"cover_image_attribution": photo["attribution"],
			}))
		finally:
			db.close()

		if photo.get("download_location"):
			# Unsplash API guidelines require a download ping for used photos
			try:
				await self._get(photo["download_location"])
			except httpx.HTTPError as e:
				self.log_operation("download_ping_failed", error=str(e))
		self.log_operation("apply_cover", trip_id=trip_id)
		return photo["url"]
