from __future__ import annotations

import asyncio
from typing import Optional, Dict, Any, List, Iterable, Tuple
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.observability import log_outbound_call_async
from app.services.base import BaseService
from app.schemas.place import PlaceResult

FIELD_MASK = "places.id,places.displayName,places.formattedAddress,places.location,places.googleMapsUri"


def fallback_map_url(name: str, lat: float, lng: float) -> str:
	"""Map link centred on approximate coordinates, with the name as search hint."""
	return f"https://www.google.com/maps/search/{quote(name)}/@{lat},{lng},15z"


def _coordinate(value: Any) -> Optional[float]:
	try:
		return None if value is None else float(value)
	except (TypeError, ValueError):
		return None


class PlaceService(BaseService):
	"""Google Places Text Search lookups with bounded-concurrency batching.

	Enrichment is advisory: lookups return None on any failure and the
	enrich_* helpers only fill fields when a match is found.
	"""

	def __init__(
		self,
		http_client: Optional[httpx.AsyncClient] = None,
		api_key: Optional[str] = None,
		concurrency: Optional[int] = None,
		correlation_id: Optional[str] = None,
	):
		super().__init__(correlation_id)
		self.http_client = http_client
		self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
		self.concurrency = max(1, concurrency or settings.PLACES_CONCURRENCY)

	async def lookup(self, query: str) -> Optional[PlaceResult]:
		"""Resolve a free-text place query to its best match, or None."""
		if not self.api_key or not query or not query.strip():
			return None

		async def _post(client: httpx.AsyncClient) -> httpx.Response:
			return await client.post(
				settings.PLACES_BASE_URL,
				headers={
					"Content-Type": "application/json",
					"X-Goog-Api-Key": self.api_key,
					"X-Goog-FieldMask": FIELD_MASK,
				},
				json={"textQuery": query, "maxResultCount": 1, "languageCode": settings.PLACES_LANGUAGE},
			)

		async def _call() -> httpx.Response:
			if self.http_client is not None:
				return await _post(self.http_client)
			async with httpx.AsyncClient(timeout=settings.PLACES_TIMEOUT_SECONDS) as client:
				return await _post(client)

		try:
			resp = await log_outbound_call_async("google_places", query, "places.searchText", self.correlation_id, _call)
			if resp.status_code != 200:
				self.log_operation("lookup_http_error", query=query, status_code=resp.status_code)
				return None
			return self._to_result(resp.json())
		except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
			self.log_operation("lookup_failed", query=query, error=str(e), error_type=type(e).__name__)
			return None

	def _to_result(self, payload: Dict[str, Any]) -> Optional[PlaceResult]:
		places = payload.get("places") or []
		if not places:
			return None
		place = places[0]
		location = place.get("location") or {}
		lat = _coordinate(location.get("latitude"))
		lng = _coordinate(location.get("longitude"))
		if lat is None or lng is None:
			return None
		place_id = place.get("id")
		map_url = place.get("googleMapsUri")
		if not map_url and place_id:
			map_url = f"https://www.google.com/maps/place/?q=place_id:{place_id}"
		return PlaceResult(
			place_id=place_id,
			latitude=lat,
			longitude=lng,
			formatted_address=place.get("formattedAddress"),
			map_url=map_url,
		)

	async def enrich_batch(self, items: Iterable[Tuple[str, str]], concurrency: Optional[int] = None) -> Dict[str, PlaceResult]:
		"""Look up (key, query) pairs, at most `concurrency` in flight at once.

		Keys are deduplicated before dispatch; chunks run one after another.
		Keys without a match are absent from the result.
		"""
		size = max(1, concurrency or self.concurrency)
		unique: Dict[str, str] = {}
		for key, query in items:
			if key and key not in unique:
				unique[key] = query
		pending = list(unique.items())

		results: Dict[str, PlaceResult] = {}
		for start in range(0, len(pending), size):
			chunk = pending[start:start + size]
			found = await asyncio.gather(*(self.lookup(query) for _, query in chunk))
			for (key, _), result in zip(chunk, found):
				if result is not None:
					results[key] = result
		self.log_operation("enrich_batch", requested=len(pending), found=len(results), concurrency=size)
		return results

	async def enrich_activities(self, activities: List[Dict[str, Any]], destination: Optional[str]) -> int:
		"""Per-day enrichment: mutate activities in place, querying "<location>, <destination>"."""
		queries = {}
		for activity in activities:
			name = (activity.get("location_name") or "").strip()
			if name:
				queries[id(activity)] = _qualified(name, destination)
		results = await self.enrich_batch((q, q) for q in queries.values())
		return sum(
			_apply_to_activity(activity, results.get(queries.get(id(activity))))
			for activity in activities
		)

	async def enrich_plan(self, plan: Dict[str, Any], destination: Optional[str]) -> int:
		"""Trip-level enrichment of stops and every day's activities.

		Activity queries are qualified by the stop whose arrival/departure
		window contains the activity's date, falling back to `destination`.
		"""
		stops = [s for s in plan.get("stops") or [] if isinstance(s, dict)]
		items: List[Tuple[str, str]] = []
		for stop in stops:
			name = (stop.get("name") or "").strip()
			if name:
				query = _qualified(name, destination)
				items.append((query, query))

		day_activities: List[Tuple[Dict[str, Any], str]] = []
		for day in plan.get("days") or []:
			if not isinstance(day, dict):
				continue
			place = active_stop_name(stops, day.get("date")) or destination
			for activity in day.get("activities") or []:
				if not isinstance(activity, dict):
					continue
				name = (activity.get("location_name") or "").strip()
				query = _qualified(name, place) if name else ""
				day_activities.append((activity, query))
				if query:
					items.append((query, query))

		results = await self.enrich_batch(items)

		enriched = 0
		for stop in stops:
			result = results.get(_qualified((stop.get("name") or "").strip(), destination))
			if result is not None:
				stop["lat"] = result.latitude
				stop["lng"] = result.longitude
				stop["address"] = result.formatted_address or stop.get("address")
				stop["place_id"] = result.place_id
				enriched += 1
		for activity, query in day_activities:
			enriched += _apply_to_activity(activity, results.get(query) if query else None)
		return enriched


def _qualified(name: str, context: Optional[str]) -> str:
	return f"{name}, {context}" if context else name


def active_stop_name(stops: List[Dict[str, Any]], day: Any) -> Optional[str]:
	"""Name of the stop whose [arrival_date, departure_date] contains `day`."""
	if not day:
		return None
	day_key = str(day)[:10]
	ordered = sorted(stops, key=lambda s: s.get("sort_order") if isinstance(s.get("sort_order"), int) else 0)
	for stop in ordered:
		arrival = str(stop.get("arrival_date") or "")[:10]
		departure = str(stop.get("departure_date") or "")[:10]
		if arrival and departure and arrival <= day_key <= departure:
			return stop.get("name")
	return None


def _apply_to_activity(activity: Dict[str, Any], result: Optional[PlaceResult]) -> int:
	category_data = activity.get("category_data")
	if not isinstance(category_data, dict):
		category_data = {}
		activity["category_data"] = category_data

	if result is not None:
		activity["location_lat"] = result.latitude
		activity["location_lng"] = result.longitude
		if result.formatted_address:
			activity["location_address"] = result.formatted_address
		if result.map_url:
			category_data["google_maps_url"] = result.map_url
		return 1

	lat = _coordinate(activity.get("location_lat"))
	lng = _coordinate(activity.get("location_lng"))
	name = activity.get("location_name") or activity.get("title")
	if lat is not None and lng is not None and name and not category_data.get("google_maps_url"):
		category_data["google_maps_url"] = fallback_map_url(name, lat, lng)
	return 0
