"""Turning model output into plan documents and storage rows."""

import json
import re
from datetime import date
from typing import Any, Dict, List, Optional

from app.gemini.prompts import ALLOWED_CATEGORIES, BUDGET_COLORS
from app.services.exceptions import PlanParseError

DEFAULT_BUDGET_COLOR = BUDGET_COLORS["Other"]

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")
_TIME = re.compile(r"^(\d{1,2}):(\d{2})")


def parse_plan_json(text: Optional[str], phase: str = "structure") -> Dict[str, Any]:
	"""Parse a model response as a JSON object.

	Tolerates Markdown code fences and prose around the outermost
	`{...}` span. Raises PlanParseError otherwise.
	"""
	cleaned = (text or "").strip()
	cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", cleaned))

	start = cleaned.find("{")
	end = cleaned.rfind("}")
	if start == -1 or end <= start:
		raise PlanParseError(phase, "no JSON object found")

	try:
		document = json.loads(cleaned[start:end + 1])
	except json.JSONDecodeError as e:
		raise PlanParseError(phase, f"invalid JSON: {e.msg}") from e

	if not isinstance(document, dict):
		raise PlanParseError(phase, "top-level value is not an object")
	return document


def extract_day_activities(document: Dict[str, Any], day: str) -> List[Dict[str, Any]]:
	"""Pick the activity list for `day` from an activities response.

	Accepts `{"days": [{"date", "activities"}]}` or a bare `{"activities": [...]}`.
	"""
	days = document.get("days")
	if isinstance(days, list) and days:
		entries = [d for d in days if isinstance(d, dict)]
		match = next((d for d in entries if str(d.get("date") or "")[:10] == day), None)
		if match is None and len(entries) == 1:
			match = entries[0]
		activities = match.get("activities") if match else None
	else:
		activities = document.get("activities")

	if not isinstance(activities, list):
		raise PlanParseError("activities", f"no activities for {day}")
	return [a for a in activities if isinstance(a, dict)]


def _to_float(value: Any) -> Optional[float]:
	if value is None or isinstance(value, bool):
		return None
	try:
		return float(value)
	except (TypeError, ValueError):
		return None


def _to_time(value: Any) -> Optional[str]:
	if not isinstance(value, str):
		return None
	match = _TIME.match(value.strip())
	if not match:
		return None
	hours, minutes = int(match.group(1)), int(match.group(2))
	if hours > 23 or minutes > 59:
		return None
	return f"{hours:02d}:{minutes:02d}"


def _to_date(value: Any) -> Optional[date]:
	if isinstance(value, date):
		return value
	if not isinstance(value, str):
		return None
	try:
		return date.fromisoformat(value.strip()[:10])
	except ValueError:
		return None


def _to_sort_order(value: Any, default: int) -> int:
	if isinstance(value, bool):
		return default
	if isinstance(value, int):
		return value
	if isinstance(value, float) and value.is_integer():
		return int(value)
	return default


def map_activity(raw: Dict[str, Any], index: int, trip_id: int, day_id: int) -> Optional[Dict[str, Any]]:
	"""Storage row for one generated activity, or None when it has no title.

	Unknown categories become "other". Hotels carry check-in/out dates and
	never times; every other category carries times and never those dates.
	"""
	title = str(raw.get("title") or "").strip()
	if not title:
		return None

	category = raw.get("category")
	if category not in ALLOWED_CATEGORIES:
		category = "other"
	is_hotel = category == "hotel"

	category_data = raw.get("category_data")
	return {
		"trip_id": trip_id,
		"day_id": day_id,
		"title": title,
		"description": raw.get("description") or None,
		"category": category,
		"start_time": None if is_hotel else _to_time(raw.get("start_time")),
		"end_time": None if is_hotel else _to_time(raw.get("end_time")),
		"location_name": raw.get("location_name") or None,
		"location_lat": _to_float(raw.get("location_lat")),
		"location_lng": _to_float(raw.get("location_lng")),
		"location_address": raw.get("location_address") or None,
		"cost": _to_float(raw.get("cost")),
		"sort_order": _to_sort_order(raw.get("sort_order"), index),
		"check_in_date": _to_date(raw.get("check_in_date")) if is_hotel else None,
		"check_out_date": _to_date(raw.get("check_out_date")) if is_hotel else None,
		"category_data": dict(category_data) if isinstance(category_data, dict) else {},
	}


def budget_color(name: str, color: Optional[str]) -> str:
	if color and re.fullmatch(r"#[0-9A-Fa-f]{6}", color):
		return color
	return BUDGET_COLORS.get(name, DEFAULT_BUDGET_COLOR)
