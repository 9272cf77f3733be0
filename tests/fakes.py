"""Hand-written doubles for the model, place lookup and push delivery."""

import asyncio
import json
import re

from app.gemini.services import CompletionResult
from app.schemas.place import PlaceResult
from app.services.place_services import PlaceService
from app.services.push_sender import PushSender

_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def activities_document(day, activities):
    return {"days": [{"date": day, "activities": activities}]}


def make_activity(title, location_name=None, category="sightseeing", **fields):
    activity = {
        "title": title,
        "category": category,
        "start_time": "10:00",
        "end_time": "11:30",
        "location_name": location_name,
        "cost": 12,
    }
    activity.update(fields)
    return activity


class FakeModelClient:
    """Scripted completion model.

    `structure` answers the structure call; `days` maps a date to the
    activities answer. Answers may be a dict, raw text, an exception to
    raise, or a callable taking the date and returning one of those.
    """

    def __init__(self, structure=None, days=None, default_day=None):
        self.structure = structure
        self.days = days or {}
        self.default_day = default_day
        self.calls = []

    async def complete(self, system_prompt, user_prompt, max_tokens, operation="generate_content"):
        day = None
        if operation == "plan_structure":
            answer = self.structure
        else:
            match = _DATE.search(user_prompt)
            day = match.group(0) if match else None
            answer = self.days.get(day, self.default_day)
        self.calls.append({"operation": operation, "day": day, "system_prompt": system_prompt})

        if callable(answer):
            answer = answer(day)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            answer = activities_document(day, [])
        text = answer if isinstance(answer, str) else json.dumps(answer)
        return CompletionResult(text=text, model="fake-model", input_tokens=100, output_tokens=200, duration_ms=5)

    def days_called(self):
        return [c["day"] for c in self.calls if c["operation"] == "plan_activities"]


class FakePlaceService(PlaceService):
    """Resolves every query (or only `known` ones) without network access."""

    def __init__(self, known=None, delay=0.0, concurrency=5):
        super().__init__(api_key="test-key", concurrency=concurrency)
        self.known = known
        self.delay = delay
        self.queries = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def lookup(self, query):
        self.queries.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.known is not None and query not in self.known:
                return None
            n = len(self.queries)
            return PlaceResult(
                place_id=f"place-{n}",
                latitude=38.70 + n / 1000,
                longitude=-9.14 - n / 1000,
                formatted_address=f"{query}, Portugal",
                map_url=f"https://maps.google.com/?cid={n}",
            )
        finally:
            self.in_flight -= 1


class RecordingPushSender(PushSender):
    def __init__(self, errors=None):
        self.sent = []
        self.errors = errors or {}

    def send(self, notification):
        error = self.errors.get(notification.endpoint)
        if error is not None:
            raise error
        self.sent.append(notification)
