from datetime import date, timedelta

import pytest

from app.db.models.activity import Activity
from app.db.models.ai_usage_log import AiUsageLog
from app.db.models.budget_category import BudgetCategory
from app.db.models.plan_job import PlanJob
from app.db.models.trip import Trip
from app.db.models.trip_day import TripDay
from app.db.models.trip_stop import TripStop
from app.repositories.plan_job import PlanJobRepository
from app.services.cover_image_services import CoverImageService
from app.services.exceptions import CompletionModelError, InsufficientCreditsError, MissingTripError
from app.services.notification_services import NotificationService
from app.services.plan_generation import PlanGenerationService
from app.services.plan_job_services import PlanJobService
from fakes import FakeModelClient, FakePlaceService, RecordingPushSender, activities_document, make_activity

LISBON_CONTEXT = {"destination": "Lisbon", "startDate": "2025-06-01", "endDate": "2025-06-03", "currency": "EUR"}


def lisbon_structure():
    return {
        "trip": {
            "name": "Lisbon Getaway",
            "destination": "Lisbon",
            "start_date": "2025-06-01",
            "end_date": "2025-06-03",
            "currency": "EUR",
        },
        "stops": [{
            "name": "Lisbon",
            "type": "overnight",
            "nights": 2,
            "arrival_date": "2025-06-01",
            "departure_date": "2025-06-03",
            "sort_order": 0,
        }],
        "days": [{"date": "2025-06-01"}, {"date": "2025-06-02"}],
        "budget_categories": [
            {"name": "Food", "color": "#FFD93D", "budget_limit": 300},
            {"name": "Transport", "budget_limit": 80},
        ],
    }


def structure_with_days(count, start=date(2025, 7, 1)):
    return {
        "trip": {"name": "Long trip", "destination": "Portugal"},
        "stops": [],
        "days": [{"date": (start + timedelta(days=i)).isoformat()} for i in range(count)],
        "budget_categories": [],
    }


def lisbon_days():
    return {
        "2025-06-01": activities_document("2025-06-01", [
            make_activity("Hotel Avenida Palace", "Hotel Avenida Palace", category="hotel", check_in_date="2025-06-01", check_out_date="2025-06-03"),
            make_activity("Castelo de São Jorge", "Castelo de São Jorge"),
            make_activity("Dinner in Alfama", "Taberna da Rua das Flores", category="food"),
        ]),
        "2025-06-02": activities_document("2025-06-02", [
            make_activity("Belém Tower", "Torre de Belém"),
            make_activity("Pastéis de Belém", "Pastéis de Belém", category="food"),
        ]),
    }


def build_service(job_id, session_factory, model, places=None, push_sender=None):
    return PlanGenerationService(
        job_id,
        session_factory=session_factory,
        model_client=model,
        place_service=places or FakePlaceService(),
        notification_service=NotificationService(session_factory, push_sender=push_sender or RecordingPushSender()),
        cover_image_service=CoverImageService(session_factory, access_key=""),
    )


def load_job(session_factory, job_id):
    with session_factory() as db:
        return db.get(PlanJob, job_id)


def count(session_factory, model, **filters):
    with session_factory() as db:
        return db.query(model).filter_by(**filters).count()


@pytest.mark.anyio
async def test_lisbon_end_to_end(session_factory, make_user, make_job, balance_of):
    make_user(credits=10)
    job_id = make_job(context=LISBON_CONTEXT)
    model = FakeModelClient(structure=lisbon_structure(), days=lisbon_days())

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "completed"
    assert job.error is None
    assert job.credits_charged == 4
    assert job.completed_at is not None
    assert job.trip_id is not None
    assert job.progress["phase"] == "done"
    assert job.progress["current_day"] == 2
    assert job.progress["total_days"] == 2
    assert job.structure_json["trip"]["name"] == "Lisbon Getaway"
    assert balance_of() == 6

    assert count(session_factory, Trip) == 1
    assert count(session_factory, TripDay, trip_id=job.trip_id) == 2
    assert count(session_factory, BudgetCategory, trip_id=job.trip_id) == 2
    with session_factory() as db:
        stops = db.query(TripStop).filter_by(trip_id=job.trip_id).all()
        assert len(stops) == 1
        assert stops[0].lat is not None and stops[0].lng is not None

        activities = db.query(Activity).filter_by(trip_id=job.trip_id).all()
        assert len(activities) == 5
        assert all(a.location_lat is not None and a.location_lng is not None for a in activities)
        hotel = next(a for a in activities if a.category == "hotel")
        assert hotel.start_time is None and hotel.end_time is None
        assert hotel.check_in_date == date(2025, 6, 1)

        trip = db.get(Trip, job.trip_id)
        assert trip.name == "Lisbon Getaway"
        assert trip.currency == "EUR"

        usage = db.query(AiUsageLog).filter_by(job_id=job_id).all()
        assert sorted(u.task_type for u in usage) == ["plan_activities", "plan_activities", "plan_structure"]
        assert sum(u.credits_charged for u in usage) == 4

    assert model.days_called() == ["2025-06-01", "2025-06-02"]


@pytest.mark.anyio
@pytest.mark.parametrize("days, activity_charges", [(1, 1), (7, 1), (8, 2), (14, 2), (15, 3)])
async def test_activity_charges_follow_seven_day_blocks(session_factory, make_user, make_job, balance_of, days, activity_charges):
    make_user(credits=100)
    job_id = make_job(context={"destination": "Portugal"})
    model = FakeModelClient(structure=structure_with_days(days))

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "completed"
    assert job.credits_charged == 3 + activity_charges
    assert balance_of() == 100 - job.credits_charged


@pytest.mark.anyio
async def test_failed_days_are_skipped_without_stopping_the_job(session_factory, make_user, make_job):
    make_user(credits=10)
    job_id = make_job(context={"destination": "Portugal"})
    model = FakeModelClient(
        structure=structure_with_days(4),
        days={
            "2025-07-01": activities_document("2025-07-01", [make_activity("Day one", "Place A")]),
            "2025-07-02": CompletionModelError("HTTP 503: overloaded"),
            "2025-07-03": "Sorry, I cannot help with that.",
            "2025-07-04": activities_document("2025-07-04", [make_activity("Day four", "Place B")]),
        },
    )

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "completed"
    assert job.progress["current_day"] == 4
    assert job.credits_charged == 4
    with session_factory() as db:
        titles = sorted(a.title for a in db.query(Activity).all())
    assert titles == ["Day four", "Day one"]


@pytest.mark.anyio
async def test_cancellation_keeps_work_done_so_far(session_factory, make_user, make_job, balance_of):
    make_user(credits=10)
    job_id = make_job(context={"destination": "Portugal"})

    def cancel_then_answer(day):
        with session_factory() as db:
            PlanJobService(job_repo=PlanJobRepository(db)).cancel(job_id, 1, db)
        return activities_document(day, [make_activity("Second day", "Place B")])

    model = FakeModelClient(
        structure=structure_with_days(4),
        days={
            "2025-07-01": activities_document("2025-07-01", [make_activity("First day", "Place A")]),
            "2025-07-02": cancel_then_answer,
        },
    )

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "cancelled"
    assert job.completed_at is not None
    assert job.credits_charged == 4
    assert balance_of() == 6
    assert model.days_called() == ["2025-07-01", "2025-07-02"]
    with session_factory() as db:
        titles = sorted(a.title for a in db.query(Activity).all())
    assert titles == ["First day", "Second day"]


@pytest.mark.anyio
@pytest.mark.parametrize("structure_answer", [
    CompletionModelError("timed out after 120s"),
    RuntimeError("unexpected SDK failure"),
    "I could not produce JSON this time",
    {"days": [{"date": "not a date"}]},
])
async def test_structure_failures_refund_the_charge(session_factory, make_user, make_job, balance_of, structure_answer):
    make_user(credits=10)
    job_id = make_job(context=LISBON_CONTEXT)
    model = FakeModelClient(structure=structure_answer)

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "failed"
    assert job.error
    assert job.credits_charged == 0
    assert balance_of() == 10
    assert count(session_factory, Trip) == 0


@pytest.mark.anyio
async def test_insufficient_credits_before_structure(session_factory, make_user, make_job, balance_of):
    make_user(credits=2)
    job_id = make_job(context=LISBON_CONTEXT)
    model = FakeModelClient(structure=lisbon_structure(), days=lisbon_days())

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "failed"
    assert job.error == InsufficientCreditsError(1, 3).user_message
    assert job.credits_charged == 0
    assert balance_of() == 2
    assert model.calls == []


@pytest.mark.anyio
async def test_insufficient_credits_for_activities_leaves_partial_plan(session_factory, make_user, make_job, balance_of):
    make_user(credits=3)
    job_id = make_job(context=LISBON_CONTEXT)
    model = FakeModelClient(structure=lisbon_structure(), days=lisbon_days())

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "failed"
    assert job.error == InsufficientCreditsError(1, 1, partial=True).user_message
    assert job.credits_charged == 3
    assert job.progress["current_day"] == 0
    assert balance_of() == 0
    assert count(session_factory, Trip) == 1
    assert count(session_factory, Activity) == 0
    assert model.days_called() == []


@pytest.mark.anyio
async def test_unknown_trip_in_enhance_mode_fails(session_factory, make_user, make_job):
    make_user(credits=10)
    job_id = make_job(context={**LISBON_CONTEXT, "tripId": 999})
    model = FakeModelClient(structure=lisbon_structure(), days=lisbon_days())

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "failed"
    assert job.error == MissingTripError(job_id).user_message
    assert count(session_factory, Trip) == 0


@pytest.mark.anyio
async def test_enhance_mode_reuses_trip_and_days(session_factory, make_user, make_job):
    make_user(credits=10)
    with session_factory() as db:
        trip = Trip(user_id=1, name="My Lisbon", destination="Lisbon", currency="EUR")
        db.add(trip)
        db.flush()
        day = TripDay(trip_id=trip.id, date=date(2025, 6, 1))
        db.add(day)
        db.commit()
        trip_id, day_id = trip.id, day.id

    job_id = make_job(context={**LISBON_CONTEXT, "tripId": trip_id}, trip_id=trip_id)
    model = FakeModelClient(structure=lisbon_structure(), days=lisbon_days())

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "completed"
    assert job.trip_id == trip_id
    assert count(session_factory, Trip) == 1
    assert count(session_factory, TripDay, trip_id=trip_id) == 2
    assert count(session_factory, Activity, day_id=day_id) == 3
    assert "Do NOT create a trip object" in model.calls[0]["system_prompt"]


@pytest.mark.anyio
async def test_precomputed_structure_skips_structure_call(session_factory, make_user, make_job, balance_of):
    make_user(credits=10)
    job_id = make_job(context=LISBON_CONTEXT, structure_json=lisbon_structure())
    model = FakeModelClient(days=lisbon_days())

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    assert job.status == "completed"
    assert job.credits_charged == 1
    assert balance_of() == 9
    assert [c["operation"] for c in model.calls] == ["plan_activities", "plan_activities"]


@pytest.mark.anyio
async def test_progress_never_moves_backwards(session_factory, make_user, make_job):
    make_user(credits=10)
    job_id = make_job(context={"destination": "Portugal"})
    seen = []

    def record_progress(day):
        seen.append(load_job(session_factory, job_id).progress["current_day"])
        return activities_document(day, [make_activity(f"Visit on {day}", f"Place {day}")])

    model = FakeModelClient(structure=structure_with_days(5), default_day=record_progress)

    await build_service(job_id, session_factory, model).run()

    job = load_job(session_factory, job_id)
    seen.append(job.progress["current_day"])
    assert seen == sorted(seen)
    assert seen == [0, 1, 2, 3, 4, 5]


@pytest.mark.anyio
async def test_job_already_claimed_is_left_alone(session_factory, make_user, make_job, balance_of):
    make_user(credits=10)
    job_id = make_job(context=LISBON_CONTEXT, status="generating")
    model = FakeModelClient(structure=lisbon_structure(), days=lisbon_days())

    await build_service(job_id, session_factory, model).run()

    assert load_job(session_factory, job_id).status == "generating"
    assert model.calls == []
    assert balance_of() == 10


@pytest.mark.anyio
async def test_completion_sends_plan_ready_push(session_factory, make_user, make_job):
    from app.db.models.push_subscription import PushSubscription

    make_user(credits=10)
    with session_factory() as db:
        db.add(PushSubscription(user_id=1, endpoint="https://push.example/abc", p256dh="key", auth="secret"))
        db.commit()
    job_id = make_job(context=LISBON_CONTEXT)
    sender = RecordingPushSender()
    model = FakeModelClient(structure=lisbon_structure(), days=lisbon_days())

    await build_service(job_id, session_factory, model, push_sender=sender).run()

    job = load_job(session_factory, job_id)
    assert len(sender.sent) == 1
    assert "Lisbon" in sender.sent[0].title
    assert sender.sent[0].data["url"].endswith(f"/trip/{job.trip_id}")
