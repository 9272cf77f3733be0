from datetime import datetime, timedelta, timezone

import pytest

from app.db.models.notification_log import NotificationLog
from app.db.models.push_subscription import PushSubscription
from app.services.notification_services import NotificationService, PLAN_READY, compose_plan_ready
from app.services.push_sender import InvalidPushSubscriptionError, PushDeliveryError
from fakes import RecordingPushSender


def _subscribe(session_factory, endpoint, user_id=1):
    with session_factory() as db:
        db.add(PushSubscription(user_id=user_id, endpoint=endpoint, p256dh="p256dh-key", auth="auth-secret"))
        db.commit()


def _logs(session_factory):
    with session_factory() as db:
        return db.query(NotificationLog).all()


def test_compose_plan_ready_links_to_trip(monkeypatch):
    from app.core.config import settings
    monkeypatch.setattr(settings, "SITE_URL", "https://app.example/")
    title, body, url = compose_plan_ready("Lisbon", 7)
    assert "Lisbon" in title
    assert "Lisbon" in body
    assert url == "https://app.example/trip/7"


@pytest.mark.anyio
async def test_delivers_and_records_once(session_factory, make_user):
    make_user()
    _subscribe(session_factory, "https://push.example/a")
    _subscribe(session_factory, "https://push.example/b")
    sender = RecordingPushSender()
    service = NotificationService(session_factory, push_sender=sender)

    assert await service.notify_completion(1, "job-1", 3, "Lisbon") is True

    assert len(sender.sent) == 2
    logs = _logs(session_factory)
    assert len(logs) == 1
    assert logs[0].category == PLAN_READY
    assert logs[0].delivered_count == 2


@pytest.mark.anyio
async def test_second_notice_within_dedup_window_is_suppressed(session_factory, make_user):
    make_user()
    _subscribe(session_factory, "https://push.example/a")
    sender = RecordingPushSender()
    service = NotificationService(session_factory, push_sender=sender)

    assert await service.notify_completion(1, "job-1", 3, "Lisbon") is True
    assert await service.notify_completion(1, "job-2", 4, "Porto") is False
    assert len(sender.sent) == 1


@pytest.mark.anyio
async def test_old_notice_does_not_suppress(session_factory, make_user):
    make_user()
    _subscribe(session_factory, "https://push.example/a")
    with session_factory() as db:
        db.add(NotificationLog(
            user_id=1,
            category=PLAN_READY,
            delivered_count=1,
            created_at=datetime.now(timezone.utc) - timedelta(hours=21),
        ))
        db.commit()
    sender = RecordingPushSender()

    assert await NotificationService(session_factory, push_sender=sender).notify_completion(1, "job-1", 3, "Lisbon") is True
    assert len(sender.sent) == 1


@pytest.mark.anyio
@pytest.mark.parametrize("preference", ["notifications_enabled", "notification_push_enabled", "notification_push_plan_ready"])
async def test_disabled_preferences_skip_delivery(session_factory, make_user, preference):
    make_user(**{preference: False})
    _subscribe(session_factory, "https://push.example/a")
    sender = RecordingPushSender()

    assert await NotificationService(session_factory, push_sender=sender).notify_completion(1, "job-1", 3, "Lisbon") is False
    assert sender.sent == []
    assert _logs(session_factory) == []


@pytest.mark.anyio
async def test_invalid_subscription_is_pruned(session_factory, make_user):
    make_user()
    _subscribe(session_factory, "https://push.example/gone")
    _subscribe(session_factory, "https://push.example/ok")
    sender = RecordingPushSender(errors={"https://push.example/gone": InvalidPushSubscriptionError("410")})

    assert await NotificationService(session_factory, push_sender=sender).notify_completion(1, "job-1", 3, "Lisbon") is True

    with session_factory() as db:
        endpoints = [s.endpoint for s in db.query(PushSubscription).all()]
    assert endpoints == ["https://push.example/ok"]


@pytest.mark.anyio
async def test_delivery_failures_are_not_recorded(session_factory, make_user):
    make_user()
    _subscribe(session_factory, "https://push.example/a")
    sender = RecordingPushSender(errors={"https://push.example/a": PushDeliveryError("500")})

    assert await NotificationService(session_factory, push_sender=sender).notify_completion(1, "job-1", 3, "Lisbon") is False
    assert _logs(session_factory) == []


@pytest.mark.anyio
async def test_unexpected_errors_are_swallowed(session_factory, make_user):
    make_user()
    _subscribe(session_factory, "https://push.example/a")
    sender = RecordingPushSender(errors={"https://push.example/a": RuntimeError("bug")})

    assert await NotificationService(session_factory, push_sender=sender).notify_completion(1, "job-1", 3, "Lisbon") is False
