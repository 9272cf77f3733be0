import os
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root is on sys.path for 'app' imports
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app.core.config import settings
from app.db.base_class import Base
from app.db import base as models_import  # noqa: F401 - ensure models are imported
from app.db.models.user import User
from app.db.models.plan_job import PlanJob


# Force anyio to use asyncio
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    # Keep tests off the default database file and away from real providers
    monkeypatch.setattr(settings, "ENABLE_REQUEST_LOGGING", False)
    monkeypatch.setattr(settings, "ENABLE_OUTBOUND_LOGGING", False)
    monkeypatch.setattr(settings, "GOOGLE_GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", None)
    monkeypatch.setattr(settings, "UNSPLASH_ACCESS_KEY", None)
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", None)
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", None)
    monkeypatch.setattr(settings, "PLAN_JOB_EXECUTION", "worker")
    return settings


@pytest.fixture
def session_factory(tmp_path):
    # File-based SQLite so separate sessions share state
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def make_user(session_factory):
    def _make(user_id=1, credits=100, **fields):
        with session_factory() as db:
            db.add(User(id=user_id, email=f"user{user_id}@example.com", name=f"User {user_id}", ai_credits=credits, **fields))
            db.commit()
        return user_id
    return _make


@pytest.fixture
def make_job(session_factory):
    def _make(user_id=1, context=None, messages=None, structure_json=None, status="pending", trip_id=None, **fields):
        with session_factory() as db:
            job = PlanJob(
                user_id=user_id,
                trip_id=trip_id,
                status=status,
                context=context or {},
                messages=messages or [{"role": "user", "content": "Plan my trip"}],
                structure_json=structure_json,
                credits_charged=0,
                **fields,
            )
            db.add(job)
            db.commit()
            return job.id
    return _make


@pytest.fixture
def balance_of(session_factory):
    def _balance(user_id=1):
        with session_factory() as db:
            return db.query(User.ai_credits).filter(User.id == user_id).scalar()
    return _balance
