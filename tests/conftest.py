"""Pytest configuration and fixtures."""

import itertools
import os
from datetime import date, datetime, time, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_BACKGROUND_TASKS"] = "false"
os.environ["INTERNAL_TOKEN"] = "test-internal-token"
os.environ["EMAIL_API_KEY"] = ""

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vetperto import redis_client as redis_module
from vetperto.database import create_db_engine, get_db
from vetperto.main import app
from vetperto.models.tables import Appointments, Availability, Base, Pets, Profiles, Services
from vetperto.services.accounts import CLIENT_TYPES, create_session, grant_role
from vetperto.services.credits import get_or_create_credits
from vetperto.services.slots import SchedulingConfig
from vetperto.services.slots.config import WEEKDAY_NAMES
from vetperto.utils.hashing import hash_password

INTERNAL_TOKEN = "test-internal-token"


@pytest.fixture
def day() -> date:
    """A Monday far enough ahead to be bookable."""
    return date(2030, 1, 7)


@pytest.fixture
def now(day) -> datetime:
    """Noon of the day before: every cell of day is still live."""
    return datetime.combine(day - timedelta(days=1), time(12, 0))


@pytest.fixture
def config() -> SchedulingConfig:
    return SchedulingConfig()


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def redis(monkeypatch):
    """fakeredis in place of the module-level client used by get_redis()."""
    client = fakeredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis_module, "redis_client", client)
    return client


@pytest.fixture
def client(session_factory, redis):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ── Data factories ───────────────────────────────────────────────────────


@pytest.fixture
def make_profile(db):
    counter = itertools.count(1)

    def factory(user_type: str = "tutor", **fields) -> Profiles:
        n = next(counter)
        profile = Profiles(
            email=fields.pop("email", f"{user_type}{n}@example.com"),
            password_hash=hash_password(fields.pop("password", "secret123")),
            full_name=fields.pop("full_name", f"{user_type.title()} {n}"),
            user_type=user_type,
            **fields,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return factory


@pytest.fixture
def make_professional(db, make_profile):
    """Professional with credits, a 60 min clinic service and 09:00-12:00 every day."""

    def factory(credits: int = 5, user_type: str = "profissional", **fields) -> Profiles:
        professional = make_profile(user_type, **fields)
        get_or_create_credits(db, professional.id, initial=credits)
        db.add(Services(
            profile_id=professional.id,
            name="Consulta",
            duration_minutes=60,
            price=150.0,
            location_type="clinic",
        ))
        for weekday in WEEKDAY_NAMES:
            db.add(Availability(
                profile_id=professional.id,
                day_of_week=weekday,
                start_time="09:00",
                end_time="12:00",
                location_type="clinic",
                slot_duration_minutes=30,
            ))
        db.commit()
        db.refresh(professional)
        return professional

    return factory


@pytest.fixture
def professional(make_professional):
    return make_professional(specialty="Clínica geral")


@pytest.fixture
def service(db, professional):
    return db.query(Services).filter(Services.profile_id == professional.id).one()


@pytest.fixture
def tutor(make_profile):
    return make_profile("tutor", full_name="Ana Tutora")


@pytest.fixture
def pet(db, tutor):
    obj = Pets(tutor_profile_id=tutor.id, name="Rex", species="cao")
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def admin(db, make_profile):
    profile = make_profile("tutor", full_name="Admin")
    grant_role(db, profile.id, "admin")
    return profile


@pytest.fixture
def auth_headers(redis):
    def factory(profile: Profiles, client_type: str | None = None) -> dict:
        token = create_session(redis, profile.id, client_type or CLIENT_TYPES[profile.user_type])
        return {"Authorization": f"Bearer {token}"}

    return factory


@pytest.fixture
def internal_headers() -> dict:
    return {"X-Internal-Token": INTERNAL_TOKEN}


@pytest.fixture
def make_appointment(db):
    """Insert an appointment row directly, bypassing the booking checks."""

    def factory(tutor, professional, day, start_time, end_time, status="pending", **fields) -> Appointments:
        obj = Appointments(
            tutor_profile_id=tutor.id,
            professional_profile_id=professional.id,
            appointment_date=day.isoformat(),
            start_time=start_time,
            end_time=end_time,
            location_type=fields.pop("location_type", "clinic"),
            status=status,
            **fields,
        )
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj

    return factory
