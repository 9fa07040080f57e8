# conftest.py — shared fixtures: isolated app per test, in-memory SQLite, suppressed mail

import re
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import Config
from models import db
from models.user import User
from utils.mail import mail

CODE_IN_BODY = re.compile(r"\b(\d{6})\b")


class TestingConfig(Config):
    __test__ = False

    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MAIL_SUPPRESS_SEND = True
    MAIL_SERVER = None
    MAIL_USERNAME = None
    MAIL_DEFAULT_SENDER = "noreply@timesheets.test"
    LOGIN_CODE_BACKEND = "memory"
    SEED_USER_EMAIL = "registrar@ces-schools.com"
    SEED_USER_NAME = "Simone"
    SEED_USER_HOURLY_RATE = "20"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start=datetime(2026, 1, 5, 9, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def add_user(app):
    def _add_user(email, name="Staff Member", hourly_rate="18.50", can_submit_timesheet=True, is_active=True):
        with app.app_context():
            user = User(
                email=email,
                name=name,
                hourly_rate=Decimal(hourly_rate),
                can_submit_timesheet=can_submit_timesheet,
                is_active=is_active,
            )
            db.session.add(user)
            db.session.commit()
            return user.id
    return _add_user


@pytest.fixture
def request_code(client):
    """POST /auth/request-code and return (response, sent messages)."""
    def _request_code(email):
        with mail.record_messages() as outbox:
            resp = client.post("/auth/request-code", json={"email": email})
        return resp, list(outbox)
    return _request_code


@pytest.fixture
def code_from():
    def _code_from(message):
        match = CODE_IN_BODY.search(message.body)
        assert match, f"no code in email body: {message.body!r}"
        return match.group(1)
    return _code_from
