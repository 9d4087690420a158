import os

# Must be set before memberauth is imported: settings and the engine are built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["REVOCATION_SWEEP_ENABLED"] = "false"
os.environ["OTP_HASH_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-0123456789abcdef0123456789"
os.environ["SESSION_COOKIE_SECURE"] = "false"
os.environ["MAILGUN_API_KEY"] = ""
os.environ["MAILGUN_DOMAIN"] = ""
os.environ["EMAIL_CONSOLE_FALLBACK"] = "true"

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from memberauth.config import get_settings
from memberauth.database import Base, SessionLocal, engine
from memberauth.exceptions import NotificationError
from memberauth.main import app
from memberauth.services.identity import IdentityVerificationFlow
from memberauth.services.notifications import Notifier, get_notifier
from memberauth.services.rate_limiter import MemoryWindowStore, RateLimiter, get_rate_limiter
from memberauth.services.tokens import TokenService


class RecordingNotifier(Notifier):
    """Captures outgoing codes instead of emailing them."""

    def __init__(self):
        super().__init__(get_settings())
        self.verification_codes = {}
        self.login_codes = {}
        self.welcomed = []
        self.fail = set()

    def _maybe_fail(self, kind):
        if kind in self.fail:
            raise NotificationError(f"{kind} failed")

    def send_verification_code(self, to_email, otp):
        self._maybe_fail("verification")
        self.verification_codes[to_email] = otp

    def send_login_code(self, to_email, otp):
        self._maybe_fail("login")
        self.login_codes[to_email] = otp

    def send_welcome(self, to_email, full_name=None):
        self._maybe_fail("welcome")
        self.welcomed.append((to_email, full_name))


class RecordingTasks:
    """BackgroundTasks stand-in that runs queued work on demand."""

    def __init__(self):
        self.queued = []

    def add_task(self, func, *args, **kwargs):
        self.queued.append((func, args, kwargs))

    def run_all(self):
        for func, args, kwargs in self.queued:
            func(*args, **kwargs)
        self.queued = []


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def rate_limiter():
    return RateLimiter(MemoryWindowStore())


@pytest.fixture
def tokens():
    return TokenService(get_settings().jwt_secret_key, ttl=timedelta(hours=24))


@pytest.fixture
def tasks():
    return RecordingTasks()


@pytest.fixture
def make_flow(db, rate_limiter, tokens, notifier, tasks):
    def _make(now=None):
        kwargs = {"now": now} if now is not None else {}
        return IdentityVerificationFlow(db, rate_limiter, tokens, notifier, tasks, **kwargs)
    return _make


@pytest.fixture
def flow(make_flow):
    return make_flow()


@pytest.fixture
def client(db, notifier, rate_limiter):
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    return FakeClock()
