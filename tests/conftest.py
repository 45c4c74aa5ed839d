"""
Shared pytest fixtures for the Bug Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - recording_notifier: captures notifications sent through the app dispatcher
    - admin / developer / reporter: persisted users, plus auth_headers(user)
    - mem_store, clock: in-memory store and fixed clock for engine/report tests
"""

from datetime import datetime, timedelta, timezone

import pytest

from bugtracker import create_app
from bugtracker.models import db as _db
from bugtracker.models.user import User
from bugtracker.services.jwt_service import generate_access_token
from bugtracker.services.notification import NotificationDispatcher, Notifier
from bugtracker.services.user_service import register_user
from bugtracker.store import InMemoryStore, SQLAlchemyStore

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# ── Test doubles ─────────────────────────────────────────────────────────


class RecordingNotifier(Notifier):
    """Notifier that records every call instead of sending."""

    def __init__(self):
        self.sent = []

    def notify_assignment(self, bug, user):
        self.sent.append(("assignment", bug, user))
        return True

    def notify_status_change(self, bug, user):
        self.sent.append(("status_change", bug, user))
        return True

    def kinds(self):
        return [kind for kind, _, _ in self.sent]


class FixedClock:
    """Deterministic clock; call it like ``utcnow`` and move it with advance()."""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)
        return self.now


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def recording_notifier(app):
    """Swap the app dispatcher's transport for a RecordingNotifier."""
    dispatcher = app.extensions["notification_dispatcher"]
    original = dispatcher.notifier
    notifier = RecordingNotifier()
    dispatcher.notifier = notifier
    yield notifier
    dispatcher.notifier = original


# ── Users & tokens ───────────────────────────────────────────────────────


def _make_user(name, email, role, password="password123"):
    return register_user(
        SQLAlchemyStore(_db.session), name, email, password, role, bcrypt_rounds=4,
    )


@pytest.fixture()
def admin():
    return _make_user("Admin User", "admin@example.com", "admin")


@pytest.fixture()
def developer():
    return _make_user("John Developer", "john@example.com", "developer")


@pytest.fixture()
def other_developer():
    return _make_user("Jane Developer", "jane@example.com", "developer")


@pytest.fixture()
def reporter():
    return _make_user("Bob Reporter", "bob@example.com", "reporter")


@pytest.fixture()
def auth_headers():
    """Factory: ``auth_headers(user)`` → Authorization header dict."""
    def _headers(user):
        token = generate_access_token(user.id, user.email, user.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ── In-memory engine fixtures ────────────────────────────────────────────


@pytest.fixture()
def clock():
    return FixedClock()


@pytest.fixture()
def mem_store():
    return InMemoryStore()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def dispatcher(notifier):
    d = NotificationDispatcher(notifier, run_async=False)
    yield d
    d.shutdown()


@pytest.fixture()
def add_user(mem_store):
    """Factory: add a user to the in-memory store."""
    def _add(name, role="developer", email=None):
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            password_hash="x",
            role=role,
            created_at=T0,
        )
        return mem_store.add_user(user)
    return _add
