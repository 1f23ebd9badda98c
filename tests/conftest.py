"""Shared fixtures: in-memory database, fake Google providers, fake LLM, test client."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import tabsy.models  # noqa: F401  registers every table on Base.metadata
from tabsy.app import create_app
from tabsy.config import Settings
from tabsy.database import Base, create_session_factory
from tabsy.errors import NotFoundError
from tabsy.services.agent import ConversationalAgent
from tabsy.services.refresh import CalendarRefresher, EmailRefresher, RefreshLocks

USER_ID = "default-user"
NOW = datetime(2024, 11, 14, 9, 0, 0)


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeCalendarProvider:
    """Stands in for GoogleCalendarAdapter; counts list calls."""

    def __init__(self, items=None):
        self.items = list(items or [])
        self.list_calls = 0
        self.windows = []
        self.error = None
        self.inserted = []
        self.updated = []
        self.events_by_id = {}

    def list_events(self, time_min, time_max):
        self.list_calls += 1
        self.windows.append((time_min, time_max))
        if self.error:
            raise self.error
        return [dict(item) for item in self.items]

    def get_event(self, event_id):
        if event_id not in self.events_by_id:
            raise NotFoundError(f"Event {event_id} not found")
        return dict(self.events_by_id[event_id])

    def insert_event(self, body):
        created = dict(body, id=f"created-{len(self.inserted) + 1}")
        self.inserted.append(created)
        return created

    def update_event(self, event_id, body):
        self.updated.append((event_id, body))
        return dict(body, id=event_id)


class FakeEmailProvider:
    """Stands in for GmailAdapter; counts list calls."""

    def __init__(self, messages=None):
        self.messages = list(messages or [])
        self.list_calls = 0
        self.error = None
        self.marked_read = []

    def list_unread(self, limit=10):
        self.list_calls += 1
        if self.error:
            raise self.error
        return [dict(m) for m in self.messages[:limit]]

    def mark_as_read(self, message_id):
        self.marked_read.append(message_id)


class FakeGoogleAuth:
    def __init__(self, authenticated=True):
        self.authenticated = authenticated
        self.exchanged = []

    def is_authenticated(self):
        return self.authenticated

    def authorization_url(self, redirect_uri):
        return f"https://accounts.google.com/o/oauth2/auth?redirect_uri={redirect_uri}"

    def exchange_code(self, code, redirect_uri):
        self.exchanged.append((code, redirect_uri))

    def logout(self):
        was_authenticated = self.authenticated
        self.authenticated = False
        return was_authenticated


class RecordingAgent:
    """Agent double that remembers every prompt it was given."""

    def __init__(self, reply="Sure, here you go."):
        self.reply = reply
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.reply


def calendar_item(event_id, start, end=None, title="Meeting", **extra):
    item = {"id": event_id, "summary": title, "start": {"dateTime": start}}
    if end is not None:
        item["end"] = {"dateTime": end}
    item.update(extra)
    return item


def gmail_message(message_id, subject="Hello", sender="Jane Doe <jane@example.com>",
                  date="Thu, 14 Nov 2024 08:00:00 +0000", labels=("UNREAD", "INBOX"), body="Body"):
    return {
        "id": message_id,
        "thread_id": f"t-{message_id}",
        "subject": subject,
        "from": sender,
        "date": date,
        "snippet": body[:50],
        "body": body,
        "labels": list(labels)
    }


# ============ DATABASE ============

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = create_session_factory(engine)()
    yield session
    session.close()


# ============ REFRESHERS ============

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def calendar_provider():
    return FakeCalendarProvider()


@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def calendar_refresher(calendar_provider, clock):
    return CalendarRefresher(calendar_provider, RefreshLocks(), clock=clock)


@pytest.fixture
def email_refresher(email_provider, clock):
    return EmailRefresher(email_provider, RefreshLocks(), clock=clock)


# ============ APP ============

@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite://", DEFAULT_USER_ID=USER_ID)


@pytest.fixture
def fake_llm():
    return FakeListChatModel(responses=["Here is your plan for today."])


@pytest.fixture
def google_auth():
    return FakeGoogleAuth()


@pytest.fixture
def app(settings, engine, calendar_provider, email_provider, fake_llm, google_auth):
    return create_app(
        settings,
        engine=engine,
        calendar_provider=calendar_provider,
        email_provider=email_provider,
        agent=ConversationalAgent(fake_llm),
        google_auth=google_auth
    )


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
