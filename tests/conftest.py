"""
Shared test fixtures: fake Graph client, fake session and a controllable clock
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from domain.models import MailItem
from infrastructure.auth.session import SessionState


BASE_TIME = datetime(2024, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_mail(idx, *, is_read=True, received=None, subject=None, sender="sender@example.com"):
    return MailItem(
        id=f"msg-{idx}",
        subject=subject if subject is not None else f"Subject {idx}",
        body=f"Body {idx}",
        sender=sender,
        sender_name="Sender",
        is_read=is_read,
        received=received or (BASE_TIME - timedelta(minutes=idx)),
    )


class FakeClock:
    """Returns a fixed instant; tests move it forward explicitly"""

    def __init__(self, now=BASE_TIME):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeSession:
    """Session stand-in that notifies observers like the real one"""

    def __init__(self, client=None, state=SessionState.SIGNED_OUT):
        self.client = client
        self.state = state
        self.observers = []
        self.establish_calls = 0

    def subscribe(self, observer):
        self.observers.append(observer)

    def set_state(self, new):
        old, self.state = self.state, new
        for obs in list(self.observers):
            obs.on_session_state_changed(self, old, new)

    def establish(self):
        self.establish_calls += 1
        self.set_state(SessionState.LOADING)
        self.set_state(SessionState.SIGNED_IN)

    def get_client(self):
        return self.client if self.state == SessionState.SIGNED_IN else None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def inbox_100():
    """100 messages most-recent-first, the first 7 unread"""
    return [make_mail(i, is_read=i >= 7) for i in range(100)]


@pytest.fixture
def graph_client(inbox_100):
    client = MagicMock()
    client.get_me.return_value = {"displayName": "Test User", "mail": "me@example.com"}
    client.list_inbox.return_value = list(inbox_100)
    client.get_mailbox_time_zone.return_value = "UTC"
    client.calendar_view.return_value = []
    client.inbox_delta_since.return_value = []
    client.list_people.return_value = []
    return client


@pytest.fixture
def session(graph_client):
    return FakeSession(client=graph_client, state=SessionState.SIGNED_IN)


@pytest.fixture
def signed_out_session(graph_client):
    return FakeSession(client=graph_client, state=SessionState.SIGNED_OUT)
