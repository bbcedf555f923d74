from __future__ import annotations

from datetime import UTC, datetime, timedelta
from itertools import count

import pytest

from apps.matching.services.chat_history import ThreadChatHistoryStore
from apps.matching.services.connections import FollowConnectionOracle
from apps.matching.services.lifecycle import MatchLifecycle
from apps.social.models import Follow
from apps.users.models import User

_handles = count(1)


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[int, object]] = []

    def notify(self, user_id: int, event) -> None:
        self.events.append((user_id, event))

    def kinds_for(self, user_id: int) -> list[str]:
        return [event.kind for recipient, event in self.events if recipient == user_id]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def lifecycle(clock, sink) -> MatchLifecycle:
    return MatchLifecycle(
        connections=FollowConnectionOracle(),
        chat_history=ThreadChatHistoryStore(),
        notifier=sink,
        clock=clock,
    )


@pytest.fixture
def make_user(db):
    def _make_user(handle: str | None = None) -> User:
        handle = handle or f"member{next(_handles)}"
        return User.objects.create_user(
            email=f"{handle}@example.com",
            password="pass1234",
            handle=handle,
            name=handle.title(),
        )

    return _make_user


@pytest.fixture
def connect(db):
    def _connect(user: User, other: User) -> None:
        Follow.objects.get_or_create(follower=user, followee=other)
        Follow.objects.get_or_create(follower=other, followee=user)

    return _connect


@pytest.fixture
def pair(make_user, connect) -> tuple[User, User]:
    alice = make_user("alice")
    bob = make_user("bob")
    connect(alice, bob)
    return alice, bob


@pytest.fixture
def committed(django_capture_on_commit_callbacks):
    """Run a lifecycle call and fire the on-commit callbacks it queued."""

    def _committed(fn, *args, **kwargs):
        with django_capture_on_commit_callbacks(execute=True):
            return fn(*args, **kwargs)

    return _committed
