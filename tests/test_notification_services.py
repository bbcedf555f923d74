from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from apps.notifications.models import Notification
from apps.notifications.services import (
    NotificationPayload,
    _is_within_quiet_hours,
    dispatch_notification,
    send_email_notification,
    send_push_notification,
)
from apps.users.models import Device, User, UserSettings


@pytest.fixture
def member(db) -> User:
    user = User.objects.create_user(email="n@example.com", password="pass1234", handle="n", name="N")
    Device.objects.create(user=user, push_token="tok-a", device_type="android")
    Device.objects.create(user=user, push_token="tok-b", device_type="ios")
    return user


def _payload() -> NotificationPayload:
    return NotificationPayload(type="match", title="Matched", payload={"with_user_id": 2})


def test_dispatch_stores_in_app_notification_and_pushes(member):
    with patch("apps.notifications.services.send_push_notification", return_value=2) as mocked_push:
        (notification,) = dispatch_notification([member], _payload())

    assert Notification.objects.get() == notification
    assert notification.payload == {"with_user_id": 2}
    mocked_push.assert_called_once()


def test_push_counts_each_device(member):
    assert send_push_notification([member], _payload()) == 2


def test_push_respects_disabled_setting_and_skip_list(member):
    assert send_push_notification([member], _payload(), skip_user_ids=[member.id]) == 0

    UserSettings.objects.create(user=member, push_enabled=False)
    member = User.objects.get(pk=member.pk)
    assert send_push_notification([member], _payload()) == 0


def test_email_respects_disabled_setting(member):
    assert send_email_notification([member], _payload()) == 1

    UserSettings.objects.create(user=member, email_enabled=False)
    member = User.objects.get(pk=member.pk)
    assert send_email_notification([member], _payload()) == 0


def test_quiet_hours_window(member):
    settings = UserSettings(user=member, quiet_hours={"start": "22:00", "end": "07:00"})
    late = datetime(2026, 3, 10, 23, 30, tzinfo=UTC)
    noon = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)

    with patch("apps.notifications.services.timezone.localtime", return_value=late):
        assert _is_within_quiet_hours(settings) is True
    with patch("apps.notifications.services.timezone.localtime", return_value=noon):
        assert _is_within_quiet_hours(settings) is False

    settings.quiet_hours = {"start": "bad", "end": "value"}
    assert _is_within_quiet_hours(settings) is False
    assert _is_within_quiet_hours(None) is False
