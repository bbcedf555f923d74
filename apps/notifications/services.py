from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Set

from django.utils import timezone

from apps.notifications.models import Notification
from apps.users.models import User, UserSettings

logger = logging.getLogger(__name__)


@dataclass
class NotificationPayload:
    type: str
    title: str = ""
    body: str = ""
    payload: dict = field(default_factory=dict)


def create_in_app_notification(user: User, payload: NotificationPayload) -> Notification:
    notification = Notification.objects.create(
        user=user,
        type=payload.type,
        title=payload.title,
        body=payload.body,
        payload=payload.payload,
    )
    return notification


def _is_within_quiet_hours(settings: UserSettings | None) -> bool:
    if not settings:
        return False
    quiet = settings.quiet_hours or {}
    start = quiet.get("start")
    end = quiet.get("end")
    if not start or not end:
        return False
    now = timezone.localtime()
    try:
        start_hour, start_minute = [int(part) for part in start.split(":")]
        end_hour, end_minute = [int(part) for part in end.split(":")]
    except (ValueError, AttributeError):
        return False
    start_minutes = start_hour * 60 + start_minute
    end_minutes = end_hour * 60 + end_minute
    current_minutes = now.hour * 60 + now.minute
    if start_minutes <= end_minutes:
        return start_minutes <= current_minutes <= end_minutes
    return current_minutes >= start_minutes or current_minutes <= end_minutes


def _user_settings(user: User) -> UserSettings | None:
    try:
        return user.settings
    except UserSettings.DoesNotExist:
        return None


def send_push_notification(
    users: Iterable[User],
    payload: NotificationPayload,
    *,
    skip_user_ids: Iterable[int] | None = None,
) -> int:
    skipped: Set[int] = set(skip_user_ids or [])
    sent = 0
    for user in users:
        if user.id in skipped:
            continue
        settings = _user_settings(user)
        if settings and (not settings.push_enabled or _is_within_quiet_hours(settings)):
            continue
        for device in user.devices.all():
            logger.info(
                "[push] Would send %s to %s via %s",
                payload.type,
                device.push_token,
                device.device_type,
            )
            sent += 1
    return sent


def send_email_notification(users: Iterable[User], payload: NotificationPayload) -> int:
    sent = 0
    for user in users:
        settings = _user_settings(user)
        if settings and (not settings.email_enabled or _is_within_quiet_hours(settings)):
            continue
        logger.info("[email] Would send %s to %s", payload.type, user.email)
        sent += 1
    return sent


def dispatch_notification(
    users: Iterable[User],
    payload: NotificationPayload,
    *,
    send_push: bool = True,
    send_email: bool = False,
    skip_push_user_ids: Iterable[int] | None = None,
) -> list[Notification]:
    users = list(users)
    notifications = [create_in_app_notification(user, payload) for user in users]
    if send_push:
        send_push_notification(users, payload, skip_user_ids=skip_push_user_ids)
    if send_email:
        send_email_notification(users, payload)
    return notifications
