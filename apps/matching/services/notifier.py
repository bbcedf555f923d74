from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import ClassVar, Protocol, Union

from apps.core.pubsub import user_channel
from apps.notifications.services import NotificationPayload, dispatch_notification
from apps.realtime.publish import publish_realtime_event
from apps.users.models import User

logger = logging.getLogger(__name__)


def _format_timestamp(dt: datetime | None) -> str | None:
    if not dt:
        return None
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class MatchFormed:
    with_user_id: int

    kind: ClassVar[str] = "match"
    send_email: ClassVar[bool] = True
    title: ClassVar[str] = "Profile Matched 💖"
    body: ClassVar[str] = "You and your connection liked each other."

    def as_payload(self) -> dict:
        return {"type": self.kind, "with_user_id": self.with_user_id}


@dataclass(frozen=True)
class UnlikeRequested:
    requester_id: int
    attempts_used: int
    auto_unmatch_at: datetime | None = None

    kind: ClassVar[str] = "match_unlike"
    send_email: ClassVar[bool] = False
    title: ClassVar[str] = "Match update request"
    body: ClassVar[str] = "Your match partner wants to end the match."

    def as_payload(self) -> dict:
        return {
            "type": self.kind,
            "requester_id": self.requester_id,
            "attempts_used": self.attempts_used,
            "auto_unmatch_at": _format_timestamp(self.auto_unmatch_at),
        }


@dataclass(frozen=True)
class MatchEnded:
    with_user_id: int
    reason: str

    kind: ClassVar[str] = "match_ended"
    send_email: ClassVar[bool] = True
    title: ClassVar[str] = "Match ended"
    body: ClassVar[str] = "Your match has ended."

    def as_payload(self) -> dict:
        return {"type": self.kind, "with_user_id": self.with_user_id, "reason": self.reason}


MatchEvent = Union[MatchFormed, UnlikeRequested, MatchEnded]


class NotificationSink(Protocol):
    def notify(self, user_id: int, event: MatchEvent) -> None: ...


class InAppNotificationSink:
    """
    Stores an in-app notification, hands it to push delivery and mirrors it on
    the user's realtime channel. Delivery is at-least-once at best; callers do
    not depend on it for correctness.
    """

    def notify(self, user_id: int, event: MatchEvent) -> None:
        user = User.objects.select_related("settings").prefetch_related("devices").filter(id=user_id).first()
        if user is None:
            logger.warning("match.notify_skipped", extra={"user_id": user_id, "kind": event.kind})
            return
        payload = NotificationPayload(
            type=event.kind,
            title=event.title,
            body=event.body,
            payload=event.as_payload(),
        )
        (notification,) = dispatch_notification([user], payload, send_email=event.send_email)
        publish_realtime_event(
            user_channel(user.id),
            {
                "type": "notification:new",
                "id": notification.id,
                "kind": event.kind,
                "title": event.title,
                "body": event.body,
                "data": payload.payload,
                "created_at": _format_timestamp(notification.created_at),
            },
            context={"user_id": user.id, "notification_id": notification.id},
        )
