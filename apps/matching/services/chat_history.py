from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from django.db.models import Q

from apps.messaging.models import Message, Thread
from apps.notifications.models import Notification

logger = logging.getLogger(__name__)

MESSAGE_NOTIFICATION_TYPE = "message:new"


class ChatHistoryStore(Protocol):
    def delete_messages_in_window(
        self, user_id: int, other_user_id: int, start: datetime, end: datetime
    ) -> int: ...

    def delete_notifications_referencing(
        self, user_id: int, other_user_id: int, start: datetime, end: datetime
    ) -> int: ...


class ThreadChatHistoryStore:
    """Purges the one-to-one conversation between two users inside a time window."""

    def _direct_thread_ids(self, user_id: int, other_user_id: int) -> list[int]:
        return list(Thread.objects.direct_between(user_id, other_user_id).values_list("id", flat=True))

    def delete_messages_in_window(
        self, user_id: int, other_user_id: int, start: datetime, end: datetime
    ) -> int:
        thread_ids = self._direct_thread_ids(user_id, other_user_id)
        if not thread_ids:
            return 0
        _, per_model = Message.objects.filter(
            thread_id__in=thread_ids,
            created_at__gte=start,
            created_at__lte=end,
        ).delete()
        deleted = per_model.get(Message._meta.label, 0)
        logger.info(
            "match.chat_history_purged",
            extra={"user_ids": [user_id, other_user_id], "thread_ids": thread_ids, "deleted": deleted},
        )
        return deleted

    def delete_notifications_referencing(
        self, user_id: int, other_user_id: int, start: datetime, end: datetime
    ) -> int:
        participants = [user_id, other_user_id]
        reference = Q(payload__sender_id__in=participants)
        thread_ids = self._direct_thread_ids(user_id, other_user_id)
        if thread_ids:
            reference |= Q(payload__thread_id__in=thread_ids)
        deleted, _ = (
            Notification.objects.filter(
                user_id__in=participants,
                type=MESSAGE_NOTIFICATION_TYPE,
                created_at__gte=start,
                created_at__lte=end,
            )
            .filter(reference)
            .delete()
        )
        return deleted
