from __future__ import annotations

from datetime import datetime

from django.db import models
from django.db.models import F, Q

from apps.core.models import BaseModel


def canonical_pair(user_id: int, other_user_id: int) -> tuple[int, int]:
    """Order two user ids so a pair maps to exactly one relationship row."""
    return (min(user_id, other_user_id), max(user_id, other_user_id))


class MatchLikeQuerySet(models.QuerySet):
    def active(self) -> "MatchLikeQuerySet":
        return self.filter(is_active=True)

    def edge(self, sender_id: int, receiver_id: int) -> "MatchLikeQuerySet":
        return self.filter(sender_id=sender_id, receiver_id=receiver_id)

    def between(self, user_id: int, other_user_id: int) -> "MatchLikeQuerySet":
        return self.filter(
            Q(sender_id=user_id, receiver_id=other_user_id) | Q(sender_id=other_user_id, receiver_id=user_id)
        )

    def activated_since(self, sender_id: int, since: datetime) -> "MatchLikeQuerySet":
        # Withdrawn likes still count against the day they were spent on.
        return self.filter(sender_id=sender_id, activated_at__gte=since)


class MatchLike(BaseModel):
    sender = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="match_likes_sent")
    receiver = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="match_likes_received")
    is_active = models.BooleanField(default=True)
    local_date = models.CharField(max_length=10)
    activated_at = models.DateTimeField()

    objects = MatchLikeQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["sender", "receiver"], name="matching_like_sender_receiver_uniq"),
        ]
        indexes = [
            models.Index(fields=["sender", "local_date", "is_active"], name="matching_like_sender_day_idx"),
            models.Index(fields=["sender", "is_active", "activated_at"], name="matching_like_budget_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        state = "active" if self.is_active else "inactive"
        return f"MatchLike<{self.sender_id}->{self.receiver_id}:{state}>"


class MatchRelationshipQuerySet(models.QuerySet):
    def for_pair(self, user_id: int, other_user_id: int) -> "MatchRelationshipQuerySet":
        user_a_id, user_b_id = canonical_pair(user_id, other_user_id)
        return self.filter(user_a_id=user_a_id, user_b_id=user_b_id)

    def active(self) -> "MatchRelationshipQuerySet":
        return self.filter(status=MatchRelationship.Status.ACTIVE)

    def involving(self, user_id: int) -> "MatchRelationshipQuerySet":
        return self.filter(Q(user_a_id=user_id) | Q(user_b_id=user_id))


class MatchRelationship(BaseModel):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        UNMATCHED = "unmatched", "Unmatched"

    user_a = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="+")
    user_b = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="+")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    matched_at = models.DateTimeField(null=True, blank=True)
    unmatched_at = models.DateTimeField(null=True, blank=True)
    rematch_blocked_until = models.DateTimeField(null=True, blank=True)

    objects = MatchRelationshipQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user_a", "user_b"], name="matching_relationship_pair_uniq"),
            models.CheckConstraint(condition=Q(user_a__lt=F("user_b")), name="matching_relationship_pair_ordered"),
        ]
        indexes = [
            models.Index(fields=["status", "rematch_blocked_until"], name="matching_rel_status_block_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"MatchRelationship<{self.user_a_id}:{self.user_b_id}:{self.status}>"

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE

    def other_user_id(self, user_id: int) -> int:
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id

    def is_rematch_blocked(self, now: datetime) -> bool:
        return (
            self.status == self.Status.UNMATCHED
            and self.rematch_blocked_until is not None
            and now <= self.rematch_blocked_until
        )


class MatchUnlikeRequestQuerySet(models.QuerySet):
    def pending(self) -> "MatchUnlikeRequestQuerySet":
        return self.filter(pending=True)

    def overdue(self, now: datetime, max_attempts: int) -> "MatchUnlikeRequestQuerySet":
        return self.pending().filter(attempts_used__gte=max_attempts, auto_unmatch_at__lte=now)


class MatchUnlikeRequest(BaseModel):
    match = models.ForeignKey(MatchRelationship, on_delete=models.CASCADE, related_name="unlike_requests")
    requester = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="+")
    responder = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="+")
    attempts_used = models.PositiveSmallIntegerField(default=0)
    pending = models.BooleanField(default=False)
    last_requested_at = models.DateTimeField(null=True, blank=True)
    next_allowed_at = models.DateTimeField(null=True, blank=True)
    auto_unmatch_at = models.DateTimeField(null=True, blank=True)

    objects = MatchUnlikeRequestQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["match", "requester", "responder"],
                name="matching_unlike_request_direction_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["pending", "auto_unmatch_at"], name="matching_unlike_timeout_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"MatchUnlikeRequest<{self.match_id}:{self.requester_id}->{self.responder_id}:{self.attempts_used}>"
