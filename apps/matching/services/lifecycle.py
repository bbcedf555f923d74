from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q

from apps.matching.exceptions import (
    DailyLikeLimitReached,
    Forbidden,
    InvalidRequest,
    RematchBlocked,
    UnlikeAlreadyPending,
    UnlikeAttemptsExhausted,
    UnlikeWaitRequired,
)
from apps.matching.models import MatchLike, MatchRelationship, MatchUnlikeRequest, canonical_pair
from apps.users.models import User

from .calendar import Clock, resolve_local_date, start_of_local_day, system_clock
from .chat_history import ChatHistoryStore, ThreadChatHistoryStore
from .connections import ConnectionOracle, FollowConnectionOracle
from .notifier import InAppNotificationSink, MatchEnded, MatchEvent, MatchFormed, NotificationSink, UnlikeRequested

logger = logging.getLogger(__name__)

MUTUAL_UNLIKE = "mutual_unlike"
AUTO_UNLIKE_TIMEOUT = "auto_unlike_timeout"


@dataclass(frozen=True)
class LikeResult:
    liked: bool
    match_created: bool
    is_matched: bool


@dataclass(frozen=True)
class UnlikeRequestSnapshot:
    requester_id: int
    responder_id: int
    attempts_used: int
    pending: bool
    next_allowed_at: datetime | None
    auto_unmatch_at: datetime | None

    @classmethod
    def from_request(cls, request: MatchUnlikeRequest) -> "UnlikeRequestSnapshot":
        return cls(
            requester_id=request.requester_id,
            responder_id=request.responder_id,
            attempts_used=request.attempts_used,
            pending=request.pending,
            next_allowed_at=request.next_allowed_at,
            auto_unmatch_at=request.auto_unmatch_at,
        )


@dataclass(frozen=True)
class UnmatchResult:
    reason: str
    unmatched_at: datetime
    rematch_blocked_until: datetime


@dataclass(frozen=True)
class UnlikeResult:
    is_matched: bool
    unmatch_triggered: bool
    reason: str | None = None
    unlike_request: UnlikeRequestSnapshot | None = None


@dataclass(frozen=True)
class MatchStatus:
    connected: bool
    can_like: bool
    liked_by_me: bool
    liked_by_other: bool
    is_matched: bool
    matched_at: datetime | None = None
    rematch_blocked_until: datetime | None = None
    unlike_request: UnlikeRequestSnapshot | None = None

    @classmethod
    def not_connected(cls) -> "MatchStatus":
        return cls(connected=False, can_like=False, liked_by_me=False, liked_by_other=False, is_matched=False)


class MatchLifecycle:
    """
    Like/match/unmatch state machine for a pair of connected users.

    Every mutation happens inside ``transaction.atomic()`` with the pair's user
    rows locked in id order, so concurrent calls for the same pair serialize.
    Notifications are queued with ``transaction.on_commit`` and never fire for
    a rolled back step group.
    """

    def __init__(
        self,
        *,
        connections: ConnectionOracle,
        chat_history: ChatHistoryStore,
        notifier: NotificationSink,
        clock: Clock = system_clock,
        daily_like_limit: int | None = None,
        unlike_cooldown: timedelta | None = None,
        max_unlike_attempts: int | None = None,
        rematch_block: timedelta | None = None,
    ) -> None:
        self.connections = connections
        self.chat_history = chat_history
        self.notifier = notifier
        self.clock = clock
        self.daily_like_limit = (
            daily_like_limit if daily_like_limit is not None else int(getattr(settings, "MATCH_DAILY_LIKE_LIMIT", 5))
        )
        self.unlike_cooldown = (
            unlike_cooldown
            if unlike_cooldown is not None
            else timedelta(days=int(getattr(settings, "MATCH_UNLIKE_COOLDOWN_DAYS", 3)))
        )
        self.max_unlike_attempts = (
            max_unlike_attempts
            if max_unlike_attempts is not None
            else int(getattr(settings, "MATCH_UNLIKE_MAX_ATTEMPTS", 3))
        )
        self.rematch_block = (
            rematch_block
            if rematch_block is not None
            else timedelta(days=int(getattr(settings, "MATCH_REMATCH_BLOCK_DAYS", 15)))
        )

    # Reads

    def status_of(self, viewer_id: int, target_id: int) -> MatchStatus:
        if viewer_id == target_id or not self.connections.are_connected(viewer_id, target_id):
            return MatchStatus.not_connected()

        match = self.sweep_pair(viewer_id, target_id)
        now = self.clock()
        is_matched = bool(match and match.is_active)
        liked_by_me = MatchLike.objects.edge(viewer_id, target_id).active().exists()
        # A one-sided like stays invisible to its target until it produced a match.
        liked_by_other = is_matched and MatchLike.objects.edge(target_id, viewer_id).active().exists()

        unlike_request = None
        if is_matched:
            pending = (
                match.unlike_requests.pending()
                .filter(Q(requester_id=viewer_id) | Q(responder_id=viewer_id))
                .order_by("-last_requested_at")
                .first()
            )
            if pending is not None:
                unlike_request = UnlikeRequestSnapshot.from_request(pending)

        rematch_blocked = bool(match and match.is_rematch_blocked(now))
        return MatchStatus(
            connected=True,
            can_like=not rematch_blocked,
            liked_by_me=liked_by_me,
            liked_by_other=liked_by_other,
            is_matched=is_matched,
            matched_at=match.matched_at if is_matched else None,
            rematch_blocked_until=match.rematch_blocked_until if rematch_blocked else None,
            unlike_request=unlike_request,
        )

    def active_matches(self, user_id: int) -> list[MatchRelationship]:
        self.sweep_overdue(user_id=user_id)
        return list(
            MatchRelationship.objects.active()
            .involving(user_id)
            .select_related("user_a", "user_b")
            .order_by("-matched_at")
        )

    # Writes

    def like(
        self,
        sender_id: int,
        target_id: int,
        *,
        local_date: str | None = None,
        tz_offset_minutes: int | None = None,
    ) -> LikeResult:
        if sender_id == target_id:
            raise InvalidRequest("You cannot like your own profile.")
        self._ensure_user_exists(target_id)
        if not self.connections.are_connected(sender_id, target_id):
            raise Forbidden()

        self.sweep_pair(sender_id, target_id)

        now = self.clock()
        today = resolve_local_date(local_date, tz_offset_minutes, now)
        with transaction.atomic():
            match = self._lock_pair(sender_id, target_id)
            if match is not None and match.is_rematch_blocked(now):
                raise RematchBlocked(match.rematch_blocked_until)

            edge = MatchLike.objects.select_for_update().edge(sender_id, target_id).first()
            if edge is None or not edge.is_active:
                self._check_daily_budget(sender_id, target_id, tz_offset_minutes, now)
            self._activate_like(edge, sender_id, target_id, today, now)

            if not MatchLike.objects.edge(target_id, sender_id).active().exists():
                logger.info("match.like_sent", extra={"sender_id": sender_id, "target_id": target_id})
                return LikeResult(liked=True, match_created=False, is_matched=bool(match and match.is_active))

            match_created = self._form_match(match, sender_id, target_id, now)
        return LikeResult(liked=True, match_created=match_created, is_matched=True)

    def unlike(self, requester_id: int, target_id: int) -> UnlikeResult:
        if requester_id == target_id:
            raise InvalidRequest("Invalid unlike request.")
        self._ensure_user_exists(target_id)

        now = self.clock()
        with transaction.atomic():
            match = self._lock_pair(requester_id, target_id)
            if match is None or not match.is_active:
                # Without a match this is just withdrawing a private like.
                withdrawn = MatchLike.objects.edge(requester_id, target_id).active().update(is_active=False, updated_at=now)
                logger.info(
                    "match.like_withdrawn",
                    extra={"sender_id": requester_id, "target_id": target_id, "withdrawn": withdrawn},
                )
                return UnlikeResult(is_matched=False, unmatch_triggered=False)

            outcome = self._sweep_if_overdue(match, now)
            if outcome is not None:
                return UnlikeResult(is_matched=False, unmatch_triggered=True, reason=outcome.reason)

            reciprocal_pending = match.unlike_requests.pending().filter(
                requester_id=target_id, responder_id=requester_id
            ).exists()
            if reciprocal_pending:
                self._finalize_unmatch(match, MUTUAL_UNLIKE, now)
                return UnlikeResult(is_matched=False, unmatch_triggered=True, reason=MUTUAL_UNLIKE)

            request = self._escalate_unlike(match, requester_id, target_id, now)
        return UnlikeResult(
            is_matched=True,
            unmatch_triggered=False,
            unlike_request=UnlikeRequestSnapshot.from_request(request),
        )

    def sweep_pair(self, user_id: int, other_user_id: int) -> MatchRelationship | None:
        """Dissolve the pair's match if a final unlike request timed out. Returns the current record."""
        with transaction.atomic():
            match = self._lock_pair(user_id, other_user_id)
            if match is not None and match.is_active:
                self._sweep_if_overdue(match, self.clock())
        return match

    def overdue_pairs(self, *, user_id: int | None = None, limit: int | None = None) -> list[tuple[int, int]]:
        overdue = MatchUnlikeRequest.objects.overdue(self.clock(), self.max_unlike_attempts).filter(
            match__status=MatchRelationship.Status.ACTIVE
        )
        if user_id is not None:
            overdue = overdue.filter(Q(requester_id=user_id) | Q(responder_id=user_id))
        pairs = list(
            overdue.order_by("match__user_a_id", "match__user_b_id")
            .values_list("match__user_a_id", "match__user_b_id")
            .distinct()
        )
        return pairs[:limit] if limit is not None else pairs

    def sweep_overdue(self, *, user_id: int | None = None, limit: int | None = None) -> list[UnmatchResult]:
        """Finalize every active match whose third unlike request passed its deadline."""
        results: list[UnmatchResult] = []
        for user_a_id, user_b_id in self.overdue_pairs(user_id=user_id, limit=limit):
            with transaction.atomic():
                match = self._lock_pair(user_a_id, user_b_id)
                if match is None or not match.is_active:
                    continue
                outcome = self._sweep_if_overdue(match, self.clock())
            if outcome is not None:
                results.append(outcome)
        return results

    # Internals

    def _ensure_user_exists(self, user_id: int) -> None:
        if not User.objects.filter(id=user_id, is_active=True).exists():
            raise InvalidRequest("Target user not found.")

    def _lock_pair(self, user_id: int, other_user_id: int) -> MatchRelationship | None:
        user_a_id, user_b_id = canonical_pair(user_id, other_user_id)
        # Locks both users in id order so the pair serializes even before a relationship row exists.
        list(
            User.objects.select_for_update()
            .filter(id__in=[user_a_id, user_b_id])
            .order_by("id")
            .values_list("id", flat=True)
        )
        return MatchRelationship.objects.select_for_update().for_pair(user_a_id, user_b_id).first()

    def _check_daily_budget(self, sender_id: int, target_id: int, tz_offset_minutes: int | None, now: datetime) -> None:
        day_start = start_of_local_day(tz_offset_minutes, now)
        used = MatchLike.objects.activated_since(sender_id, day_start).exclude(receiver_id=target_id).count()
        if used >= self.daily_like_limit:
            logger.info(
                "match.like_limit_reached",
                extra={"sender_id": sender_id, "target_id": target_id, "used": used, "day_start": day_start.isoformat()},
            )
            raise DailyLikeLimitReached(self.daily_like_limit)

    def _activate_like(
        self, edge: MatchLike | None, sender_id: int, target_id: int, today: str, now: datetime
    ) -> MatchLike:
        if edge is None:
            try:
                with transaction.atomic():
                    return MatchLike.objects.create(
                        sender_id=sender_id,
                        receiver_id=target_id,
                        is_active=True,
                        local_date=today,
                        activated_at=now,
                    )
            except IntegrityError:
                edge = MatchLike.objects.select_for_update().edge(sender_id, target_id).get()

        if edge.is_active:
            edge.local_date = today
            edge.save(update_fields=["local_date", "updated_at"])
            return edge

        edge.is_active = True
        edge.local_date = today
        edge.activated_at = now
        edge.save(update_fields=["is_active", "local_date", "activated_at", "updated_at"])
        return edge

    def _form_match(self, match: MatchRelationship | None, sender_id: int, target_id: int, now: datetime) -> bool:
        """Activate the pair's relationship at most once. Returns whether this call formed the match."""
        user_a_id, user_b_id = canonical_pair(sender_id, target_id)
        if match is None:
            try:
                with transaction.atomic():
                    match = MatchRelationship.objects.create(
                        user_a_id=user_a_id,
                        user_b_id=user_b_id,
                        status=MatchRelationship.Status.ACTIVE,
                        matched_at=now,
                    )
            except IntegrityError:
                match = MatchRelationship.objects.select_for_update().for_pair(user_a_id, user_b_id).get()
            else:
                self._on_match_formed(match, sender_id, target_id)
                return True

        activated = (
            MatchRelationship.objects.filter(pk=match.pk)
            .exclude(status=MatchRelationship.Status.ACTIVE)
            .filter(Q(rematch_blocked_until__isnull=True) | Q(rematch_blocked_until__lt=now))
            .update(
                status=MatchRelationship.Status.ACTIVE,
                matched_at=now,
                unmatched_at=None,
                rematch_blocked_until=None,
                updated_at=now,
            )
        )
        if not activated:
            return False
        MatchUnlikeRequest.objects.filter(match_id=match.pk).delete()
        match.refresh_from_db()
        self._on_match_formed(match, sender_id, target_id)
        return True

    def _on_match_formed(self, match: MatchRelationship, sender_id: int, target_id: int) -> None:
        logger.info(
            "match.formed",
            extra={"match_id": match.pk, "user_ids": [sender_id, target_id], "matched_at": match.matched_at.isoformat()},
        )
        self._notify_on_commit(sender_id, MatchFormed(with_user_id=target_id))
        self._notify_on_commit(target_id, MatchFormed(with_user_id=sender_id))

    def _sweep_if_overdue(self, match: MatchRelationship, now: datetime) -> UnmatchResult | None:
        if not match.unlike_requests.overdue(now, self.max_unlike_attempts).exists():
            return None
        return self._finalize_unmatch(match, AUTO_UNLIKE_TIMEOUT, now)

    def _escalate_unlike(
        self, match: MatchRelationship, requester_id: int, responder_id: int, now: datetime
    ) -> MatchUnlikeRequest:
        request, _ = MatchUnlikeRequest.objects.select_for_update().get_or_create(
            match=match,
            requester_id=requester_id,
            responder_id=responder_id,
            defaults={"attempts_used": 0, "pending": False},
        )

        if request.attempts_used >= self.max_unlike_attempts:
            raise UnlikeAttemptsExhausted()
        lapsed = request.next_allowed_at is not None and request.next_allowed_at <= now
        if request.pending and not lapsed:
            raise UnlikeAlreadyPending()
        if request.next_allowed_at is not None and request.next_allowed_at > now:
            raise UnlikeWaitRequired(request.next_allowed_at)

        attempt = request.attempts_used + 1
        next_allowed_at = now + self.unlike_cooldown
        auto_unmatch_at = next_allowed_at if attempt >= self.max_unlike_attempts else None
        updated = MatchUnlikeRequest.objects.filter(
            pk=request.pk,
            attempts_used=request.attempts_used,
            pending=request.pending,
        ).update(
            attempts_used=attempt,
            pending=True,
            last_requested_at=now,
            next_allowed_at=next_allowed_at,
            auto_unmatch_at=auto_unmatch_at,
            updated_at=now,
        )
        if not updated:
            raise UnlikeAlreadyPending()
        request.refresh_from_db()

        logger.info(
            "match.unlike_requested",
            extra={
                "match_id": match.pk,
                "requester_id": requester_id,
                "responder_id": responder_id,
                "attempts_used": attempt,
                "final": auto_unmatch_at is not None,
            },
        )
        self._notify_on_commit(
            responder_id,
            UnlikeRequested(requester_id=requester_id, attempts_used=attempt, auto_unmatch_at=auto_unmatch_at),
        )
        return request

    def _finalize_unmatch(self, match: MatchRelationship, reason: str, now: datetime) -> UnmatchResult | None:
        """
        Dissolve an active match: flip status, purge the chat held during the
        match window, resolve negotiations and deactivate both likes.

        Guarded by a conditional update on ``status=active``; a caller that
        loses the race gets ``None`` and performs no purge or notification.
        """
        window_start = match.matched_at or match.created_at or now
        rematch_blocked_until = now + self.rematch_block
        updated = MatchRelationship.objects.filter(pk=match.pk, status=MatchRelationship.Status.ACTIVE).update(
            status=MatchRelationship.Status.UNMATCHED,
            unmatched_at=now,
            rematch_blocked_until=rematch_blocked_until,
            updated_at=now,
        )
        if not updated:
            return None
        match.status = MatchRelationship.Status.UNMATCHED
        match.unmatched_at = now
        match.rematch_blocked_until = rematch_blocked_until

        user_a_id, user_b_id = match.user_a_id, match.user_b_id
        self.chat_history.delete_messages_in_window(user_a_id, user_b_id, window_start, now)
        self.chat_history.delete_notifications_referencing(user_a_id, user_b_id, window_start, now)
        MatchUnlikeRequest.objects.filter(match_id=match.pk).update(
            pending=False,
            next_allowed_at=None,
            auto_unmatch_at=None,
            updated_at=now,
        )
        MatchLike.objects.between(user_a_id, user_b_id).update(is_active=False, updated_at=now)

        logger.info(
            "match.unmatched",
            extra={
                "match_id": match.pk,
                "user_ids": [user_a_id, user_b_id],
                "reason": reason,
                "matched_at": window_start.isoformat(),
                "unmatched_at": now.isoformat(),
            },
        )
        self._notify_on_commit(user_a_id, MatchEnded(with_user_id=user_b_id, reason=reason))
        self._notify_on_commit(user_b_id, MatchEnded(with_user_id=user_a_id, reason=reason))
        return UnmatchResult(reason=reason, unmatched_at=now, rematch_blocked_until=rematch_blocked_until)

    def _notify_on_commit(self, user_id: int, event: MatchEvent) -> None:
        transaction.on_commit(lambda: self.notifier.notify(user_id, event), robust=True)


def get_match_lifecycle(**overrides) -> MatchLifecycle:
    """Build a lifecycle wired to the default collaborators."""
    wiring = {
        "connections": FollowConnectionOracle(),
        "chat_history": ThreadChatHistoryStore(),
        "notifier": InAppNotificationSink(),
    }
    wiring.update(overrides)
    return MatchLifecycle(**wiring)
