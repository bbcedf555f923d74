from __future__ import annotations

from datetime import datetime
from typing import Any

from rest_framework import status


class MatchError(Exception):
    """Business-rule rejection surfaced to the caller as-is. Never retried."""

    code = "MATCH_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Match request rejected."

    def __init__(self, detail: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.detail = detail or self.default_detail
        self.details = details or {}
        super().__init__(self.detail)

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.detail, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class Forbidden(MatchError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Like is available only for connected users."


class InvalidRequest(MatchError):
    code = "INVALID_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid match request."


class RematchBlocked(MatchError):
    code = "REMATCH_BLOCKED"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Rematch is allowed only after the cooldown period."

    def __init__(self, rematch_blocked_until: datetime | None = None) -> None:
        details = {"rematch_blocked_until": rematch_blocked_until} if rematch_blocked_until else None
        super().__init__(details=details)


class DailyLikeLimitReached(MatchError):
    code = "DAILY_LIKE_LIMIT_REACHED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, limit: int) -> None:
        super().__init__(f"Daily like limit reached ({limit} profiles per day).", details={"limit": limit})


class UnlikeAlreadyPending(MatchError):
    code = "UNLIKE_ALREADY_PENDING"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Unlike request already pending."


class UnlikeWaitRequired(MatchError):
    code = "UNLIKE_WAIT_REQUIRED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Next unlike request is not available yet."

    def __init__(self, next_allowed_at: datetime) -> None:
        self.next_allowed_at = next_allowed_at
        super().__init__(details={"next_allowed_at": next_allowed_at})


class UnlikeAttemptsExhausted(MatchError):
    code = "UNLIKE_ATTEMPTS_EXHAUSTED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Unlike attempts exhausted."
