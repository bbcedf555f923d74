from __future__ import annotations

import logging
from dataclasses import asdict

from django.db import DatabaseError
from django.utils.decorators import method_decorator
from django_ratelimit.decorators import ratelimit
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.matching.exceptions import MatchError
from apps.matching.serializers import (
    ActiveMatchSerializer,
    LikeRequestSerializer,
    LikeResultSerializer,
    MatchStatusSerializer,
    UnlikeResultSerializer,
)
from apps.matching.services.calendar import parse_tz_offset
from apps.matching.services.lifecycle import MUTUAL_UNLIKE, get_match_lifecycle

logger = logging.getLogger(__name__)

INTERNAL_ERROR_PAYLOAD = {"detail": "Something went wrong. Please try again.", "code": "INTERNAL_SERVER_ERROR"}


def _error_response(exc: MatchError) -> Response:
    return Response(exc.as_payload(), status=exc.status_code)


def _internal_error(event: str, request: Request, target_id: int) -> Response:
    logger.exception(event, extra={"user_id": request.user.id, "target_id": target_id})
    return Response(INTERNAL_ERROR_PAYLOAD, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class MatchListView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "matching"

    def get(self, request: Request) -> Response:
        matches = get_match_lifecycle().active_matches(request.user.id)
        serializer = ActiveMatchSerializer(matches, many=True, context={"viewer_id": request.user.id})
        return Response(serializer.data, status=status.HTTP_200_OK)


class MatchStatusView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "matching"

    def get(self, request: Request, user_id: int) -> Response:
        try:
            result = get_match_lifecycle().status_of(request.user.id, user_id)
        except MatchError as exc:
            return _error_response(exc)
        except DatabaseError:
            return _internal_error("match.status_failed", request, user_id)
        return Response(MatchStatusSerializer(result).data, status=status.HTTP_200_OK)


@method_decorator(ratelimit(key="user", rate="30/min", method="POST", block=True), name="post")
class MatchLikeView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "matching"

    def post(self, request: Request, user_id: int) -> Response:
        serializer = LikeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        local_date = serializer.validated_data.get("local_date") or request.headers.get("X-Local-Date")
        tz_offset = parse_tz_offset(serializer.validated_data.get("tz_offset_minutes"))
        if tz_offset is None:
            tz_offset = parse_tz_offset(request.headers.get("X-TZ-Offset-Minutes"))

        try:
            result = get_match_lifecycle().like(
                request.user.id,
                user_id,
                local_date=local_date,
                tz_offset_minutes=tz_offset,
            )
        except MatchError as exc:
            return _error_response(exc)
        except DatabaseError:
            return _internal_error("match.like_failed", request, user_id)

        message = "Mutual like detected" if result.match_created else "Profile liked privately"
        payload = LikeResultSerializer({"message": message, **asdict(result)}).data
        return Response(payload, status=status.HTTP_200_OK)


@method_decorator(ratelimit(key="user", rate="30/min", method="POST", block=True), name="post")
class MatchUnlikeView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "matching"

    def post(self, request: Request, user_id: int) -> Response:
        try:
            result = get_match_lifecycle().unlike(request.user.id, user_id)
        except MatchError as exc:
            return _error_response(exc)
        except DatabaseError:
            return _internal_error("match.unlike_failed", request, user_id)

        if result.unmatch_triggered:
            message = "Match ended immediately" if result.reason == MUTUAL_UNLIKE else "Match ended automatically"
        elif not result.is_matched:
            message = "Like removed"
        elif result.unlike_request and result.unlike_request.auto_unmatch_at:
            message = "Final unlike request sent. Match will end automatically if ignored."
        else:
            message = "Unlike request sent"
        payload = UnlikeResultSerializer({"message": message, **asdict(result)}).data
        return Response(payload, status=status.HTTP_200_OK)
