from __future__ import annotations

from unittest import mock

from django.db import DatabaseError
from rest_framework import status
from rest_framework.test import APITestCase

from apps.matching.models import MatchLike, MatchRelationship
from apps.social.models import Follow
from apps.users.models import User


class MatchAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(email="me@example.com", password="pass1234", handle="me", name="Me")
        self.other = User.objects.create_user(
            email="other@example.com", password="pass1234", handle="other", name="Other"
        )
        Follow.objects.create(follower=self.user, followee=self.other)
        Follow.objects.create(follower=self.other, followee=self.user)
        self.client.force_authenticate(user=self.user)

    def _like_back(self) -> None:
        self.client.force_authenticate(user=self.other)
        self.client.post(f"/api/v1/match/like/{self.user.id}/", {}, format="json")
        self.client.force_authenticate(user=self.user)

    def test_requires_authentication(self) -> None:
        self.client.force_authenticate(user=None)
        resp = self.client.get(f"/api/v1/match/status/{self.other.id}/")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_like_privately_then_match(self) -> None:
        resp = self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["message"], "Profile liked privately")
        self.assertFalse(resp.data["match_created"])

        self.client.force_authenticate(user=self.other)
        resp = self.client.post(f"/api/v1/match/like/{self.user.id}/", {}, format="json")
        self.assertEqual(resp.data["message"], "Mutual like detected")
        self.assertTrue(resp.data["match_created"])
        self.assertTrue(resp.data["is_matched"])

    def test_like_uses_body_local_date_and_header_offset(self) -> None:
        resp = self.client.post(
            f"/api/v1/match/like/{self.other.id}/",
            {"local_date": "2026-01-02"},
            format="json",
            HTTP_X_TZ_OFFSET_MINUTES="120",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(MatchLike.objects.get().local_date, "2026-01-02")

    def test_like_header_local_date_fallback(self) -> None:
        self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json", HTTP_X_LOCAL_DATE="2026-01-05")
        self.assertEqual(MatchLike.objects.get().local_date, "2026-01-05")

    def test_like_overlong_local_date_falls_back_to_derived_date(self) -> None:
        resp = self.client.post(
            f"/api/v1/match/like/{self.other.id}/",
            {"local_date": "2026-01-02" * 10, "tz_offset_minutes": 0},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertRegex(MatchLike.objects.get().local_date, r"^\d{4}-\d{2}-\d{2}$")

    def test_like_self_returns_invalid_request(self) -> None:
        resp = self.client.post(f"/api/v1/match/like/{self.user.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "INVALID_REQUEST")

    def test_like_unconnected_returns_forbidden(self) -> None:
        stranger = User.objects.create_user(email="x@example.com", password="pass1234", handle="x", name="X")
        resp = self.client.post(f"/api/v1/match/like/{stranger.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "FORBIDDEN")

    def test_daily_limit_returns_429(self) -> None:
        for idx in range(6):
            target = User.objects.create_user(
                email=f"t{idx}@example.com", password="pass1234", handle=f"t{idx}", name=f"T{idx}"
            )
            Follow.objects.create(follower=self.user, followee=target)
            Follow.objects.create(follower=target, followee=self.user)
            resp = self.client.post(f"/api/v1/match/like/{target.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(resp.data["code"], "DAILY_LIKE_LIMIT_REACHED")
        self.assertEqual(resp.data["details"], {"limit": 5})

    def test_status_payload(self) -> None:
        self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json")
        self._like_back()

        resp = self.client.get(f"/api/v1/match/status/{self.other.id}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["connected"])
        self.assertTrue(resp.data["is_matched"])
        self.assertTrue(resp.data["liked_by_other"])
        self.assertIsNotNone(resp.data["matched_at"])
        self.assertIsNone(resp.data["unlike_request"])

    def test_unlike_without_match_removes_like(self) -> None:
        self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json")
        resp = self.client.post(f"/api/v1/match/unlike/{self.other.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["message"], "Like removed")
        self.assertFalse(resp.data["is_matched"])

    def test_unlike_request_then_pending_conflict(self) -> None:
        self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json")
        self._like_back()

        resp = self.client.post(f"/api/v1/match/unlike/{self.other.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["message"], "Unlike request sent")
        self.assertEqual(resp.data["unlike_request"]["attempts_used"], 1)
        self.assertTrue(resp.data["unlike_request"]["pending"])

        resp = self.client.post(f"/api/v1/match/unlike/{self.other.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "UNLIKE_ALREADY_PENDING")

    def test_mutual_unlike_ends_match(self) -> None:
        self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json")
        self._like_back()
        self.client.post(f"/api/v1/match/unlike/{self.other.id}/", {}, format="json")

        self.client.force_authenticate(user=self.other)
        resp = self.client.post(f"/api/v1/match/unlike/{self.user.id}/", {}, format="json")
        self.assertEqual(resp.data["message"], "Match ended immediately")
        self.assertEqual(resp.data["reason"], "mutual_unlike")
        self.assertEqual(MatchRelationship.objects.get().status, MatchRelationship.Status.UNMATCHED)

        resp = self.client.post(f"/api/v1/match/like/{self.user.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "REMATCH_BLOCKED")

    def test_match_list(self) -> None:
        self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json")
        self._like_back()

        resp = self.client.get("/api/v1/match/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["user"]["id"], self.other.id)

    @mock.patch("apps.matching.views.get_match_lifecycle")
    def test_database_error_returns_generic_500(self, mock_lifecycle) -> None:
        mock_lifecycle.return_value.like.side_effect = DatabaseError("boom")
        with self.assertLogs("apps.matching.views", level="ERROR"):
            resp = self.client.post(f"/api/v1/match/like/{self.other.id}/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(resp.data["code"], "INTERNAL_SERVER_ERROR")
