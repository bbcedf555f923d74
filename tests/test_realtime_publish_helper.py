from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
import requests
from django.test import override_settings

from apps.realtime.publish import publish_realtime_event

REALTIME_ON = {"realtime": True, "match_sweep": False}


def _payload() -> dict:
    return {"type": "notification:new", "id": 1}


@override_settings(REALTIME_PUBLISH_URL="http://gateway:8001", FEATURE_FLAGS=REALTIME_ON)
def test_publish_http_success_skips_redis() -> None:
    with patch("apps.realtime.publish.requests.post") as mocked_post, patch(
        "apps.realtime.publish.publish_event"
    ) as mocked_redis:
        mocked_post.return_value = Mock(ok=True)
        assert publish_realtime_event("user:1", _payload(), context={"notification_id": 1}) is True
        assert mocked_post.call_args.args[0] == "http://gateway:8001/internal/publish"
        assert mocked_post.call_args.kwargs["timeout"] == (0.5, 1.0)
        assert mocked_redis.called is False


@override_settings(REALTIME_PUBLISH_URL="http://gateway:8001", FEATURE_FLAGS=REALTIME_ON)
def test_publish_http_failure_falls_back_to_redis() -> None:
    with patch("apps.realtime.publish.requests.post") as mocked_post, patch(
        "apps.realtime.publish.publish_event", return_value=True
    ) as mocked_redis:
        mocked_post.return_value = Mock(ok=False, status_code=500)
        assert publish_realtime_event("user:1", _payload()) is True
        mocked_redis.assert_called_once_with("user:1", _payload())


@override_settings(REALTIME_PUBLISH_URL="http://gateway:8001", FEATURE_FLAGS=REALTIME_ON)
def test_publish_never_raises_when_both_paths_fail() -> None:
    with patch(
        "apps.realtime.publish.requests.post", side_effect=requests.ConnectionError("down")
    ), patch("apps.realtime.publish.publish_event", return_value=False):
        assert publish_realtime_event("user:1", _payload()) is False


@override_settings(REALTIME_PUBLISH_URL="", FEATURE_FLAGS=REALTIME_ON)
def test_publish_without_gateway_goes_straight_to_redis() -> None:
    with patch("apps.realtime.publish.requests.post") as mocked_post, patch(
        "apps.realtime.publish.publish_event", return_value=True
    ) as mocked_redis:
        assert publish_realtime_event("user:1", _payload()) is True
        assert mocked_post.called is False
        assert mocked_redis.called is True


@pytest.mark.parametrize("url", ["", "http://gateway:8001"])
def test_publish_disabled_by_feature_flag(url) -> None:
    with override_settings(REALTIME_PUBLISH_URL=url, FEATURE_FLAGS={"realtime": False}), patch(
        "apps.realtime.publish.requests.post"
    ) as mocked_post, patch("apps.realtime.publish.publish_event") as mocked_redis:
        assert publish_realtime_event("user:1", _payload()) is False
        assert mocked_post.called is False
        assert mocked_redis.called is False
