from __future__ import annotations

import logging
from typing import Any

import requests
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder

from apps.core.pubsub import publish_event

logger = logging.getLogger(__name__)


def _publish_via_http(channel: str, payload: dict) -> tuple[bool, str | None]:
    base_url = getattr(settings, "REALTIME_PUBLISH_URL", "") or ""
    if not base_url:
        return False, "no_publish_url"
    url = base_url.rstrip("/") + "/internal/publish"
    headers: dict[str, str] = {"Content-Type": "application/json"}
    token = getattr(settings, "REALTIME_PUBLISH_TOKEN", "") or ""
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        response = requests.post(
            url,
            data=DjangoJSONEncoder().encode({"channel": channel, "payload": payload}),
            headers=headers,
            timeout=(0.5, 1.0),
        )
        if response.ok:
            return True, None
        return False, f"http_{response.status_code}"
    except requests.RequestException as exc:
        logger.warning("realtime publish failed url=%s channel=%s error=%s", url, channel, exc)
        return False, str(exc)


def publish_realtime_event(channel: str, payload: dict[str, Any], *, context: dict | None = None) -> bool:
    """
    Best-effort publish to the realtime gateway. Falls back to Redis pubsub.

    Returns whether either path accepted the event; never raises.
    """
    extra = {"channel": channel, "event_type": payload.get("type")}
    if context:
        extra.update(context)
    if not getattr(settings, "FEATURE_FLAGS", {}).get("realtime", True):
        logger.debug("realtime.publish_disabled", extra=extra)
        return False
    sent, error = _publish_via_http(channel, payload)
    if sent:
        logger.info("realtime.publish_success", extra={**extra, "path": "http"})
        return True
    if error and error != "no_publish_url":
        logger.warning("realtime.publish_failure", extra={**extra, "path": "http", "error": error})
    ok = publish_event(channel, payload)
    if ok:
        logger.info("realtime.publish_success", extra={**extra, "path": "redis"})
    else:
        logger.warning("realtime.publish_failure", extra={**extra, "path": "redis"})
    return ok
