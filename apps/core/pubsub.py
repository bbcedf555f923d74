from __future__ import annotations

import json
import logging
from functools import lru_cache

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def user_channel(user_id: int) -> str:
    return f"user:{user_id}"


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    url = getattr(settings, "PUBSUB_REDIS_URL", "redis://redis:6379/1")
    return Redis.from_url(url, socket_timeout=1.0, socket_connect_timeout=0.5)


def publish_event(channel: str, payload: dict) -> bool:
    try:
        client = get_redis_client()
        client.publish(channel, json.dumps(payload, cls=DjangoJSONEncoder))
        return True
    except RedisError as exc:  # pragma: no cover - log and continue
        logger.warning("Failed to publish event on %s: %s", channel, exc)
        return False
