from __future__ import annotations

import logging
import threading
import time

import redis
from redis import Redis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_client: Redis | None = None
_failed_at: float | None = None


def get_redis() -> Redis | None:
    """Shared client for REDIS_URL, or None when Redis cannot be reached.

    A failed connect is retried after REDIS_RETRY_SECONDS, so limits come back
    once Redis does. A connected client reconnects on its own.
    """
    global _client, _failed_at

    with _lock:
        if _client is not None:
            return _client
        if _failed_at is not None and time.monotonic() - _failed_at < settings.redis_retry_seconds:
            return None

        try:
            client: Redis = redis.from_url(settings.redis_url, decode_responses=True)
            client.ping()
        except (RedisError, OSError) as exc:
            _failed_at = time.monotonic()
            logger.warning(
                "redis unavailable; write rate limits are off",
                extra={"error": str(exc), "retry_in": settings.redis_retry_seconds},
            )
            return None

        _client, _failed_at = client, None
        return client
