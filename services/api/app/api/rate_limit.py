from __future__ import annotations

import time
from typing import Callable, cast

from app.api.deps import get_current_user_id
from app.core.redis_client import get_redis
from fastapi import Depends, HTTPException
from redis import Redis
from redis.exceptions import RedisError


def rate_limiter(
    scope: str,
    *,
    limit: int,
    window_seconds: int,
) -> Callable[..., None]:
    """Fixed-window rate limiter keyed on the caller's identity (Redis INCR + EXPIRE).

    If Redis is unavailable, the limiter becomes a no-op (fail open).
    """

    def _dep(user_id: str = Depends(get_current_user_id)) -> None:
        r = get_redis()
        if r is None:
            return

        now = int(time.time())
        bucket = now // window_seconds
        key = f"rl:{scope}:{user_id}:{bucket}"

        try:
            count = cast(int, cast(Redis, r).incr(key))
            if count == 1:
                cast(Redis, r).expire(key, window_seconds)
        except RedisError:
            return

        if count > limit:
            retry_after = max(1, window_seconds - (now % window_seconds))
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded",
                headers={"Retry-After": str(retry_after)},
            )

    return _dep
