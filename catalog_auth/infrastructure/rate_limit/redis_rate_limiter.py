import logging

import redis

from ...application.ports.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class RedisRateLimiter(RateLimiter):
    """Fixed window counter shared by every worker: INCR, then EXPIRE on first hit."""

    def __init__(self, client: "redis.Redis", max_requests: int, window_seconds: int, prefix: str = "rl:") -> None:
        self.client = client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, max_requests: int, window_seconds: int) -> "RedisRateLimiter":
        return cls(redis.Redis.from_url(url), max_requests, window_seconds)

    def allow(self, key: str) -> bool:
        rk = f"{self.prefix}{key}:{self.window_seconds}"
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        pipe.expire(rk, self.window_seconds, nx=True)
        count, _ = pipe.execute()
        if int(count) > self.max_requests:
            logger.warning(f"Rate limit exceeded for key {key}")
            return False
        return True
