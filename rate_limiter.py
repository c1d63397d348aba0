"""Redis-backed throttle for write requests."""
import logging
import time
from typing import Tuple
import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from monitoring import rate_limit_exceeded_counter

logger = logging.getLogger(__name__)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class WriteRateLimiter(BaseHTTPMiddleware):
    """
    Sliding-window limit on mutating requests per client IP.

    Counters live in Redis, so every worker process shares them and no
    request state is kept in the API process. Reads are never throttled.
    """

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute: int = 600,
        window_seconds: int = 60
    ):
        super().__init__(app)
        self.redis = redis_client
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds

    def _check_rate_limit(self, key: str) -> Tuple[bool, int]:
        """
        Record a hit in a Redis sorted set and report whether it fits the window.

        Returns:
            Tuple of (is_allowed, current_count)
        """
        try:
            current_time = time.time()

            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, current_time - self.window_seconds)
            pipe.zcard(key)
            pipe.zadd(key, {str(current_time): current_time})
            pipe.expire(key, self.window_seconds + 1)
            results = pipe.execute()

            # zcard ran before the current hit was added
            count = results[1]
            return count < self.requests_per_minute, count + 1

        except redis.RedisError as e:
            logger.error(f"Redis rate limit error: {e}")
            # Fail open: allow request if Redis is unavailable
            return True, 0

    async def dispatch(self, request: Request, call_next):
        if request.method not in WRITE_METHODS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if "x-forwarded-for" in request.headers:
            client_ip = request.headers["x-forwarded-for"].split(",")[0].strip()

        allowed, count = self._check_rate_limit(f"rate:write:{client_ip}")
        if not allowed:
            rate_limit_exceeded_counter.add(1, {"method": request.method})
            logger.warning("Write rate limit exceeded", extra={
                "client_ip": client_ip,
                "count": count,
                "limit": self.requests_per_minute
            })
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "detail": f"Maximum {self.requests_per_minute} write requests per minute"
                },
                headers={"Retry-After": str(self.window_seconds)}
            )

        return await call_next(request)
