"""Rate limiting middleware — Redis fixed-window counters per IP.

Learn: /auth/login and /auth/register get a much tighter budget than the
rest of the API, to slow down password guessing and signup spam.
Each IP gets a counter key like "strengths:rl:{ip}:{bucket}:{minute}".

Rate limiting is skipped entirely when Redis is unavailable (e.g. tests).
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from strengths.cache import get_redis

logger = structlog.get_logger()

AUTH_PATHS = ("/auth/login", "/auth/register")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP, per-minute request budget."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path.startswith(AUTH_PATHS)
        rpm = self.auth_rpm if is_auth else self.default_rpm
        bucket = "auth" if is_auth else "api"
        key = f"strengths:rl:{client_ip}:{bucket}:{int(time.time() // 60)}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except RedisError as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
