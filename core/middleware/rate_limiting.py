"""
Redis-based rate limiting middleware.
Sliding window limits: strict per-IP limits on register/login, per-user
(or per-IP for anonymous callers) limits on everything else.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as redis
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import Settings

logger = logging.getLogger(__name__)


class RateLimitStrategy(str, Enum):
    """Rate limiting strategy types."""
    IP_ADDRESS = "ip"
    USER_ID = "user"
    ENDPOINT = "endpoint"


class RateLimitWindow(str, Enum):
    """Time window types for rate limiting."""
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"


WINDOW_SECONDS = {
    RateLimitWindow.SECOND: 1,
    RateLimitWindow.MINUTE: 60,
    RateLimitWindow.HOUR: 3600,
}


@dataclass
class RateLimitRule:
    """Rate limit rule configuration."""
    strategy: RateLimitStrategy
    window: RateLimitWindow
    max_requests: int
    paths: Optional[List[str]] = None  # Specific paths to apply rule
    methods: Optional[List[str]] = None  # Specific HTTP methods


def default_rules(settings: Settings) -> List[RateLimitRule]:
    """Rules derived from configuration."""
    prefix = settings.api_v1_prefix
    return [
        # Credential endpoints: brute-force protection per IP
        RateLimitRule(
            strategy=RateLimitStrategy.IP_ADDRESS,
            window=RateLimitWindow.MINUTE,
            max_requests=settings.rate_limit_auth_per_minute,
            paths=[f"{prefix}/auth/login", f"{prefix}/auth/register"],
            methods=["POST"],
        ),
        RateLimitRule(
            strategy=RateLimitStrategy.USER_ID,
            window=RateLimitWindow.MINUTE,
            max_requests=settings.rate_limit_per_minute,
        ),
    ]


class SlidingWindowRateLimiter:
    """
    Redis-based sliding window rate limiter.

    Each key is a sorted set of request timestamps; entries older than the
    window are dropped before counting.
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def is_allowed(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> tuple[bool, Dict[str, Any]]:
        """
        Check if request is allowed under rate limit.

        Args:
            key: Unique identifier for the rate limit
            max_requests: Maximum requests allowed in window
            window_seconds: Time window in seconds

        Returns:
            Tuple of (is_allowed, metadata)
            metadata contains: limit, remaining, reset, retry_after
        """
        now = time.time()
        window_start = now - window_seconds

        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            # unique member per request
            request_id = f"{now}:{hashlib.md5(str(now).encode()).hexdigest()[:8]}"
            pipe.zadd(key, {request_id: now})
            pipe.expire(key, window_seconds + 60)
            results = await pipe.execute()

            # count before adding this request
            current_count = results[1]
            allowed = current_count + 1 <= max_requests
            remaining = max(0, max_requests - current_count - 1)

            retry_after = 0
            if not allowed:
                oldest = await self.redis.zrange(key, 0, 0, withscores=True)
                if oldest:
                    retry_after = int(oldest[0][1] + window_seconds - now)
                else:
                    retry_after = window_seconds
                # rejected requests don't consume the window
                await self.redis.zrem(key, request_id)

            return allowed, {
                'limit': max_requests,
                'remaining': remaining,
                'reset': int(now + window_seconds),
                'retry_after': max(0, retry_after),
            }

        except RedisConnectionError as e:
            logger.error(f"Redis connection error in rate limiter: {e}")
            return True, self._fail_open(max_requests, now, window_seconds)

        except RedisError as e:
            logger.error(f"Redis error in rate limiter: {e}")
            return True, self._fail_open(max_requests, now, window_seconds)

    @staticmethod
    def _fail_open(max_requests: int, now: float, window_seconds: int) -> Dict[str, Any]:
        return {
            'limit': max_requests,
            'remaining': max_requests,
            'reset': int(now + window_seconds),
            'retry_after': 0,
        }

    async def reset(self, key: str) -> bool:
        """Reset rate limit for a specific key."""
        try:
            await self.redis.delete(key)
            return True
        except RedisError as e:
            logger.error(f"Failed to reset rate limit for {key}: {e}")
            return False


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware.

    Features:
    - Per-IP limits on credential endpoints
    - Per-user limits (per-IP when anonymous) elsewhere
    - Fails open when Redis is unavailable
    - ``X-RateLimit-*`` headers on every limited response, ``Retry-After`` on 429
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        rules: Optional[List[RateLimitRule]] = None,
        redis_client: Optional[Redis] = None,
        key_prefix: str = "ratelimit",
        enable_headers: bool = True,
    ):
        """
        Initialize rate limiting middleware.

        Args:
            app: The ASGI application
            settings: Application settings (Redis URL, limits)
            rules: Rate limit rules (default: from settings)
            redis_client: Pre-built client; created lazily from settings otherwise
            key_prefix: Prefix for Redis keys
            enable_headers: Whether to add rate limit headers to responses
        """
        super().__init__(app)
        self.redis_url = settings.redis_url
        self.rules = rules or default_rules(settings)
        self.redis_client = redis_client
        self.limiter: Optional[SlidingWindowRateLimiter] = (
            SlidingWindowRateLimiter(redis_client) if redis_client else None
        )
        self.key_prefix = key_prefix
        self.enable_headers = enable_headers
        self._initialized = redis_client is not None

    async def _initialize(self):
        """Initialize Redis connection lazily."""
        try:
            self.redis_client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                health_check_interval=30,
            )
            self.limiter = SlidingWindowRateLimiter(self.redis_client)
            logger.info("Rate limiter initialized successfully")
        except (RedisError, ValueError) as e:
            logger.error(f"Failed to initialize rate limiter: {e}")
        self._initialized = True

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._initialized:
            await self._initialize()

        if not self.limiter or request.url.path in ['/health', '/ready']:
            return await call_next(request)

        result = await self._check_rate_limits(request)

        if not result['allowed']:
            logger.warning(
                f"Rate limit exceeded: {request.method} {request.url.path} "
                f"client={self._get_client_ip(request)}"
            )
            response = JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    'success': False,
                    'message': 'Too many requests. Please try again later.',
                    'error': 'RATE_LIMIT_EXCEEDED',
                },
            )
            if self.enable_headers:
                self._add_rate_limit_headers(response, result)
            return response

        response = await call_next(request)

        if self.enable_headers and result['limit']:
            self._add_rate_limit_headers(response, result)

        return response

    async def _check_rate_limits(self, request: Request) -> Dict[str, Any]:
        """
        Check all applicable rate limits; the most restrictive one wins.
        """
        results = {
            'allowed': True,
            'limit': 0,
            'remaining': 0,
            'reset': 0,
            'retry_after': 0,
        }

        for rule in self._get_applicable_rules(request):
            key = self._generate_key(request, rule)
            allowed, metadata = await self.limiter.is_allowed(
                key=key,
                max_requests=rule.max_requests,
                window_seconds=WINDOW_SECONDS[rule.window],
            )

            if not allowed:
                results['allowed'] = False
                results['retry_after'] = max(results['retry_after'], metadata['retry_after'])

            if metadata['remaining'] < results['remaining'] or results['limit'] == 0:
                results['limit'] = metadata['limit']
                results['remaining'] = metadata['remaining']
                results['reset'] = metadata['reset']

        return results

    def _get_applicable_rules(self, request: Request) -> List[RateLimitRule]:
        applicable = []
        for rule in self.rules:
            if rule.paths and not any(request.url.path.startswith(path) for path in rule.paths):
                continue
            if rule.methods and request.method not in rule.methods:
                continue
            applicable.append(rule)
        return applicable

    def _generate_key(self, request: Request, rule: RateLimitRule) -> str:
        parts = [self.key_prefix, rule.strategy.value, rule.window.value]

        if rule.strategy == RateLimitStrategy.IP_ADDRESS:
            parts.append(self._get_client_ip(request))
            if rule.paths:
                parts.append(request.url.path)

        elif rule.strategy == RateLimitStrategy.USER_ID:
            user_id = self._get_user_id(request)
            # Fall back to IP if user not authenticated
            parts.append(user_id if user_id else f"ip:{self._get_client_ip(request)}")

        elif rule.strategy == RateLimitStrategy.ENDPOINT:
            parts.append(request.url.path)

        return ":".join(parts)

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip

        return request.client.host if request.client else 'unknown'

    def _get_user_id(self, request: Request) -> Optional[str]:
        # set by the authentication middleware
        user = getattr(request.state, 'user', None)
        return str(user.id) if user is not None else None

    def _add_rate_limit_headers(self, response: Response, result: Dict[str, Any]):
        response.headers['X-RateLimit-Limit'] = str(result['limit'])
        response.headers['X-RateLimit-Remaining'] = str(result['remaining'])
        response.headers['X-RateLimit-Reset'] = str(result['reset'])

        if not result['allowed']:
            response.headers['Retry-After'] = str(result['retry_after'])

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            logger.info("Rate limiter closed")
