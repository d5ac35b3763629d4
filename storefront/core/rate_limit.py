"""
Rate limiting middleware for the storefront API
Uses in-memory storage with sliding window algorithm
"""
import time
from typing import Dict, Tuple
from collections import defaultdict

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    Counters live in process memory, so each worker enforces its own limits.
    """

    def __init__(self):
        # {identifier: [timestamp, ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        self._last_cleanup = time.time()
        self._cleanup_interval = 60  # seconds

    def _cleanup_old_entries(self, window_seconds: int = 60):
        """Remove entries older than the largest window we care about"""
        now = time.time()

        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2

        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [ts for ts in self._requests[identifier] if ts > cutoff]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int = 60
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = time.time()
        window_start = now - window_seconds

        requests_in_window = [ts for ts in self._requests[identifier] if ts > window_start]
        self._requests[identifier] = requests_in_window

        if len(requests_in_window) >= max_requests:
            oldest_timestamp = min(requests_in_window)
            retry_after = int(oldest_timestamp + window_seconds - now) + 1
            return False, 0, retry_after

        self._requests[identifier].append(now)

        remaining = max_requests - len(requests_in_window) - 1
        return True, remaining, 0

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


# Requests per minute
RATE_LIMITS = {
    "authenticated": 1000,
    "unauthenticated": 100,
    "credentials": 10,
}

# Paths that are exempt from rate limiting
EXEMPT_PATHS = {
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}

# Credential endpoints get their own, stricter bucket per client IP
CREDENTIAL_PATHS = {
    "/api/v1/members/login",
    "/api/v1/members/register",
}


def get_client_ip(request: Request) -> str:
    """Get the client IP, considering proxies"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware that applies rate limiting based on authentication status.

    Rate limits:
    - Member / admin tokens (JWT): 1000 req/min
    - Unauthenticated: 100 req/min
    - Login and register: 10 req/min per IP

    Headers returned:
    - X-RateLimit-Limit: Maximum requests per window
    - X-RateLimit-Remaining: Remaining requests in current window
    - X-RateLimit-Reset: Seconds until the window resets (when limited)
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        # CORS preflight
        if request.method == "OPTIONS":
            return await call_next(request)

        identifier, limit = self._get_identifier_and_limit(request)

        is_allowed, remaining, retry_after = rate_limiter.is_allowed(
            identifier=identifier,
            max_requests=limit,
            window_seconds=60
        )

        if not is_allowed:
            # JSONResponse instead of HTTPException so CORS headers are still applied
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please slow down."},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(retry_after),
                    "Retry-After": str(retry_after),
                }
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        return response

    def _get_identifier_and_limit(self, request: Request) -> Tuple[str, int]:
        """
        Determine the rate limit identifier and limit.

        Priority:
        1. Credential endpoints (per IP, strict)
        2. JWT token (Authorization: Bearer header)
        3. IP address (unauthenticated)
        """
        client_ip = get_client_ip(request)

        if request.method == "POST" and request.url.path in CREDENTIAL_PATHS:
            return f"credentials:{request.url.path}:{client_ip}", RATE_LIMITS["credentials"]

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token_hash = hash(auth_header)
            return f"jwt:{token_hash}", RATE_LIMITS["authenticated"]

        return f"ip:{client_ip}", RATE_LIMITS["unauthenticated"]
