"""
Rate limiting middleware against login brute force and runaway clients.

In-memory sliding window per client. The club runs a single process; a
multi-worker deployment would need a shared store.
"""
import time
import logging
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from cannaclub.core.config import settings

logger = logging.getLogger(__name__)

EXEMPT_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


class RateLimiter:
    """Sliding window: at most `requests` hits per `window` seconds per client."""

    def __init__(self, requests: int = 100, window: int = 60):
        self.requests = requests
        self.window = window
        self.clients: Dict[str, Deque[float]] = defaultdict(deque)
        self.last_cleanup = time.monotonic()

    def is_allowed(self, client_id: str) -> Tuple[bool, int]:
        """Returns (allowed, remaining)."""
        now = time.monotonic()
        if now - self.last_cleanup > 300:
            self._cleanup(now)

        hits = self.clients[client_id]
        while hits and hits[0] <= now - self.window:
            hits.popleft()

        if len(hits) >= self.requests:
            return False, 0
        hits.append(now)
        return True, self.requests - len(hits)

    def reset(self) -> None:
        self.clients.clear()

    def _cleanup(self, now: float):
        cutoff = now - self.window
        for client_id in list(self.clients):
            hits = self.clients[client_id]
            if not hits or hits[-1] <= cutoff:
                del self.clients[client_id]
        self.last_cleanup = now
        logger.debug(f"Rate limiter cleanup: {len(self.clients)} active clients")


rate_limiter = RateLimiter(
    requests=settings.RATE_LIMIT_REQUESTS,
    window=settings.RATE_LIMIT_WINDOW_SECONDS
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies rate_limiter to every request except health and docs."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, remaining = rate_limiter.is_allowed(f"ip:{client_ip}")

        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_ip} on {request.method} {request.url.path}")
            # Exceptions raised in BaseHTTPMiddleware bypass FastAPI's handlers
            return JSONResponse(
                status_code=429,
                content={"detail": f"Rate limit exceeded. Try again in {settings.RATE_LIMIT_WINDOW_SECONDS} seconds."},
                headers={
                    "Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS),
                    "X-RateLimit-Limit": str(rate_limiter.requests),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rate_limiter.requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
