"""Request context middleware — request ids, access logging and per-caller rate limits.

One pass per request:
- take ``X-Request-ID`` from the caller or mint one
- work out who is calling: the bearer token's subject, else the client address
- charge that caller's token bucket, answering 429 when it is empty
- log the finished request with the caller's user id

Rate limiting keys on the verified token subject, so one user keeps a single
budget across addresses and anonymous traffic shares the smaller
``anonymous_rate_limit_per_minute`` budget per address. The token is only
checked for a valid signature here; ``require_auth`` still decides whether
the account may act.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.config import settings
from ..core.logging_config import request_id_var
from ..core.token_factory import decode_token

logger = logging.getLogger(__name__)

_EXEMPT_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


class TokenBucketLimiter:
    """In-process token buckets keyed by caller.

    Each key holds ``(tokens, last_seen)``. Buckets idle for longer than
    ``idle_seconds`` are dropped every ``sweep_every`` checks.
    """

    def __init__(self, sweep_every: int = 100, idle_seconds: float = 120.0):
        self._buckets: dict[str, tuple[float, float]] = {}
        self._lock = threading.Lock()
        self._checks = 0
        self.sweep_every = sweep_every
        self.idle_seconds = idle_seconds

    def __len__(self) -> int:
        return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._checks = 0

    def check(self, key: str, per_minute: int, now: Optional[float] = None) -> tuple[bool, float]:
        """Take one token from *key*'s bucket.

        Returns ``(allowed, retry_after)``; *retry_after* is the seconds until
        the next token, 0.0 when allowed. A limit of 0 or less disables it.
        """
        if per_minute <= 0:
            return True, 0.0
        if now is None:
            now = time.monotonic()

        with self._lock:
            self._checks += 1
            if self._checks % self.sweep_every == 0:
                self._sweep(now)

            refill_per_second = per_minute / 60.0
            tokens, last_seen = self._buckets.get(key, (float(per_minute), now))
            tokens = min(float(per_minute), tokens + (now - last_seen) * refill_per_second)

            if tokens >= 1.0:
                self._buckets[key] = (tokens - 1.0, now)
                return True, 0.0
            self._buckets[key] = (tokens, now)
            return False, (1.0 - tokens) / refill_per_second

    def _sweep(self, now: float) -> None:
        cutoff = now - self.idle_seconds
        for key in [k for k, (_, seen) in self._buckets.items() if seen < cutoff]:
            del self._buckets[key]


rate_limiter = TokenBucketLimiter()


@dataclass(frozen=True)
class Caller:
    key: str
    user_id: Optional[str] = None

    @property
    def per_minute(self) -> int:
        if self.user_id is not None:
            return settings.rate_limit_per_minute
        return settings.anonymous_rate_limit_per_minute


def _client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def identify_caller(request: Request) -> Caller:
    """Bucket key for *request*: ``user:<id>`` for a valid bearer token, else ``ip:<address>``."""
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        payload = decode_token(credentials.strip(), settings.jwt_secret_key, settings.jwt_algorithm)
        if payload is not None:
            return Caller(key=f"user:{payload.sub}", user_id=payload.sub)
    return Caller(key=f"ip:{_client_address(request)}")


def _rate_limited(rid: str, retry_after: float) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": "RATE_LIMITED",
            "message": "Too many requests",
            "details": {"retry_after": round(retry_after, 1)},
        },
        headers={"Retry-After": str(int(retry_after) + 1), "X-Request-ID": rid},
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id, caller identification, rate limiting and the access log line."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(rid)
        caller = identify_caller(request)
        path = request.url.path

        if path not in _EXEMPT_PATHS:
            allowed, retry_after = rate_limiter.check(caller.key, caller.per_minute)
            if not allowed:
                logger.warning(
                    "Rate limit exceeded",
                    extra={
                        "caller": caller.key,
                        "user_id": caller.user_id,
                        "path": path,
                        "retry_after": round(retry_after, 1),
                    },
                )
                return _rate_limited(rid, retry_after)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        logger.info(
            "Request completed",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "user_id": caller.user_id,
            },
        )
        return response
