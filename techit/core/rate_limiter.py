"""
Sliding-window rate limiting.

Every limiter owns a ``SlidingWindowStore`` that remembers, per key, the
timestamps of the hits that still fall inside the window. Hits older than the
window are dropped whenever the key is touched, so the count is always the
number of requests made during the last ``window_seconds``. Keys left with no
hits are removed.
"""

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from fastapi import Depends, Request
from fastapi.responses import JSONResponse

from techit.core.auth import get_payload

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


@dataclass
class WindowState:
    limit: int
    hits: int
    reset_in: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.hits)

    @property
    def exceeded(self) -> bool:
        return self.hits > self.limit


class SlidingWindowStore:
    """
    Keys only live while they hold hits inside the window. Touching a key
    drops it once it empties, and ``incr`` sweeps every expired key at most
    once per window so callers that never come back do not pile up.
    """

    def __init__(self, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.clock = clock
        self.hits: Dict[str, Deque[float]] = {}
        self.last_sweep = clock()

    def _current(self, key: str, now: float) -> Optional[Deque[float]]:
        hits = self.hits.get(key)
        if hits is None:
            return None
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self.hits[key]
            return None
        return hits

    def _reset_in(self, hits: Optional[Deque[float]], now: float) -> int:
        if not hits:
            return 0
        return max(0, math.ceil(hits[0] + self.window_seconds - now))

    def sweep(self, now: Optional[float] = None):
        now = self.clock() if now is None else now
        cutoff = now - self.window_seconds
        # the newest hit is on the right; if it expired the whole key did
        expired = [key for key, hits in self.hits.items() if not hits or hits[-1] <= cutoff]
        for key in expired:
            del self.hits[key]
        self.last_sweep = now
        if expired:
            logger.debug("Dropped %d expired rate-limit keys", len(expired))

    def incr(self, key: str) -> tuple[int, int]:
        """Record a hit and return (hits inside the window, seconds until the oldest expires)."""
        now = self.clock()
        if now - self.last_sweep >= self.window_seconds:
            self.sweep(now)
        hits = self._current(key, now)
        if hits is None:
            hits = self.hits[key] = deque()
        hits.append(now)
        return len(hits), self._reset_in(hits, now)

    def count(self, key: str) -> tuple[int, int]:
        now = self.clock()
        hits = self._current(key, now)
        return (len(hits) if hits else 0), self._reset_in(hits, now)


class RateLimitExceeded(Exception):
    def __init__(self, limiter: "RateLimiter", state: WindowState):
        self.limiter = limiter
        self.state = state
        super().__init__(f"{limiter.name} limit exceeded")


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """
    One named limit: at most ``max_requests`` per ``window_seconds`` per key.

    ``key_func`` and ``skip`` receive the request and the decoded JWT payload
    (or None for anonymous callers).
    """

    def __init__(
        self,
        name: str,
        window_seconds: float,
        max_requests: int,
        message: dict,
        key_func: Callable[[Request, Optional[dict]], str],
        skip: Optional[Callable[[Request, Optional[dict]], bool]] = None,
        standard_headers: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.max_requests = max_requests
        self.message = message
        self.key_func = key_func
        self.skip = skip
        self.standard_headers = standard_headers
        self.store = SlidingWindowStore(window_seconds, clock)

    def key(self, request: Request, payload: Optional[dict] = None) -> str:
        return self.key_func(request, payload)

    def skipped(self, request: Request, payload: Optional[dict] = None) -> bool:
        return bool(self.skip and self.skip(request, payload))

    def hit(self, request: Request, payload: Optional[dict] = None) -> Optional[WindowState]:
        if self.skipped(request, payload):
            return None
        hits, reset_in = self.store.incr(self.key(request, payload))
        return WindowState(self.max_requests, hits, reset_in)

    def peek(self, request: Request, payload: Optional[dict] = None) -> WindowState:
        hits, reset_in = self.store.count(self.key(request, payload))
        return WindowState(self.max_requests, hits, reset_in)

    def enforce(self, request: Request, payload: Optional[dict] = None) -> Optional[WindowState]:
        state = self.hit(request, payload)
        if state is not None and state.exceeded:
            logger.warning("%s limit exceeded for %s", self.name, self.key(request, payload))
            raise RateLimitExceeded(self, state)
        return state

    def guard(self, request: Request, payload: Optional[dict] = None) -> WindowState:
        """Reject once the key already used up its budget, without counting this request."""
        state = self.peek(request, payload)
        if state.hits >= self.max_requests:
            logger.warning("%s limit exceeded for %s", self.name, self.key(request, payload))
            raise RateLimitExceeded(self, WindowState(self.max_requests, state.hits + 1, state.reset_in))
        return state

    def headers(self, state: Optional[WindowState]) -> Dict[str, str]:
        if state is None or not self.standard_headers:
            return {}
        return {
            "RateLimit-Limit": str(state.limit),
            "RateLimit-Remaining": str(state.remaining),
            "RateLimit-Reset": str(state.reset_in),
        }

    def rejection(self, state: WindowState) -> JSONResponse:
        headers = self.headers(state)
        headers["Retry-After"] = str(state.reset_in)
        return JSONResponse(status_code=429, content=self.message, headers=headers)


@dataclass
class Limiters:
    general: RateLimiter
    daily: RateLimiter
    login: RateLimiter
    admin: RateLimiter


def _user_id(payload: Optional[dict]) -> Optional[str]:
    return payload.get("_id") if payload else None


def build_limiters(
    general_max: int = 100,
    daily_max: int = 1000,
    login_max: int = 5,
    admin_max: int = 50,
    clock: Callable[[], float] = time.monotonic,
) -> Limiters:
    general = RateLimiter(
        "general",
        15 * MINUTE,
        general_max,
        {
            "error": "יותר מדי בקשות מכתובת IP זו, נסה שוב מאוחר יותר.",
            "retryAfter": "15 דקות",
        },
        key_func=lambda request, payload: f"{client_ip(request)}:{_user_id(payload) or 'anonymous'}",
        clock=clock,
    )
    daily = RateLimiter(
        "daily",
        DAY,
        daily_max,
        {
            "error": f"חרגת ממספר הבקשות המותר ליום ({daily_max}), נסה שוב מחר.",
            "daily_limit": daily_max,
            "reset_time": "24 שעות",
        },
        key_func=lambda request, payload: _user_id(payload) or client_ip(request),
        skip=lambda request, payload: bool(payload) and payload.get("isAdmin") is True,
        standard_headers=False,
        clock=clock,
    )
    login = RateLimiter(
        "login",
        15 * MINUTE,
        login_max,
        {
            "error": "יותר מדי ניסיונות התחברות, נסה שוב בעוד 15 דקות.",
            "attempts": login_max,
            "window": "15 דקות",
        },
        key_func=lambda request, payload: client_ip(request),
        clock=clock,
    )
    admin = RateLimiter(
        "admin",
        10 * MINUTE,
        admin_max,
        {
            "error": "יותר מדי פעולות ניהול, נסה שוב בעוד 10 דקות.",
            "admin_limit": admin_max,
            "window": "10 דקות",
        },
        key_func=lambda request, payload: f"admin:{_user_id(payload) or client_ip(request)}",
        standard_headers=False,
        clock=clock,
    )
    return Limiters(general=general, daily=daily, login=login, admin=admin)


async def admin_limit(request: Request, payload: dict = Depends(get_payload)) -> dict:
    '''
    Authenticated payload of a caller that is still inside the admin budget
    '''
    request.app.state.limiters.admin.enforce(request, payload)
    return payload


async def login_guard(request: Request):
    request.app.state.limiters.login.guard(request)
