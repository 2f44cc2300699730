from __future__ import annotations

import threading
import time

from fastapi import Request

from scistu.core.config import settings


def describe_window(window_seconds: int) -> str:
    if window_seconds == 60:
        return "minute"
    if window_seconds % 60 == 0:
        return f"{window_seconds // 60} minutes"
    return f"{window_seconds} seconds"


class RateLimitExceeded(Exception):
    def __init__(self, limit: int, window_seconds: int, retry_after: float):
        super().__init__(f"Rate limit exceeded: {limit} requests per {describe_window(window_seconds)}")
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after


class FixedWindowRateLimiter:
    """Counts request timestamps per key inside a trailing window.

    A request is rejected once the number of timestamps newer than
    ``now - window_seconds`` reaches ``limit``. Accepted requests record
    ``now``; rejected ones record nothing.
    """

    def __init__(self, limit: int = 5, window_seconds: int = 60):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._events: dict[str, list[float]] = {}
        self._last_sweep = 0.0
        self._lock = threading.Lock()

    def _recent(self, key: str, now: float) -> list[float]:
        cutoff = now - self.window_seconds
        recent = [ts for ts in self._events.get(key, []) if ts > cutoff]
        if recent:
            self._events[key] = recent
        else:
            self._events.pop(key, None)
        return recent

    def _sweep(self, now: float) -> None:
        # Drops keys whose newest timestamp has left the window.
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        cutoff = now - self.window_seconds
        stale = [key for key, stamps in self._events.items() if not stamps or stamps[-1] <= cutoff]
        for key in stale:
            del self._events[key]

    def hit(self, key: str, now: float | None = None) -> int:
        now = time.time() if now is None else now
        with self._lock:
            self._sweep(now)
            recent = self._recent(key, now)
            if len(recent) >= self.limit:
                retry_after = max(0.0, recent[0] + self.window_seconds - now)
                raise RateLimitExceeded(self.limit, self.window_seconds, retry_after)
            recent.append(now)
            self._events[key] = recent
            return len(recent)

    def usage(self, key: str, now: float | None = None) -> int:
        now = time.time() if now is None else now
        with self._lock:
            return len(self._recent(key, now))

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._events)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._events.clear()
                self._last_sweep = 0.0
            else:
                self._events.pop(key, None)


humanize_limiter = FixedWindowRateLimiter(
    limit=settings.humanize_rate_limit,
    window_seconds=settings.humanize_rate_window_s,
)


def client_key(request: Request, session_id: str | None = None) -> str:
    session = (session_id or "").strip()
    if session:
        return f"session:{session}"
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
