"""Per-client fixed-window rate limiting as FastAPI dependencies.

Clients are keyed by remote address. Counts live in process memory only;
separate workers each enforce their own window.
"""

import threading
import time
from typing import Dict, Tuple

from fastapi import HTTPException, Request, status

from agentshield import config


class RateLimiter:
    """Allows ``max_requests`` per client per ``window_seconds`` window."""

    def __init__(self, max_requests: int, window_seconds: int, message: str) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, client: str) -> bool:
        """Count one request for ``client``. False once the window is exhausted."""
        now = time.monotonic()
        with self._lock:
            started, count = self._windows.get(client, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[client] = (started, count)
            if len(self._windows) > 10000:
                self._prune(now)
            return count <= self.max_requests

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items()
                   if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]

    async def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        if not self.hit(client):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
            )


global_limiter = RateLimiter(
    config.RATE_LIMIT_GLOBAL_MAX,
    config.RATE_LIMIT_GLOBAL_WINDOW,
    "Too many requests, please try again later.",
)

scan_limiter = RateLimiter(
    config.RATE_LIMIT_SCAN_MAX,
    config.RATE_LIMIT_SCAN_WINDOW,
    "Scan rate limit exceeded. Max 30 scans per minute.",
)
