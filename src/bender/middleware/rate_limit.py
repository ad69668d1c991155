"""Rate limiting middleware.

A small fixed-window, in-memory limiter keyed by client address. Good
enough for a single process; anything bigger wants a shared store.
"""

import threading
import time
from dataclasses import dataclass

from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.http.status import error_body
from bender.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Configuration for request rate limiting.

    Defaults allow 100 requests per client per 15 minutes. An empty
    ``methods`` tuple limits every method.
    """

    requests: int = 100
    window_seconds: int = 15 * 60
    block_seconds: int = 0
    methods: tuple[str, ...] = ()
    paths: tuple[str, ...] = ("/",)
    key_header: str | None = "x-forwarded-for"
    message: str = "Too many requests, please try again later."


class RateLimitMiddleware:
    """In-memory fixed-window limiter."""

    __slots__ = ("_config", "_lock", "_next_sweep", "_state")

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        self._config = config or RateLimitConfig()
        self._lock = threading.Lock()
        self._state: dict[str, tuple[int, float, float]] = {}
        self._next_sweep = 0.0

    def _path_matches(self, path: str) -> bool:
        for prefix in self._config.paths:
            if prefix == "/" or path == prefix or path.startswith(f"{prefix}/"):
                return True
        return False

    def _identity_key(self, request: CanonicalRequest) -> str:
        header_name = self._config.key_header
        if header_name:
            raw = request.headers.get(header_name)
            if raw:
                # Respect standard comma-separated proxy chain, first hop is client.
                forwarded = raw.split(",")[0].strip()
                if forwarded:
                    return forwarded
        return request.client or "unknown"

    def _check_and_update(self, key: str, now: float) -> tuple[bool, int, int]:
        """Returns ``(allowed, remaining, retry_after)``."""
        cfg = self._config
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            count, window_start, blocked_until = self._state.get(key, (0, now, 0.0))
            if blocked_until > now:
                return False, 0, max(1, int(blocked_until - now))

            if now - window_start >= cfg.window_seconds:
                count = 0
                window_start = now

            count += 1
            if count > cfg.requests:
                penalty = cfg.block_seconds or int(window_start + cfg.window_seconds - now)
                blocked_until = now + penalty if cfg.block_seconds else 0.0
                self._state[key] = (count, window_start, blocked_until)
                return False, 0, max(1, penalty)

            self._state[key] = (count, window_start, 0.0)
            return True, cfg.requests - count, 0

    def _sweep(self, now: float) -> None:
        """Drop clients whose window has ended and who are not blocked.

        Runs at most once per window, under the lock.
        """
        window = self._config.window_seconds
        stale = [
            key
            for key, (_, window_start, blocked_until) in self._state.items()
            if now - window_start >= window and blocked_until <= now
        ]
        for key in stale:
            del self._state[key]
        self._next_sweep = now + window

    def reset(self) -> None:
        """Forget every client."""
        with self._lock:
            self._state.clear()

    async def __call__(self, request: CanonicalRequest, response: CanonicalResponse, next: Next) -> None:
        cfg = self._config
        if (cfg.methods and request.method not in cfg.methods) or not self._path_matches(request.path):
            await next()
            return

        allowed, remaining, retry_after = self._check_and_update(
            self._identity_key(request), time.monotonic()
        )
        response.set_header("RateLimit-Limit", str(cfg.requests))
        response.set_header("RateLimit-Remaining", str(remaining))
        if not allowed:
            response.set_header("Retry-After", str(retry_after))
            response.set_status(429).send_json(error_body(429, cfg.message))
            return
        await next()
