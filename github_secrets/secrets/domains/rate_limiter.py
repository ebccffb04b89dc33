"""Client-side mirror of GitHub's request-rate budget.

The limiter knows nothing until the first response arrives. Each response
refreshes the remaining count and reset time from the x-ratelimit headers;
each acquire() spends one request. When the budget is spent before the
reset time, acquire() sleeps until the reset, unless that wait exceeds
max_wait, in which case it raises RateLimitedError.
"""
import logging
import threading
import time
from typing import Callable, Mapping, Optional

from .errors import RateLimitedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_SECONDS = 900.0
DEFAULT_BACKOFF_SECONDS = 60.0
MAX_RATE_LIMIT_RETRIES = 3

RATE_LIMIT_STATUSES = (403, 429)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # requests gives a case-insensitive dict; plain mappings need a scan
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def _as_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_rate_limited(status_code: int, headers: Mapping[str, str], message: str = "") -> bool:
    """Whether a response is GitHub refusing the request for rate reasons."""
    if status_code not in RATE_LIMIT_STATUSES:
        return False
    if _header(headers, "x-ratelimit-remaining") == "0":
        return True
    if _header(headers, "retry-after") is not None:
        return True
    return "rate limit" in (message or "").lower()


class RateLimiter:
    """Shared request budget for one batch. Safe to share between threads."""

    def __init__(
        self,
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_wait = max_wait
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.remaining: Optional[int] = None
        self.reset_at: Optional[float] = None
        self.limit: Optional[int] = None

    def acquire(self) -> None:
        """
        Spend one request from the budget, sleeping until the window resets
        when none is left.

        Raises:
            RateLimitedError: If the wait until reset exceeds max_wait
        """
        with self._lock:
            now = self._clock()
            if self.reset_at is not None and now >= self.reset_at:
                self._roll_over()
            if self.remaining is None or self.remaining > 0:
                if self.remaining is not None:
                    self.remaining -= 1
                return
            if self.reset_at is None:
                self.reset_at = now + DEFAULT_BACKOFF_SECONDS
            reset_at = self.reset_at
            wait = reset_at - now

        if wait > self.max_wait:
            raise RateLimitedError(
                f"Rate limit exhausted; budget resets in {int(wait)}s which exceeds the {int(self.max_wait)}s wait limit",
                reset_at=reset_at,
            )
        logger.warning(f"GitHub rate limit reached, waiting {int(wait) + 1}s for reset")
        self._sleep(wait)

        with self._lock:
            if self.reset_at == reset_at:
                self._roll_over()

    def _roll_over(self) -> None:
        # Window rolled over; the next response reports the new budget
        self.remaining = None
        self.reset_at = None

    def hold_until(self, reset_at: Optional[float] = None) -> None:
        """
        Record a rejection the limiter did not see in a response, so the next
        acquire() waits for reset_at (or the default backoff).
        """
        with self._lock:
            if self.remaining == 0 and self.reset_at is not None:
                return
            self.remaining = 0
            self.reset_at = reset_at if reset_at is not None else self._clock() + DEFAULT_BACKOFF_SECONDS

    def observe(self, headers: Mapping[str, str], status_code: int = 200, message: str = "") -> None:
        """Refresh the budget from a provider response."""
        remaining = _as_float(_header(headers, "x-ratelimit-remaining"))
        reset = _as_float(_header(headers, "x-ratelimit-reset"))
        limit = _as_float(_header(headers, "x-ratelimit-limit"))

        with self._lock:
            if limit is not None:
                self.limit = int(limit)

            if is_rate_limited(status_code, headers, message):
                retry_after = _as_float(_header(headers, "retry-after"))
                now = self._clock()
                if retry_after is not None:
                    reset_at = now + retry_after
                elif reset is not None:
                    reset_at = reset
                else:
                    reset_at = now + DEFAULT_BACKOFF_SECONDS
                self.remaining = 0
                self.reset_at = reset_at
                logger.info(f"Provider rejected request for rate limit; resets at {reset_at:.0f}")
                return

            if remaining is not None:
                self.remaining = int(remaining)
            if reset is not None:
                self.reset_at = reset

    def call(self, fn: Callable, *args, **kwargs):
        """
        Acquire a permit and call fn, waiting out provider rate-limit
        rejections a bounded number of times.
        """
        attempts = 0
        while True:
            self.acquire()
            try:
                return fn(*args, **kwargs)
            except RateLimitedError as e:
                attempts += 1
                if attempts > MAX_RATE_LIMIT_RETRIES:
                    raise
                self.hold_until(e.reset_at)
                logger.debug(f"Rate limited, retrying after reset (attempt {attempts})")
