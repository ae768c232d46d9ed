"""Per-client request rate and daily quota enforcement."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_at: datetime


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of a daily quota check."""

    allowed: bool
    used: int
    remaining: int
    reset_at: datetime


@dataclass
class _WindowState:
    count: int
    reset_at: datetime


@dataclass
class _DayState:
    count: int
    day: date


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class RateLimiter:
    """Fixed window per client, opened on the client's first request."""

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.max_requests = max_requests
        self.window = timedelta(seconds=window_seconds)
        self._clock = clock
        self._windows: dict[str, _WindowState] = {}
        self._lock = threading.Lock()

    def check(self, client_id: str) -> RateLimitDecision:
        """Count a request for the client if the window still has room."""
        now = self._clock()
        with self._lock:
            state = self._windows.get(client_id)
            if state is None or state.reset_at <= now:
                state = _WindowState(count=0, reset_at=now + self.window)
                self._windows[client_id] = state
            allowed = state.count < self.max_requests
            if allowed:
                state.count += 1
            remaining = max(0, self.max_requests - state.count)
            return RateLimitDecision(
                allowed=allowed, remaining=remaining, reset_at=state.reset_at
            )

    def reset(self, client_id: str) -> None:
        """Forget the client's current window."""
        with self._lock:
            self._windows.pop(client_id, None)

    def sweep(self) -> int:
        """Drop expired windows and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, state in self._windows.items() if state.reset_at <= now]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def stats(self) -> list[dict[str, object]]:
        """Return the active windows."""
        with self._lock:
            return [
                {
                    "client_id": key,
                    "count": state.count,
                    "reset_at": state.reset_at.isoformat(),
                }
                for key, state in self._windows.items()
            ]


class DailyQuota:
    """Per-client request allowance that resets at local midnight."""

    def __init__(
        self, max_daily: int = 1000, clock: Callable[[], datetime] = _local_now
    ) -> None:
        self.max_daily = max_daily
        self._clock = clock
        self._days: dict[str, _DayState] = {}
        self._lock = threading.Lock()

    def check(self, client_id: str) -> QuotaDecision:
        """Count a request against today's allowance if any is left."""
        now = self._clock()
        today = now.date()
        with self._lock:
            state = self._days.get(client_id)
            if state is None or state.day != today:
                state = _DayState(count=0, day=today)
                self._days[client_id] = state
            allowed = state.count < self.max_daily
            if allowed:
                state.count += 1
            return QuotaDecision(
                allowed=allowed,
                used=state.count,
                remaining=max(0, self.max_daily - state.count),
                reset_at=_next_midnight(now),
            )

    def reset(self, client_id: str) -> None:
        """Forget the client's usage for today."""
        with self._lock:
            self._days.pop(client_id, None)

    def sweep(self) -> int:
        """Drop entries from previous days and return how many were removed."""
        today = self._clock().date()
        with self._lock:
            stale = [key for key, state in self._days.items() if state.day != today]
            for key in stale:
                del self._days[key]
        return len(stale)

    def stats(self) -> list[dict[str, object]]:
        """Return today's usage per client."""
        with self._lock:
            return [
                {"client_id": key, "count": state.count, "date": state.day.isoformat()}
                for key, state in self._days.items()
            ]


@dataclass
class UsageLimiter:
    """Rate limiter and daily quota shared by every request in the process."""

    rate_limiter: RateLimiter
    daily_quota: DailyQuota

    def sweep(self) -> None:
        """Purge expired rate windows and stale daily entries."""
        windows = self.rate_limiter.sweep()
        days = self.daily_quota.sweep()
        if windows or days:
            _logger.info(
                "Swept usage state: rate_windows=%s daily_entries=%s", windows, days
            )

    def reset(self, client_id: str) -> None:
        """Clear all usage state for a client."""
        self.rate_limiter.reset(client_id)
        self.daily_quota.reset(client_id)

    def stats(self) -> dict[str, object]:
        """Return usage state for monitoring."""
        rate_entries = self.rate_limiter.stats()
        daily_entries = self.daily_quota.stats()
        return {
            "rate_limits": {"active_clients": len(rate_entries), "entries": rate_entries},
            "daily_limits": {
                "active_clients": len(daily_entries),
                "entries": daily_entries,
            },
        }


def _next_midnight(now: datetime) -> datetime:
    tomorrow = now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=now.tzinfo)
