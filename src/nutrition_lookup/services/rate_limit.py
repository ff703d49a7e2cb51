"""Local request budgets per endpoint category."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from nutrition_lookup.domain.errors import LOCAL_RATE_LIMITED, APIError


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class RateLimitRule:
    """Maximum number of requests allowed per window."""

    max_requests: int
    window_seconds: float = 60.0


@dataclass
class _Window:
    count: int
    resets_at: datetime


@dataclass
class RateLimiter:
    """Fixed-window request counters, one per category.

    Fails fast with a LOCAL_RATE_LIMITED error before a doomed request is
    sent to the provider.
    """

    rules: dict[str, RateLimitRule]
    clock: Callable[[], datetime] = _utcnow
    _windows: dict[str, _Window] = field(default_factory=dict)

    def check(self, category: str) -> None:
        """Consume one request from the category budget or raise."""
        rule = self.rules.get(category)
        if rule is None:
            return
        now = self.clock()
        window = self._windows.get(category)
        if window is None or now >= window.resets_at:
            self._windows[category] = _Window(
                count=1,
                resets_at=now + timedelta(seconds=rule.window_seconds),
            )
            return
        if window.count >= rule.max_requests:
            retry_after = (window.resets_at - now).total_seconds()
            raise APIError(
                f"Rate limit exceeded for {category}. Try again later.",
                status=429,
                code=LOCAL_RATE_LIMITED,
                retry_after=max(retry_after, 0.0),
            )
        window.count += 1
