"""Tests for the local rate limiter."""

from datetime import UTC, datetime, timedelta

import pytest

from nutrition_lookup.domain.errors import LOCAL_RATE_LIMITED, APIError
from nutrition_lookup.services.rate_limit import RateLimiter, RateLimitRule


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


def test_rate_limiter_blocks_after_budget() -> None:
    clock = _Clock()
    limiter = RateLimiter({"search": RateLimitRule(max_requests=2)}, clock=clock)

    limiter.check("search")
    limiter.check("search")
    with pytest.raises(APIError) as exc_info:
        limiter.check("search")

    assert exc_info.value.status == 429
    assert exc_info.value.code == LOCAL_RATE_LIMITED
    assert exc_info.value.retry_after == 60.0


def test_rate_limiter_resets_after_window() -> None:
    clock = _Clock()
    limiter = RateLimiter({"search": RateLimitRule(max_requests=1)}, clock=clock)

    limiter.check("search")
    with pytest.raises(APIError):
        limiter.check("search")
    clock.now += timedelta(seconds=61)

    limiter.check("search")


def test_rate_limiter_ignores_unknown_categories() -> None:
    limiter = RateLimiter({"search": RateLimitRule(max_requests=1)})

    for _ in range(5):
        limiter.check("barcode")

    limiter.check("search")


def test_rate_limiter_categories_are_independent() -> None:
    limiter = RateLimiter(
        {
            "token": RateLimitRule(max_requests=1),
            "search": RateLimitRule(max_requests=1),
        }
    )
    limiter.check("token")

    limiter.check("search")
    with pytest.raises(APIError):
        limiter.check("token")
