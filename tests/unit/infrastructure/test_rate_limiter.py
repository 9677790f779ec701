"""Tests for the token bucket rate limiter."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from revyou.infrastructure.rate_limiter import RateLimiter, RateLimiterConfig


@pytest.fixture
def sleep(mocker: MagicMock) -> AsyncMock:
    return mocker.patch("revyou.infrastructure.rate_limiter.asyncio.sleep", new=AsyncMock())


class TestTokenBucket:
    async def test_burst_up_to_max_tokens_without_waiting(self, sleep: AsyncMock) -> None:
        limiter = RateLimiter(RateLimiterConfig(max_tokens=3, refill_rate=0.001))

        for _ in range(3):
            await limiter.acquire()

        sleep.assert_not_awaited()
        assert limiter.available_tokens < 1.0

    async def test_waits_when_bucket_is_empty(self, sleep: AsyncMock, mocker: MagicMock) -> None:
        limiter = RateLimiter(RateLimiterConfig(max_tokens=1, refill_rate=2.0))
        await limiter.acquire()

        # Pretend the sleep let enough time pass for one token
        async def refill(_seconds: float) -> None:
            limiter._tokens = 1.0

        sleep.side_effect = refill
        mocker.patch.object(limiter, "_refill_tokens")

        await limiter.acquire()

        sleep.assert_awaited_once()
        assert sleep.await_args.args[0] == pytest.approx(0.5)

    def test_presets(self) -> None:
        deezer = RateLimiter.for_deezer()
        itunes = RateLimiter.for_itunes()

        assert deezer.name == "deezer"
        assert itunes.name == "itunes"
        assert itunes.config.refill_rate < deezer.config.refill_rate


class TestBackoff:
    async def test_backoff_doubles_and_caps(self, sleep: AsyncMock) -> None:
        limiter = RateLimiter(
            RateLimiterConfig(initial_backoff_seconds=1.0, max_backoff_seconds=3.0)
        )

        waits = [await limiter.handle_rate_limit_response() for _ in range(4)]

        assert waits == [1.0, 2.0, 3.0, 3.0]

    async def test_retry_after_wins_but_is_capped(self, sleep: AsyncMock) -> None:
        limiter = RateLimiter(RateLimiterConfig(max_backoff_seconds=10.0))

        assert await limiter.handle_rate_limit_response(4.0) == 4.0
        assert await limiter.handle_rate_limit_response(120.0) == 10.0

    async def test_rate_limit_empties_bucket(self, sleep: AsyncMock) -> None:
        limiter = RateLimiter(RateLimiterConfig(max_tokens=5, refill_rate=0.001))

        await limiter.handle_rate_limit_response()

        assert limiter.available_tokens < 1.0

    async def test_reset_backoff_returns_to_initial_wait(self, sleep: AsyncMock) -> None:
        limiter = RateLimiter(RateLimiterConfig(initial_backoff_seconds=1.0))
        await limiter.handle_rate_limit_response()
        await limiter.handle_rate_limit_response()

        limiter.reset_backoff()

        assert await limiter.handle_rate_limit_response() == 1.0

    async def test_leaving_the_block_keeps_backoff(self, sleep: AsyncMock) -> None:
        # A throttled answer still comes back from a GET that did not raise
        limiter = RateLimiter(RateLimiterConfig(initial_backoff_seconds=1.0))
        await limiter.handle_rate_limit_response()
        limiter._tokens = 1.0

        async with limiter:
            pass

        assert await limiter.handle_rate_limit_response() == 2.0

