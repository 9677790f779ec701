"""
Token bucket rate limiter for the metadata provider clients.

Hey future me - this throttles individual HTTP calls to Deezer and iTunes. It is NOT
the inter-artist delay of the import orchestrator (that one is a blunt fixed sleep per
job). This one smooths out the burst of /album/{id} detail calls a single discography
fetch fires off.

ALGORITHM: token bucket
- bucket holds max_tokens
- refilled at refill_rate tokens/sec
- every request consumes one token, waits when the bucket is empty

ADAPTIVE BACKOFF on rate limit answers (429, or Deezer's "error code 4"):
- first hit waits initial_backoff_seconds, every further hit doubles it
- an answer that is NOT a rate limit resets the backoff. Only the caller can tell (Deezer
  throttles with HTTP 200), so the client calls reset_backoff() itself

USAGE:
    limiter = RateLimiter.for_deezer()

    async with limiter:
        response = await client.get(url)

    # On a rate limit answer:
    await limiter.handle_rate_limit_response(retry_after)
    # On anything else:
    limiter.reset_backoff()
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Configuration for a rate limiter."""

    max_tokens: int = 10  # Bucket size (burst)
    refill_rate: float = 2.0  # Tokens per second
    max_backoff_seconds: float = 60.0
    initial_backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass
class RateLimiter:
    """Token bucket rate limiter with adaptive backoff.

    One instance per provider, created by the composition root and shared by every
    request that client makes. Tests build their own so nothing leaks between cases.
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    name: str = "default"

    _tokens: float = field(default=0.0, init=False)
    _last_refill: float = field(default_factory=time.monotonic, init=False)
    _current_backoff: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.config.max_tokens)
        self._current_backoff = self.config.initial_backoff_seconds

    @classmethod
    def for_deezer(cls) -> "RateLimiter":
        """Deezer allows roughly 50 requests / 5 seconds. We stay at half of that."""
        return cls(
            config=RateLimiterConfig(
                max_tokens=15,
                refill_rate=5.0,
                max_backoff_seconds=30.0,
                initial_backoff_seconds=0.5,
            ),
            name="deezer",
        )

    @classmethod
    def for_itunes(cls) -> "RateLimiter":
        """iTunes Search API is documented at ~20 calls/minute, no real bursts."""
        return cls(
            config=RateLimiterConfig(
                max_tokens=3,
                refill_rate=0.33,
                max_backoff_seconds=120.0,
                initial_backoff_seconds=5.0,
            ),
            name="itunes",
        )

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(
            float(self.config.max_tokens), self._tokens + elapsed * self.config.refill_rate
        )
        self._last_refill = now

    async def acquire(self) -> None:
        """Take one token, sleeping until one is available."""
        while True:
            async with self._lock:
                self._refill_tokens()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    logger.debug(
                        f"RateLimiter[{self.name}]: Token acquired, "
                        f"{self._tokens:.1f} remaining"
                    )
                    return
                wait_time = (1.0 - self._tokens) / self.config.refill_rate

            logger.debug(
                f"RateLimiter[{self.name}]: No tokens available, waiting {wait_time:.2f}s"
            )
            await asyncio.sleep(wait_time)

    async def handle_rate_limit_response(self, retry_after: float | None = None) -> float:
        """Back off after the provider told us to slow down.

        Args:
            retry_after: Retry-After value from the response (seconds), if any

        Returns:
            The wait time actually used
        """
        async with self._lock:
            wait_time = float(retry_after) if retry_after is not None else self._current_backoff
            wait_time = min(wait_time, self.config.max_backoff_seconds)

            logger.warning(
                f"RateLimiter[{self.name}]: rate limited, waiting {wait_time:.1f}s "
                f"before retry (backoff level: {self._current_backoff:.1f}s)"
            )

            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )
            self._tokens = 0.0

        await asyncio.sleep(wait_time)
        return wait_time

    def reset_backoff(self) -> None:
        """Back to initial_backoff_seconds after a non-throttled answer."""
        self._current_backoff = self.config.initial_backoff_seconds

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        # Leaving the block says nothing about the answer, a 429 is a "successful" GET
        pass

    @property
    def available_tokens(self) -> float:
        """Current token count (for debugging and tests)."""
        self._refill_tokens()
        return self._tokens


__all__ = ["RateLimiter", "RateLimiterConfig"]
