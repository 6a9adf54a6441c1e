"""
Tests for utils.rate_limiter module.
"""

from unittest.mock import AsyncMock, patch

from utils.rate_limiter import AsyncRateLimiter


class TestAsyncRateLimiter:
    """Tests for AsyncRateLimiter class."""

    async def test_unlimited(self):
        """Should never sleep when the rate is zero."""
        limiter = AsyncRateLimiter(0)

        with patch("utils.rate_limiter.asyncio.sleep", new=AsyncMock()) as sleep:
            for _ in range(5):
                await limiter.acquire()

        sleep.assert_not_awaited()

    async def test_spaces_calls(self):
        """Should delay each next call by the minimal interval."""
        limiter = AsyncRateLimiter(10)

        with patch("utils.rate_limiter.asyncio.sleep", new=AsyncMock()) as sleep:
            for _ in range(3):
                await limiter.acquire()

        waits = [c.args[0] for c in sleep.await_args_list]
        assert len(waits) == 2
        assert 0 < waits[0] <= 0.1
        assert waits[0] < waits[1] <= 0.2

    async def test_context_manager(self):
        """Should acquire on enter."""
        limiter = AsyncRateLimiter(0)

        async with limiter as acquired:
            assert acquired is limiter
