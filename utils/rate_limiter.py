"""
Rate Limiter для рассылок.
Глобальное ограничение частоты отправок, чтобы не упираться в лимиты Telegram.
"""

import asyncio
import time
from typing import Optional

from loguru import logger


class AsyncRateLimiter:
    """
    Ограничивает количество операций в секунду для всех воркеров сразу.
    Каждый вызов acquire() резервирует следующий свободный слот времени.
    """

    def __init__(self, rate_per_second: float = 20.0):
        """
        Args:
            rate_per_second: Максимум операций в секунду (0 — без ограничения)
        """
        self.min_interval = 1.0 / rate_per_second if rate_per_second > 0 else 0.0
        self._next_slot: float = 0.0
        self._lock: Optional[asyncio.Lock] = None

    async def acquire(self) -> None:
        """Ждёт своей очереди на отправку."""
        if self.min_interval <= 0:
            return

        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            now = time.monotonic()
            wait = self._next_slot - now
            self._next_slot = max(now, self._next_slot) + self.min_interval

        if wait > 0:
            logger.debug(f"Rate limiter: waiting {wait:.3f}s")
            await asyncio.sleep(wait)

    async def __aenter__(self) -> "AsyncRateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None
