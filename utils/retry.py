"""
Повторные запросы к Claude.
Ретраи укладываются в общий бюджет времени вызова: если до дедлайна
не хватает времени на паузу, последняя ошибка отдаётся сразу.
"""

import asyncio
import time
from typing import Awaitable, Callable, TypeVar
from loguru import logger

from utils.errors import CollaboratorError

T = TypeVar("T")


class RetryableClaudeError(CollaboratorError):
    """Временная ошибка API Claude, запрос можно повторить."""
    pass


class ClaudeRateLimited(RetryableClaudeError):
    """Превышен лимит запросов."""
    pass


async def retry_within_budget(
    request: Callable[[], Awaitable[T]],
    budget: float,
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Выполняет запрос, повторяя его при RetryableClaudeError.

    Args:
        request: Фабрика корутины запроса (новая корутина на каждую попытку).
        budget: Сколько секунд есть на все попытки вместе с паузами.
        max_attempts: Максимальное количество попыток.
        delay: Пауза перед второй попыткой (секунды).
        backoff: Множитель паузы.
        clock: Источник монотонного времени.

    Прочие ошибки, включая CollaboratorTimeout, не повторяются.
    """
    deadline = clock() + budget
    current_delay = delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await request()
        except RetryableClaudeError as e:
            remaining = deadline - clock()
            if attempt == max_attempts or remaining <= current_delay:
                logger.error(
                    f"Claude request failed on attempt {attempt}/{max_attempts} "
                    f"({remaining:.1f}s of budget left): {e}"
                )
                raise

            logger.warning(
                f"Claude request attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {current_delay:.1f}s..."
            )
            await asyncio.sleep(current_delay)
            current_delay *= backoff

    raise CollaboratorError("No attempts were made")
