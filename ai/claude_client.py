"""
Claude API Client.
Обёртка для работы с Anthropic Claude API.
Каждый вызов ограничен общим таймаутом, внутри которого идут ретраи.
"""

import anthropic
import asyncio
from typing import Optional
from loguru import logger

from config.settings import settings
from utils.errors import CollaboratorError, CollaboratorTimeout
from utils.retry import retry_within_budget, RetryableClaudeError, ClaudeRateLimited


class ClaudeClient:
    """Клиент для работы с Claude API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        # Ретраи делаем сами, чтобы уложить их в общий таймаут
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key or settings.ANTHROPIC_API_KEY,
            max_retries=0,
        )
        self.model = model or settings.CLAUDE_MODEL
        self.timeout = timeout or settings.CLAUDE_TIMEOUT_SECONDS

    async def analyze(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Отправляет один запрос и возвращает текст ответа.

        Args:
            prompt: Пользовательский промпт
            system_prompt: Системный промпт
            max_tokens: Максимальное количество токенов
            timeout: Общий таймаут на вызов с ретраями (секунды)

        Returns:
            Текст ответа модели

        Raises:
            CollaboratorTimeout: не уложились в таймаут
            CollaboratorError: ошибка API после всех попыток
        """
        limit = timeout or self.timeout
        tokens = max_tokens or settings.CLAUDE_MAX_TOKENS
        try:
            return await asyncio.wait_for(
                retry_within_budget(
                    lambda: self._request(prompt, system_prompt, tokens),
                    budget=limit,
                    max_attempts=settings.CLAUDE_MAX_RETRIES + 1,
                ),
                timeout=limit,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Claude request timed out after {limit}s")
            raise CollaboratorTimeout(f"Claude did not respond in {limit}s") from e
        except CollaboratorError:
            raise
        except Exception as e:
            logger.error(f"Unexpected Claude client error: {e}")
            raise CollaboratorError(str(e)) from e

    async def _request(
        self,
        prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
    ) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            raise ClaudeRateLimited(str(e)) from e
        except anthropic.APIStatusError as e:
            # 4xx не повторяются
            if e.status_code < 500:
                raise CollaboratorError(str(e)) from e
            raise RetryableClaudeError(str(e)) from e
        except anthropic.APIError as e:
            raise RetryableClaudeError(str(e)) from e

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

        logger.debug(
            f"Claude response: {len(text)} chars, "
            f"tokens: {response.usage.input_tokens + response.usage.output_tokens}"
        )
        return text


_claude_client: Optional[ClaudeClient] = None


def get_claude_client() -> ClaudeClient:
    """Общий экземпляр клиента (создаётся лениво)."""
    global _claude_client
    if _claude_client is None:
        _claude_client = ClaudeClient()
    return _claude_client
