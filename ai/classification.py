"""
Классификация цитат.
Живой шлюз ходит в Claude, запасной работает по ключевым словам каталога.
Классификация никогда не прерывает сохранение цитаты.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from loguru import logger

from ai.category_catalog import CategoryCatalog
from ai.claude_client import ClaudeClient, get_claude_client
from ai.prompts.classification import CLASSIFICATION_SYSTEM_PROMPT, build_classification_prompt
from ai.response_parser import parse_classification_response
from config.constants import FALLBACK_THEME, FALLBACK_INSIGHT, SENTIMENT_NEUTRAL
from config.settings import settings
from utils.errors import CollaboratorError


@dataclass
class QuoteClassification:
    """Результат классификации цитаты."""

    category: str
    themes: List[str] = field(default_factory=list)
    sentiment: str = SENTIMENT_NEUTRAL
    insight: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ClassificationGateway(ABC):
    """Интерфейс классификатора цитат."""

    def __init__(self, catalog: Optional[CategoryCatalog] = None):
        self.catalog = catalog or CategoryCatalog()

    @abstractmethod
    async def classify(self, text: str, author: Optional[str] = None) -> QuoteClassification:
        """Категория, темы, тональность и инсайт для цитаты."""


class FallbackClassificationGateway(ClassificationGateway):
    """Детерминированная классификация по ключевым словам каталога."""

    async def classify(self, text: str, author: Optional[str] = None) -> QuoteClassification:
        category = await self.catalog.match_text(text)
        return QuoteClassification(
            category=category,
            themes=[FALLBACK_THEME],
            sentiment=SENTIMENT_NEUTRAL,
            insight=FALLBACK_INSIGHT,
        )


class LiveClassificationGateway(ClassificationGateway):
    """Классификация через Claude с откатом на ключевые слова."""

    def __init__(
        self,
        client: Optional[ClaudeClient] = None,
        catalog: Optional[CategoryCatalog] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(catalog)
        self.client = client or get_claude_client()
        self.timeout = timeout or settings.CLAUDE_TIMEOUT_SECONDS
        self.fallback = FallbackClassificationGateway(self.catalog)

    async def classify(self, text: str, author: Optional[str] = None) -> QuoteClassification:
        try:
            names = await self.catalog.names()
            prompt = build_classification_prompt(text, author, names)
            raw = await self.client.analyze(
                prompt,
                system_prompt=CLASSIFICATION_SYSTEM_PROMPT,
                max_tokens=500,
                timeout=self.timeout,
            )
        except CollaboratorError as e:
            logger.warning(f"Classification fell back to keywords: {e}")
            return await self.fallback.classify(text, author)
        except Exception as e:
            logger.error(f"Unexpected classification error: {e}")
            return await self.fallback.classify(text, author)

        parsed = parse_classification_response(raw)
        category = await self.catalog.resolve(parsed["category"], text)

        if category != parsed["category"]:
            logger.debug(f"Category '{parsed['category']}' resolved to '{category}'")

        return QuoteClassification(
            category=category,
            themes=parsed["themes"],
            sentiment=parsed["sentiment"],
            insight=parsed["insight"],
        )


def build_classification_gateway(
    live: Optional[bool] = None,
    client: Optional[ClaudeClient] = None,
    catalog: Optional[CategoryCatalog] = None,
) -> ClassificationGateway:
    """
    Выбирает реализацию шлюза.

    Args:
        live: True — Claude, False — ключевые слова; None — по настройке USE_LIVE_CLASSIFIER
    """
    if live is None:
        live = settings.USE_LIVE_CLASSIFIER

    if live:
        return LiveClassificationGateway(client=client, catalog=catalog)
    return FallbackClassificationGateway(catalog=catalog)
