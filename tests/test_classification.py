"""
Tests for ai.classification module.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from ai.category_catalog import CategoryCatalog
from ai.classification import (
    FallbackClassificationGateway,
    LiveClassificationGateway,
    build_classification_gateway,
)
from config.constants import CATEGORY_OTHER, FALLBACK_INSIGHT, FALLBACK_THEME
from utils.errors import CollaboratorError, CollaboratorTimeout


@pytest.fixture
def catalog():
    """Catalog backed by an empty repository (canonical categories)."""
    repo = Mock()
    repo.get_active = AsyncMock(return_value=[])
    return CategoryCatalog(repository=repo)


class TestFallbackClassificationGateway:
    """Tests for FallbackClassificationGateway class."""

    async def test_keyword_category(self, catalog):
        """Should classify by keywords with static analysis."""
        gateway = FallbackClassificationGateway(catalog)

        result = await gateway.classify("Любовь — это решение любить", "Эрих Фромм")

        assert result.category == "ЛЮБОВЬ"
        assert result.themes == [FALLBACK_THEME]
        assert result.sentiment == "neutral"
        assert result.insight == FALLBACK_INSIGHT

    async def test_no_keywords(self, catalog):
        """Should use ДРУГОЕ when no keyword matches."""
        gateway = FallbackClassificationGateway(catalog)

        result = await gateway.classify("Тишина тоже ответ")

        assert result.category == CATEGORY_OTHER


class TestLiveClassificationGateway:
    """Tests for LiveClassificationGateway class."""

    async def test_model_answer(self, catalog, mock_claude):
        """Should use the model answer and keep a catalog category."""
        mock_claude.analyze.return_value = (
            '{"category": "ЛЮБОВЬ", "themes": ["любовь", "выбор"], '
            '"sentiment": "positive", "insight": "Любовь как выбор"}'
        )
        gateway = LiveClassificationGateway(client=mock_claude, catalog=catalog)

        result = await gateway.classify("Любовь — это решение любить", "Эрих Фромм")

        assert result.category == "ЛЮБОВЬ"
        assert result.themes == ["любовь", "выбор"]
        assert result.sentiment == "positive"
        assert result.insight == "Любовь как выбор"

        prompt = mock_claude.analyze.await_args.args[0]
        assert "Эрих Фромм" in prompt
        assert "ЛЮБОВЬ" in prompt

    async def test_unknown_category_resolved(self, catalog, mock_claude):
        """Should map an unknown model category into the catalog."""
        mock_claude.analyze.return_value = '{"category": "ВСЕЛЕННАЯ", "insight": "Мысль"}'
        gateway = LiveClassificationGateway(client=mock_claude, catalog=catalog)

        result = await gateway.classify("Тишина тоже ответ")

        assert result.category == CATEGORY_OTHER
        assert result.insight == "Мысль"

    async def test_timeout_falls_back(self, catalog, mock_claude):
        """Should fall back to keywords when the model times out."""
        mock_claude.analyze.side_effect = CollaboratorTimeout("timeout")
        gateway = LiveClassificationGateway(client=mock_claude, catalog=catalog)

        result = await gateway.classify("Деньги не главное")

        assert result.category == "ДЕНЬГИ"
        assert result.insight == FALLBACK_INSIGHT

    async def test_api_error_falls_back(self, catalog, mock_claude):
        """Should fall back when the API fails."""
        mock_claude.analyze.side_effect = CollaboratorError("500")
        gateway = LiveClassificationGateway(client=mock_claude, catalog=catalog)

        result = await gateway.classify("Любовь спасёт")

        assert result.category == "ЛЮБОВЬ"
        assert result.themes == [FALLBACK_THEME]

    async def test_garbage_response(self, catalog, mock_claude):
        """Should survive an unparseable model answer."""
        mock_claude.analyze.return_value = "не могу ответить"
        gateway = LiveClassificationGateway(client=mock_claude, catalog=catalog)

        result = await gateway.classify("Время лечит")

        assert result.category == "ВРЕМЯ И ПРИВЫЧКИ"
        assert result.sentiment == "neutral"


class TestBuildClassificationGateway:
    """Tests for build_classification_gateway function."""

    def test_fallback(self, catalog):
        """Should build the keyword gateway when live is off."""
        gateway = build_classification_gateway(live=False, catalog=catalog)
        assert isinstance(gateway, FallbackClassificationGateway)

    def test_live(self, catalog, mock_claude):
        """Should build the live gateway when live is on."""
        gateway = build_classification_gateway(live=True, client=mock_claude, catalog=catalog)
        assert isinstance(gateway, LiveClassificationGateway)
        assert gateway.client is mock_claude
