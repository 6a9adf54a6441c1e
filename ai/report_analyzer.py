"""
Анализ для отчётов.
Генерация текстов недельных и месячных отчётов через Claude
и детерминированные запасные варианты.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger

from ai.claude_client import ClaudeClient, get_claude_client
from ai.prompts.reports import (
    REPORT_SYSTEM_PROMPT,
    build_weekly_prompt,
    build_monthly_from_weekly_prompt,
    build_monthly_from_quotes_prompt,
)
from ai.response_parser import extract_json_object
from config.constants import (
    TONE_SCALE,
    TREND_GROWING,
    TREND_STABLE,
    TREND_CHANGING,
    TREND_MIXED,
    MAX_TOP_THEMES,
    CATEGORY_OTHER,
    FALLBACK_MONTHLY_ANALYSIS,
)
from utils.errors import CollaboratorError


WEEKLY_FALLBACK_SUMMARY = "Ваши цитаты отражают глубокий внутренний поиск и стремление к мудрости"
WEEKLY_FALLBACK_TONE = "позитивный"
WEEKLY_FALLBACK_THEMES_LIMIT = 3


def emotional_trend(tones: Iterable[Optional[str]]) -> str:
    """
    Тренд по последовательности тонов недель (шкала TONE_SCALE).

    Неизвестные тоны пропускаются. Один различный тон — стабильная;
    меньше трёх точек — смешанная; строго вверх — растущая;
    строго вниз или с подъёмами и спадами — меняющаяся; иначе смешанная.
    """
    points = []
    for tone in tones:
        key = (tone or "").strip().lower()
        if key in TONE_SCALE:
            points.append(TONE_SCALE.index(key))

    if not points:
        return TREND_MIXED
    if len(set(points)) == 1:
        return TREND_STABLE
    if len(points) < 3:
        return TREND_MIXED

    deltas = [b - a for a, b in zip(points, points[1:])]
    if all(d > 0 for d in deltas):
        return TREND_GROWING
    if all(d < 0 for d in deltas):
        return TREND_CHANGING
    if any(d > 0 for d in deltas) and any(d < 0 for d in deltas):
        return TREND_CHANGING
    return TREND_MIXED


def top_themes(theme_lists: Iterable[Iterable[str]], limit: int = MAX_TOP_THEMES) -> List[str]:
    """Самые частые темы. При равенстве раньше встретившаяся идёт первой."""
    counter: Counter = Counter()
    for themes in theme_lists:
        for theme in themes or []:
            if theme:
                counter[theme] += 1
    return [theme for theme, _ in counter.most_common(limit)]


def extract_quote_themes(quotes: Sequence[Any], limit: int = WEEKLY_FALLBACK_THEMES_LIMIT) -> List[str]:
    """Темы из категорий и тем цитат, в нижнем регистре, без повторов."""
    themes: List[str] = []
    for quote in quotes:
        candidates = []
        if quote.category and quote.category != CATEGORY_OTHER:
            candidates.append(quote.category)
        candidates.extend(quote.themes or [])
        for item in candidates:
            value = item.lower()
            if value not in themes:
                themes.append(value)
    return themes[:limit]


def fallback_weekly_analysis(quotes: Sequence[Any], user_name: str) -> Dict[str, Any]:
    """Анализ недели без модели."""
    name = user_name or "Читатель"
    return {
        "summary": WEEKLY_FALLBACK_SUMMARY,
        "dominantThemes": extract_quote_themes(quotes),
        "emotionalTone": WEEKLY_FALLBACK_TONE,
        "insights": (
            f"{name}, эта неделя показывает ваш интерес к глубоким жизненным вопросам. "
            f"Вы ищете ответы и вдохновение в словах мудрых людей. "
            f"Ваши цитаты говорят о стремлении к росту и пониманию себя."
        ),
    }


def fallback_monthly_analysis() -> Dict[str, Any]:
    analysis = dict(FALLBACK_MONTHLY_ANALYSIS)
    analysis["bookSuggestions"] = list(FALLBACK_MONTHLY_ANALYSIS["bookSuggestions"])
    return analysis


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


class ReportAnalyzer:
    """Тексты отчётов: Claude, при ошибке — запасной вариант."""

    def __init__(self, client: Optional[ClaudeClient] = None):
        self._client = client

    @property
    def client(self) -> ClaudeClient:
        if self._client is None:
            self._client = get_claude_client()
        return self._client

    async def _ask(self, prompt: str) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.client.analyze(prompt, system_prompt=REPORT_SYSTEM_PROMPT)
        except CollaboratorError as e:
            logger.warning(f"Report analysis unavailable: {e}")
            return None
        return extract_json_object(raw)

    async def analyze_week(self, user_name: str, quotes: Sequence[Any]) -> Dict[str, Any]:
        """
        Анализ недели.

        Returns:
            {"summary", "dominantThemes", "emotionalTone", "insights"}
        """
        data = await self._ask(build_weekly_prompt(user_name, quotes))
        if not data:
            logger.warning("Weekly analysis: using fallback")
            return fallback_weekly_analysis(quotes, user_name)

        summary = data.get("summary")
        insights = data.get("insights")
        tone = data.get("emotionalTone")
        if not all(isinstance(v, str) and v.strip() for v in (summary, insights, tone)):
            logger.warning("Weekly analysis: incomplete response, using fallback")
            return fallback_weekly_analysis(quotes, user_name)

        themes = _string_list(data.get("dominantThemes")) or extract_quote_themes(quotes)
        return {
            "summary": summary.strip()[:500],
            "dominantThemes": themes,
            "emotionalTone": tone.strip().lower(),
            "insights": insights.strip()[:2000],
        }

    async def _analyze_month(self, prompt: str) -> Dict[str, Any]:
        data = await self._ask(prompt)
        if not data:
            logger.warning("Monthly analysis: using fallback")
            return fallback_monthly_analysis()

        analysis = fallback_monthly_analysis()
        for key in ("monthlyEvolution", "deepPatterns", "psychologicalInsight", "recommendations"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                analysis[key] = value.strip()

        books = _string_list(data.get("bookSuggestions"))
        if books:
            analysis["bookSuggestions"] = books
        return analysis

    async def analyze_month_from_weekly(
        self,
        user_name: str,
        month: int,
        weekly_reports: Sequence[Any],
        metrics: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Мета-анализ месяца по недельным отчётам."""
        prompt = build_monthly_from_weekly_prompt(user_name, month, weekly_reports, metrics)
        return await self._analyze_month(prompt)

    async def analyze_month_from_quotes(
        self,
        user_name: str,
        month: int,
        quotes: Sequence[Any],
    ) -> Dict[str, Any]:
        """Анализ месяца по ключевым цитатам."""
        prompt = build_monthly_from_quotes_prompt(user_name, month, quotes)
        return await self._analyze_month(prompt)
