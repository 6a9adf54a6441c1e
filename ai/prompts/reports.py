"""
Промпты для еженедельных и месячных отчётов.
"""

from typing import Any, Dict, List, Sequence

from config.constants import TONE_SCALE
from utils.time_utils import MONTH_NAMES


REPORT_SYSTEM_PROMPT = """Ты — психолог, который ведёт читательский дневник пользователя.
Тон: тёплый, профессиональный, обращение на "Вы", минимум эмодзи.
Отвечай только валидным JSON без дополнительного текста."""


def _format_quote(quote: Any) -> str:
    if quote.author:
        return f'"{quote.text}" ({quote.author})'
    return f'"{quote.text}"'


def build_weekly_prompt(user_name: str, quotes: Sequence[Any]) -> str:
    """Промпт анализа недели по цитатам."""
    quotes_text = "\n\n".join(_format_quote(q) for q in quotes)
    tones = "/".join(TONE_SCALE)

    return f"""Проанализируй цитаты пользователя за неделю и дай психологический анализ.

Имя пользователя: {user_name or 'Читатель'}

Цитаты за неделю:
{quotes_text}

Верни JSON:
{{
  "summary": "Краткий анализ недели одним предложением",
  "dominantThemes": ["тема1", "тема2"],
  "emotionalTone": "{tones}",
  "insights": "Подробный психологический анализ (2-3 абзаца)"
}}"""


def build_monthly_from_weekly_prompt(
    user_name: str,
    month: int,
    weekly_reports: Sequence[Any],
    metrics: Dict[str, Any],
) -> str:
    """Промпт месячного мета-анализа по еженедельным отчётам."""
    weekly_blocks: List[str] = []
    for index, report in enumerate(weekly_reports, start=1):
        themes = ", ".join(report.dominant_themes or []) or "нет данных"
        insight = (report.insights or "")[:300]
        weekly_blocks.append(
            f"Неделя {index} (неделя {report.week_number}):\n"
            f"- Темы: {themes}\n"
            f"- Тон: {report.emotional_tone or 'нейтральный'}\n"
            f"- Инсайт: {insight}\n"
            f"- Метрики: {report.quotes_count or 0} цитат, {report.unique_authors or 0} авторов"
        )

    return f"""Создай глубокий месячный анализ на основе еженедельных инсайтов.

Пользователь: {user_name or 'Читатель'}
Период: {MONTH_NAMES.get(month, '')}

Еженедельные инсайты:
{chr(10).join(weekly_blocks)}

Общие метрики месяца:
- Всего цитат: {metrics['totalQuotes']}
- Уникальных авторов: {metrics['uniqueAuthors']}
- Активных дней: {metrics['activeDays']}
- Недель активности: {metrics['weeksActive']}
- Топ темы: {', '.join(metrics['topThemes'])}
- Эмоциональный тренд: {metrics['emotionalTrend']}

Опиши эволюцию пользователя: как менялись темы и настроения от недели к неделе,
какие паттерны видны в выборе цитат, какой глубинный процесс происходит и что
рекомендовать на следующий месяц.

Верни JSON:
{{
  "monthlyEvolution": "Анализ изменений через недели (2-3 абзаца)",
  "deepPatterns": "Глубинные паттерны и темы месяца (2 абзаца)",
  "psychologicalInsight": "Главный психологический инсайт месяца (1-2 абзаца)",
  "recommendations": "Персональные рекомендации (2-3 абзаца)",
  "bookSuggestions": ["Книга 1 (Автор)", "Книга 2 (Автор)", "Книга 3 (Автор)"]
}}"""


def build_monthly_from_quotes_prompt(user_name: str, month: int, quotes: Sequence[Any]) -> str:
    """Промпт месячного анализа по ключевым цитатам месяца."""
    quotes_text = "\n".join(
        f"{index}. {_format_quote(q)}" for index, q in enumerate(quotes, start=1)
    )

    return f"""Создай месячный психологический анализ на основе цитат пользователя.

Пользователь: {user_name or 'Читатель'}
Период: {MONTH_NAMES.get(month, '')}

Ключевые цитаты месяца:
{quotes_text}

Верни JSON:
{{
  "monthlyEvolution": "Анализ месяца через цитаты",
  "deepPatterns": "Психологические паттерны",
  "psychologicalInsight": "Главный инсайт",
  "recommendations": "Рекомендации",
  "bookSuggestions": ["Книга 1", "Книга 2", "Книга 3"]
}}"""
