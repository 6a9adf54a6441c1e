"""
Prompts package.
Системные промпты и шаблоны для Claude.
"""

from ai.prompts.classification import CLASSIFICATION_SYSTEM_PROMPT, build_classification_prompt
from ai.prompts.reports import (
    REPORT_SYSTEM_PROMPT,
    build_weekly_prompt,
    build_monthly_from_weekly_prompt,
    build_monthly_from_quotes_prompt,
)

__all__ = [
    "CLASSIFICATION_SYSTEM_PROMPT",
    "build_classification_prompt",
    "REPORT_SYSTEM_PROMPT",
    "build_weekly_prompt",
    "build_monthly_from_weekly_prompt",
    "build_monthly_from_quotes_prompt",
]
