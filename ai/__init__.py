"""
AI package.
Работа с Claude API: классификация цитат и тексты отчётов.
"""

from ai.claude_client import ClaudeClient
from ai.classification import (
    ClassificationGateway,
    LiveClassificationGateway,
    FallbackClassificationGateway,
    build_classification_gateway,
)

__all__ = [
    "ClaudeClient",
    "ClassificationGateway",
    "LiveClassificationGateway",
    "FallbackClassificationGateway",
    "build_classification_gateway",
]
