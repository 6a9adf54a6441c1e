"""
Tests for ai.response_parser module.
"""

from ai.response_parser import (
    extract_json_object,
    normalize_classification,
    parse_classification_response,
)
from config.constants import DEFAULT_INSIGHT, DEFAULT_THEME


class TestExtractJsonObject:
    """Tests for extract_json_object function."""

    def test_plain_json(self):
        """Should parse a clean JSON object."""
        assert extract_json_object('{"category": "ЛЮБОВЬ"}') == {"category": "ЛЮБОВЬ"}

    def test_fenced_json(self):
        """Should parse JSON wrapped in a markdown block."""
        raw = 'Вот ответ:\n```json\n{"category": "СЧАСТЬЕ"}\n```'
        assert extract_json_object(raw) == {"category": "СЧАСТЬЕ"}

    def test_json_with_surrounding_prose(self):
        """Should find the balanced object inside prose."""
        raw = 'Анализ готов. {"category": "ДЕНЬГИ", "themes": ["успех"]} Надеюсь, помог.'
        assert extract_json_object(raw) == {"category": "ДЕНЬГИ", "themes": ["успех"]}

    def test_braces_inside_strings(self):
        """Should not be confused by braces in string values."""
        raw = 'prefix {"insight": "мысль {в скобках}"} suffix'
        assert extract_json_object(raw) == {"insight": "мысль {в скобках}"}

    def test_garbage_returns_none(self):
        """Should return None when no object can be found."""
        assert extract_json_object("совсем не json") is None
        assert extract_json_object("") is None
        assert extract_json_object(None) is None

    def test_array_is_not_object(self):
        """Should ignore top-level arrays."""
        assert extract_json_object("[1, 2, 3]") is None


class TestNormalizeClassification:
    """Tests for normalize_classification function."""

    def test_caps_themes_at_three(self):
        """Should keep at most three themes."""
        result = normalize_classification({"themes": ["а", "б", "в", "г"]})
        assert result["themes"] == ["а", "б", "в"]

    def test_default_theme(self):
        """Should use default theme when none given."""
        assert normalize_classification({})["themes"] == [DEFAULT_THEME]

    def test_invalid_sentiment(self):
        """Should coerce unknown sentiment to neutral."""
        assert normalize_classification({"sentiment": "ecstatic"})["sentiment"] == "neutral"
        assert normalize_classification({"sentiment": "Positive"})["sentiment"] == "positive"

    def test_category_as_object(self):
        """Should take category name from a nested object."""
        result = normalize_classification({"category": {"name": "ЛЮБОВЬ"}})
        assert result["category"] == "ЛЮБОВЬ"

    def test_category_as_list(self):
        """Should take first category from a list."""
        assert normalize_classification({"category": ["СМЕРТЬ", "ЛЮБОВЬ"]})["category"] == "СМЕРТЬ"

    def test_insights_alias(self):
        """Should accept 'insights' as insight field."""
        assert normalize_classification({"insights": "Глубоко"})["insight"] == "Глубоко"


class TestParseClassificationResponse:
    """Tests for parse_classification_response function."""

    def test_full_response(self):
        """Should normalize a complete response."""
        raw = (
            '{"category": "ЛЮБОВЬ", "themes": ["любовь", "выбор"], '
            '"sentiment": "positive", "insight": "Любовь как осознанный выбор"}'
        )
        result = parse_classification_response(raw)

        assert result == {
            "category": "ЛЮБОВЬ",
            "themes": ["любовь", "выбор"],
            "sentiment": "positive",
            "insight": "Любовь как осознанный выбор",
        }

    def test_truncated_response_uses_insight_regex(self):
        """Should recover insight from a truncated response."""
        raw = '{"category": "ЛЮБОВЬ", "insight": "Любовь требует смелости", "themes": ["люб'
        result = parse_classification_response(raw)

        assert result["insight"] == "Любовь требует смелости"
        assert result["category"] == ""
        assert result["sentiment"] == "neutral"

    def test_unparseable_response_uses_defaults(self):
        """Should never raise and fall back to defaults."""
        result = parse_classification_response("Извините, не могу помочь")

        assert result == {
            "category": "",
            "themes": [DEFAULT_THEME],
            "sentiment": "neutral",
            "insight": DEFAULT_INSIGHT,
        }
