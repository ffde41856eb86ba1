"""
Unit tests for model-output extraction and validation.

Run: pytest tests/test_llm_parsing.py -v
"""
import json

import pytest

from shopreco.domain.models.recommendation import RecommendationCategory
from shopreco.domain.services.llm_parsing import (
    LLMOutputError,
    extract_json_array,
    extract_json_object,
    parse_recommendations,
    parse_user_analysis,
)


class TestExtraction:

    def test_object_inside_prose_and_fences(self):
        text = 'Here is the analysis:\n```json\n{"intent": "research", "top_features": ["camera"]}\n```\nHope it helps.'
        assert extract_json_object(text) == {"intent": "research", "top_features": ["camera"]}

    def test_array_inside_prose(self):
        text = 'Sure! [{"product_id": "1", "score": 90}] Let me know.'
        assert extract_json_array(text) == [{"product_id": "1", "score": 90}]

    @pytest.mark.parametrize("text", ["", "no json at all", "{not: valid json}"])
    def test_object_failures(self, text):
        with pytest.raises(LLMOutputError):
            extract_json_object(text)

    def test_array_of_wrong_shape(self):
        # greedy match spans both brackets and does not parse
        with pytest.raises(LLMOutputError):
            extract_json_array('first [1, 2] then prose then [3]')


class TestUserAnalysis:

    def test_camel_case_keys_accepted(self):
        text = json.dumps({
            "intent": "purchase",
            "categoryStrength": 8,
            "brandLoyalty": 3,
            "priceSensitivity": 6,
            "topFeatures": ["battery"],
            "behaviorPatterns": ["comparison_shopping"],
        })
        analysis = parse_user_analysis(text)
        assert analysis.intent == "purchase"
        assert analysis.category_strength == 8
        assert analysis.top_features == ["battery"]
        assert analysis.behavior_patterns == ["comparison_shopping"]

    def test_wrong_types_rejected(self):
        with pytest.raises(LLMOutputError):
            parse_user_analysis('{"intent": "x", "top_features": "camera"}')


class TestParseRecommendations:

    def test_valid_items(self):
        text = '[{"product_id": "1", "score": 91.5, "reason": "matches", "category": "trending"}, {"productId": 2, "score": 40}]'
        recs = parse_recommendations(text, RecommendationCategory.SIMILAR)
        assert [r.product_id for r in recs] == ["1", "2"]
        assert recs[0].category == "trending"
        assert recs[1].category == "similar"
        assert recs[1].reason == ""

    def test_unknown_category_takes_default(self):
        recs = parse_recommendations('[{"product_id": "1", "score": 50, "category": "hot_pick"}]',
                                     RecommendationCategory.COLLABORATIVE)
        assert recs[0].category == "collaborative"

    def test_category_map_wins_over_default(self):
        recs = parse_recommendations(
            '[{"product_id": "1", "score": 50}, {"product_id": "9", "score": 20}]',
            RecommendationCategory.PERSONALIZED,
            {"1": "content_based"},
        )
        assert [r.category for r in recs] == ["content_based", "personalized"]

    @pytest.mark.parametrize("item", [
        {"product_id": "1", "score": 101},
        {"product_id": "1", "score": -1},
        {"product_id": "", "score": 10},
        {"score": 10},
        {"product_id": "1"},
    ])
    def test_one_invalid_item_rejects_all(self, item):
        text = json.dumps([{"product_id": "2", "score": 80}, item])
        with pytest.raises(LLMOutputError):
            parse_recommendations(text, RecommendationCategory.TRENDING)

    def test_empty_array_is_valid(self):
        assert parse_recommendations("[]", RecommendationCategory.TRENDING) == []
