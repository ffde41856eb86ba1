# shopreco/domain/services/llm_parsing.py
"""
Extraction and validation of JSON embedded in free-form model output.

The model is asked for strict JSON but may wrap it in prose or code fences,
so extraction takes the widest `{...}` / `[...]` span and validation is a
schema check, not just a successful parse. Any failure raises LLMOutputError;
callers turn that into their own fallback.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional
import json
import logging
import re

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError, field_validator

from shopreco.domain.models.recommendation import Recommendation, RecommendationCategory, UserAnalysis

logger = logging.getLogger(__name__)

# Regex to strip code fences (``` or ```json) from LLM output
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

_CATEGORIES = {c.value for c in RecommendationCategory}


class LLMOutputError(ValueError):
    """Model text did not contain usable JSON of the expected shape."""


class RecommendationItem(BaseModel):
    """One model-proposed recommendation, as it must look before we trust it."""
    product_id: str = Field(..., min_length=1, validation_alias=AliasChoices("product_id", "productId", "id"))
    score: float = Field(..., ge=0.0, le=100.0)
    reason: str = ""
    category: Optional[RecommendationCategory] = None

    @field_validator("product_id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v):
        # Unknown labels are replaced by the caller's default rather than rejected
        if isinstance(v, RecommendationCategory):
            return v
        return v if isinstance(v, str) and v in _CATEGORIES else None


_ITEMS = TypeAdapter(List[RecommendationItem])


def _strip_fences(s: str) -> str:
    """Remove ``` or ```json fences the LLM might add."""
    return _CODE_FENCE_RE.sub("", s).strip()


def _extract(text: str, pattern: re.Pattern, kind: str) -> Any:
    if not text:
        raise LLMOutputError(f"empty model response, expected {kind}")
    match = pattern.search(_strip_fences(text))
    if not match:
        raise LLMOutputError(f"no JSON {kind} in model response")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMOutputError(f"invalid JSON {kind}: {e}") from e


def extract_json_object(text: str) -> Dict[str, Any]:
    parsed = _extract(text, _OBJECT_RE, "object")
    if not isinstance(parsed, dict):
        raise LLMOutputError("expected a JSON object")
    return parsed


def extract_json_array(text: str) -> List[Any]:
    parsed = _extract(text, _ARRAY_RE, "array")
    if not isinstance(parsed, list):
        raise LLMOutputError("expected a JSON array")
    return parsed


def parse_user_analysis(text: str) -> UserAnalysis:
    data = extract_json_object(text)
    try:
        return UserAnalysis.model_validate(data)
    except ValidationError as e:
        raise LLMOutputError(f"invalid user analysis: {e}") from e


def parse_recommendations(
    text: str,
    default_category: RecommendationCategory,
    categories_by_id: Optional[Dict[str, str]] = None,
) -> List[Recommendation]:
    """
    Parse and validate a JSON array of recommendations.
    Items without a (known) category take `categories_by_id[product_id]`, else
    `default_category`. One invalid item rejects the whole response.
    """
    raw = extract_json_array(text)
    try:
        items = _ITEMS.validate_python(raw)
    except ValidationError as e:
        raise LLMOutputError(f"invalid recommendations ({e.error_count()} errors): {e}") from e

    categories_by_id = categories_by_id or {}
    recs = [
        Recommendation(
            product_id=it.product_id,
            score=it.score,
            reason=it.reason,
            category=it.category or categories_by_id.get(it.product_id, default_category),
        )
        for it in items
    ]
    logger.debug("parsed %s recommendations (default_category=%s)", len(recs), default_category.value)
    return recs
