# shopreco/domain/services/recommendation_svc.py
import asyncio
import logging
import math
import time
from functools import lru_cache
from typing import Dict, Iterable, List, Sequence

from shopreco.domain.models.interaction import UserPreference
from shopreco.domain.models.product import Product
from shopreco.domain.models.recommendation import Recommendation, RecommendationCategory, UserAnalysis
from shopreco.domain.services import prompts
from shopreco.domain.services.constants import (
    COLLABORATIVE_CATALOG_K,
    CONTENT_CATALOG_K,
    CONTENT_RESULTS_K,
    DEFAULT_BEHAVIOR_PATTERN,
    DEFAULT_INTENT,
    DEFAULT_STRENGTH,
    DEFAULT_TOP_FEATURES_K,
    FINAL_K,
    RATING_TO_SCORE,
    RECENT_INTERACTIONS_K,
    SIMILAR_BASE_SCORE,
    SIMILAR_CATALOG_K,
    SIMILAR_K,
    SIMILAR_PRICE_DIVISOR,
    TRENDING_CATALOG_K,
)
from shopreco.domain.services.llm_client import LLMClient, get_llm_client
from shopreco.domain.services.llm_parsing import parse_recommendations, parse_user_analysis

logger = logging.getLogger(__name__)


def dedupe_by_product(recs: Iterable[Recommendation]) -> List[Recommendation]:
    """Drop repeated product_ids, keeping the first occurrence and the input order."""
    seen = set()
    out: List[Recommendation] = []
    for r in recs:
        if r.product_id not in seen:
            seen.add(r.product_id)
            out.append(r)
    return out


def default_analysis(prefs: UserPreference) -> UserAnalysis:
    return UserAnalysis(
        intent=DEFAULT_INTENT,
        category_strength=DEFAULT_STRENGTH,
        brand_loyalty=DEFAULT_STRENGTH,
        price_sensitivity=DEFAULT_STRENGTH,
        top_features=prefs.preferred_features[:DEFAULT_TOP_FEATURES_K],
        behavior_patterns=[DEFAULT_BEHAVIOR_PATTERN],
    )


def popularity_score(product: Product) -> float:
    """Rating weighted by log review volume: rewards quality and volume, damps raw count."""
    return product.ratings.average * math.log(product.ratings.count + 1)


class RecommendationService:
    """
    Recommendation strategies on top of a text-generation model.

    Every model answer is untrusted: each stage parses and validates it and,
    on any failure, falls back to its own deterministic result. Public methods
    never raise.
    """

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def _ask(self, stage: str, prompt: str) -> str:
        t0 = time.perf_counter()
        text = await self.llm.generate(prompt)
        logger.debug("%s llm_time=%.3fs prompt_chars=%s response_chars=%s", stage, time.perf_counter() - t0, len(prompt), len(text))
        return text

    # =========================================================================
    #                          PERSONALIZED PIPELINE
    # =========================================================================

    async def generate_recommendations(
        self,
        user_id: str,
        products: Sequence[Product],
        user_preferences: UserPreference,
        max_count: int = FINAL_K,
    ) -> List[Recommendation]:
        """
        Personalized recommendations for `user_id`, best first, at most `max_count`,
        unique by product_id.

        Pipeline:
          1) Behavior analysis (model, default analysis on failure).
          2) Content-based and collaborative candidates, issued concurrently
             (each empty on failure).
          3) Merge (first occurrence wins) and model re-rank (score sort on failure).
          4) Truncate.
        Nothing from the candidate stages, or an unexpected error, yields the
        category/rating fallback instead.
        """
        t0 = time.perf_counter()
        logger.info("recommend start user_id=%s catalog=%s max_count=%s history=%s",
                    user_id, len(products), max_count, len(user_preferences.interaction_history))
        try:
            analysis = await self._analyze_user_behavior(user_preferences)

            content, collaborative = await asyncio.gather(
                self._content_based_candidates(products, user_preferences, analysis),
                self._collaborative_candidates(products, user_preferences, analysis),
            )
            merged = dedupe_by_product([*content, *collaborative])
            logger.info("recommend candidates content=%s collaborative=%s merged=%s",
                        len(content), len(collaborative), len(merged))

            if not merged:
                logger.info("recommend no model candidates user_id=%s, using fallback", user_id)
                return self.get_fallback_recommendations(products, user_preferences, max_count)

            ranked = await self._combine_and_rank(merged, analysis)
            result = dedupe_by_product(ranked)[:max(max_count, 0)]
        except Exception as e:
            logger.error("recommend failed user_id=%s, using fallback: %s", user_id, e)
            return self.get_fallback_recommendations(products, user_preferences, max_count)

        logger.info("recommend done user_id=%s items=%s total_time=%.3fs", user_id, len(result), time.perf_counter() - t0)
        return result

    async def _analyze_user_behavior(self, prefs: UserPreference) -> UserAnalysis:
        # interaction_history is newest first; the model gets the most recent K
        recent = prefs.interaction_history[:RECENT_INTERACTIONS_K]
        try:
            text = await self._ask("analysis", prompts.behavior_analysis_prompt(prefs, recent))
            analysis = parse_user_analysis(text)
            logger.debug("analysis intent=%s patterns=%s", analysis.intent, analysis.behavior_patterns)
            return analysis
        except Exception as e:
            logger.warning("analysis failed, using default analysis: %s", e)
            return default_analysis(prefs)

    async def _content_based_candidates(
        self, products: Sequence[Product], prefs: UserPreference, analysis: UserAnalysis
    ) -> List[Recommendation]:
        interacted_ids = {i.product_id for i in prefs.interaction_history}
        interacted = [p for p in products if p.id in interacted_ids]
        if not interacted:
            logger.debug("content_based skipped: no interacted products in catalog")
            return []

        candidates = [p for p in products if p.id not in interacted_ids][:CONTENT_CATALOG_K]
        try:
            text = await self._ask(
                "content_based",
                prompts.content_based_prompt(interacted, candidates, analysis, CONTENT_RESULTS_K),
            )
            return parse_recommendations(text, RecommendationCategory.CONTENT_BASED)
        except Exception as e:
            logger.warning("content_based failed, no candidates from this stage: %s", e)
            return []

    async def _collaborative_candidates(
        self, products: Sequence[Product], prefs: UserPreference, analysis: UserAnalysis
    ) -> List[Recommendation]:
        try:
            text = await self._ask(
                "collaborative",
                prompts.collaborative_prompt(products[:COLLABORATIVE_CATALOG_K], prefs, analysis),
            )
            return parse_recommendations(text, RecommendationCategory.COLLABORATIVE)
        except Exception as e:
            logger.warning("collaborative failed, no candidates from this stage: %s", e)
            return []

    async def _combine_and_rank(self, merged: List[Recommendation], analysis: UserAnalysis) -> List[Recommendation]:
        categories_by_id: Dict[str, str] = {r.product_id: r.category for r in merged}
        try:
            text = await self._ask("rerank", prompts.rerank_prompt(merged, analysis))
            ranked = parse_recommendations(text, RecommendationCategory.PERSONALIZED, categories_by_id)
            if ranked:
                return ranked
            logger.warning("rerank returned no items, sorting by received score")
        except Exception as e:
            logger.warning("rerank failed, sorting by received score: %s", e)
        return sorted(merged, key=lambda r: r.score, reverse=True)

    def get_fallback_recommendations(
        self, products: Sequence[Product], user_preferences: UserPreference, max_count: int = FINAL_K
    ) -> List[Recommendation]:
        """Best-rated products in the user's preferred categories that they have not interacted with."""
        interacted_ids = {i.product_id for i in user_preferences.interaction_history}
        preferred = set(user_preferences.preferred_categories)
        candidates = [p for p in products if p.id not in interacted_ids and p.category in preferred]
        candidates.sort(key=lambda p: p.ratings.average, reverse=True)
        recs = [
            Recommendation(
                product_id=p.id,
                score=p.ratings.average * RATING_TO_SCORE,
                reason=f"Recommended based on your interest in {p.category}",
                category=RecommendationCategory.FALLBACK,
            )
            for p in candidates[:max(max_count, 0)]
        ]
        logger.info("fallback recommendations items=%s preferred_categories=%s", len(recs), sorted(preferred))
        return recs

    # =========================================================================
    #                         NON-PERSONALIZED LISTS
    # =========================================================================

    async def get_trending_products(self, products: Sequence[Product], max_count: int = FINAL_K) -> List[Recommendation]:
        try:
            text = await self._ask("trending", prompts.trending_prompt(products[:TRENDING_CATALOG_K], max_count))
            recs = dedupe_by_product(parse_recommendations(text, RecommendationCategory.TRENDING))
            if recs:
                return recs[:max_count]
            logger.warning("trending model returned no items, using popularity heuristic")
        except Exception as e:
            logger.warning("trending model failed, using popularity heuristic: %s", e)

        ranked = sorted(products, key=popularity_score, reverse=True)[:max_count]
        return [
            Recommendation(
                product_id=p.id,
                score=p.ratings.average * RATING_TO_SCORE,
                reason=f"Trending due to high rating ({p.ratings.average}) and {p.ratings.count} reviews",
                category=RecommendationCategory.TRENDING,
            )
            for p in ranked
        ]

    async def get_similar_products(
        self, target: Product, all_products: Sequence[Product], max_count: int = SIMILAR_K
    ) -> List[Recommendation]:
        others = [p for p in all_products if p.id != target.id]
        try:
            text = await self._ask("similar", prompts.similar_prompt(target, others[:SIMILAR_CATALOG_K], max_count))
            recs = [r for r in dedupe_by_product(parse_recommendations(text, RecommendationCategory.SIMILAR))
                    if r.product_id != target.id]
            if recs:
                return recs[:max_count]
            logger.warning("similar model returned no items for product_id=%s, using price heuristic", target.id)
        except Exception as e:
            logger.warning("similar model failed for product_id=%s, using price heuristic: %s", target.id, e)

        same_category = [p for p in others if p.category == target.category]
        same_category.sort(key=lambda p: abs(p.price - target.price))
        return [
            Recommendation(
                product_id=p.id,
                # Linear decay with price distance; may go below zero, not clamped
                score=SIMILAR_BASE_SCORE - abs(p.price - target.price) / SIMILAR_PRICE_DIVISOR,
                reason=f"Similar {p.category} product from {p.brand}",
                category=RecommendationCategory.SIMILAR,
            )
            for p in same_category[:max_count]
        ]


@lru_cache
def get_recommendation_service() -> RecommendationService:
    return RecommendationService(get_llm_client())
