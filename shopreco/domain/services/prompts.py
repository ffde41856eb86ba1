from typing import Iterable, List, Sequence

from shopreco.domain.models.interaction import UserInteraction, UserPreference
from shopreco.domain.models.product import Product
from shopreco.domain.models.recommendation import Recommendation, UserAnalysis
from shopreco.domain.services.constants import DESCRIPTION_MAX_CHARS

SYSTEM_PROMPT = (
    "You are a product recommendation model for an online store. "
    "Use ONLY the products provided in the prompt. Answer with JSON only: no prose, no code fences."
)

ANALYSIS_FORMAT = (
    '{"intent":"string","category_strength":1-10,"brand_loyalty":1-10,'
    '"price_sensitivity":1-10,"top_features":["string"],"behavior_patterns":["string"]}'
)


def _recommendation_format(category: str) -> str:
    return (
        '[{"product_id":"<ID from the catalog>","score":0-100,'
        '"reason":"short explanation","category":"' + category + '"}]'
    )


def _join(values: Iterable[str]) -> str:
    return ", ".join(values) or "none"


def _desc(product: Product) -> str:
    return (product.description or "")[:DESCRIPTION_MAX_CHARS]


def _catalog_entry(p: Product, *, subcategory: bool = True, rating: bool = False, reviews: bool = False,
                   tags: bool = False, description: bool = True) -> str:
    """Render one product as a compact multi-line block."""
    category = f"{p.category}/{p.subcategory}" if subcategory and p.subcategory else p.category
    lines = [
        f"ID: {p.id}",
        f"Name: {p.name}",
        f"Category: {category}",
        f"Brand: {p.brand}",
        f"Price: ${p.price}",
    ]
    if rating:
        lines.append(
            f"Rating: {p.ratings.average} ({p.ratings.count} reviews)" if reviews else f"Rating: {p.ratings.average}"
        )
    lines.append(f"Features: {_join(p.features)}")
    if tags:
        lines.append(f"Tags: {_join(p.tags)}")
    if description:
        lines.append(f"Description: {_desc(p)}")
    return "\n".join(lines)


def _catalog(products: Sequence[Product], **kw) -> str:
    return "\n\n".join(_catalog_entry(p, **kw) for p in products)


def _preference_summary(prefs: UserPreference) -> str:
    low, high = prefs.price_range
    return (
        f"- Preferred Categories: {_join(prefs.preferred_categories)}\n"
        f"- Preferred Brands: {_join(prefs.preferred_brands)}\n"
        f"- Price Range: ${low} - ${high}\n"
        f"- Preferred Features: {_join(prefs.preferred_features)}"
    )


def _analysis_summary(analysis: UserAnalysis) -> str:
    return (
        f"- Shopping Intent: {analysis.intent}\n"
        f"- Category Strength: {analysis.category_strength}/10\n"
        f"- Brand Loyalty: {analysis.brand_loyalty}/10\n"
        f"- Price Sensitivity: {analysis.price_sensitivity}/10\n"
        f"- Top Features: {_join(analysis.top_features)}"
    )


def behavior_analysis_prompt(prefs: UserPreference, recent: List[UserInteraction]) -> str:
    interactions = "\n".join(
        f"- {i.interaction_type.value} on product {i.product_id} at {i.timestamp.isoformat()}" for i in recent
    ) or "- none"
    return (
        "Analyze the following user behavior data.\n\n"
        "USER PREFERENCES:\n" + _preference_summary(prefs) + "\n\n"
        "RECENT INTERACTIONS:\n" + interactions + "\n\n"
        "Provide:\n"
        "1. Primary shopping intent (browsing, specific purchase, comparing products)\n"
        "2. Category preference strength (1-10)\n"
        "3. Brand loyalty (1-10)\n"
        "4. Price sensitivity (1-10)\n"
        "5. Most important features, ranked\n"
        "6. Shopping behavior patterns\n\n"
        "OUTPUT FORMAT (JSON object): " + ANALYSIS_FORMAT
    )


def content_based_prompt(interacted: Sequence[Product], candidates: Sequence[Product],
                         analysis: UserAnalysis, count: int) -> str:
    return (
        "The user has interacted with these products:\n\n"
        + _catalog(interacted) + "\n\n"
        "CATALOG of available products:\n\n"
        + _catalog(candidates, tags=True) + "\n\n"
        "USER ANALYSIS:\n" + _analysis_summary(analysis) + "\n\n"
        f"Recommend the {count} catalog products most similar to what the user engaged with.\n"
        "Consider: category and subcategory similarity, brand loyalty, price compatibility, "
        "feature overlap, description and tag similarity.\n\n"
        "OUTPUT FORMAT (JSON array): " + _recommendation_format("content_based")
    )


def collaborative_prompt(catalog: Sequence[Product], prefs: UserPreference, analysis: UserAnalysis) -> str:
    low, high = prefs.price_range
    return (
        "USER PROFILE:\n"
        f"- Categories: {_join(prefs.preferred_categories)}\n"
        f"- Brands: {_join(prefs.preferred_brands)}\n"
        f"- Price Range: ${low} - ${high}\n"
        f"- Shopping Intent: {analysis.intent}\n"
        f"- Behavior Patterns: {_join(analysis.behavior_patterns)}\n\n"
        "PRODUCT CATALOG (sample):\n\n"
        + _catalog(catalog, subcategory=False, rating=True, description=False) + "\n\n"
        "Using collaborative-filtering reasoning, recommend products that:\n"
        "1. Are popular in the user's preferred categories\n"
        "2. Have high ratings and many reviews\n"
        "3. Come from trending brands within the price range\n"
        "4. Match the current shopping patterns\n"
        "5. Complement the user's likely purchases\n\n"
        "OUTPUT FORMAT (JSON array): " + _recommendation_format("collaborative")
    )


def rerank_prompt(candidates: Sequence[Recommendation], analysis: UserAnalysis) -> str:
    items = "\n\n".join(
        f"Product ID: {r.product_id}\nSource: {r.category}\nScore: {r.score}\nReason: {r.reason}"
        for r in candidates
    )
    return (
        "Rank these product recommendations for the user.\n\n"
        "USER ANALYSIS:\n" + _analysis_summary(analysis) + "\n\n"
        "RECOMMENDATIONS:\n\n" + items + "\n\n"
        "Order them best to worst and adjust scores using: the shopping intent, the strength of "
        "personal preferences, the reliability of each source, the quality of each reason.\n"
        "Keep each product's original category.\n\n"
        "OUTPUT FORMAT (JSON array, same items reordered): " + _recommendation_format("<original category>")
    )


def trending_prompt(catalog: Sequence[Product], count: int) -> str:
    return (
        "Identify the trending products below based on: high ratings and review counts, "
        "popular categories, competitive pricing, modern features.\n\n"
        "PRODUCTS:\n\n"
        + _catalog(catalog, subcategory=False, rating=True, reviews=True, description=False) + "\n\n"
        f"Return the top {count} trending products.\n\n"
        "OUTPUT FORMAT (JSON array): " + _recommendation_format("trending")
    )


def similar_prompt(target: Product, candidates: Sequence[Product], count: int) -> str:
    return (
        "TARGET PRODUCT:\n" + _catalog_entry(target) + "\n\n"
        "AVAILABLE PRODUCTS:\n\n" + _catalog(candidates) + "\n\n"
        f"Find the {count} products most similar to the target, considering: same or related category, "
        "similar features, comparable price, brand compatibility, use-case similarity.\n\n"
        "OUTPUT FORMAT (JSON array): " + _recommendation_format("similar")
    )
