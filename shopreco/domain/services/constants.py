# Constants for the recommendation pipeline.

# Prompt-size caps (earliest N by catalog order; not a ranking decision)
RECENT_INTERACTIONS_K = 20         # interactions sent to behavior analysis
CONTENT_CATALOG_K = 50             # non-interacted products sent to the content-based stage
CONTENT_RESULTS_K = 15             # items the content-based stage asks for
COLLABORATIVE_CATALOG_K = 30       # products sent to the collaborative stage
TRENDING_CATALOG_K = 50            # products sent to the trending prompt
SIMILAR_CATALOG_K = 30             # candidates sent to the similar-products prompt

# Default result sizes
FINAL_K = 10
SIMILAR_K = 5

# Heuristic fallbacks
RATING_TO_SCORE = 20               # 5-star average -> 100-point scale
SIMILAR_BASE_SCORE = 80            # similar fallback: 80 - |price diff| / divisor
SIMILAR_PRICE_DIVISOR = 10

# Default behavior analysis when the model gives nothing usable
DEFAULT_INTENT = "browsing"
DEFAULT_STRENGTH = 5
DEFAULT_TOP_FEATURES_K = 3
DEFAULT_BEHAVIOR_PATTERN = "general_browsing"

# Prompt rendering
DESCRIPTION_MAX_CHARS = 200
