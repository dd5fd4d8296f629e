"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance.

Constants are organized by category. Values that operators may want to
tune are re-exposed as defaults on ``src.config.Settings``.
"""

# =============================================================================
# Chat Message Constraints
# =============================================================================

# Maximum allowed input chat message length (chars)
MAX_MESSAGE_LENGTH_CHARS = 2000

# =============================================================================
# Date Windows
# =============================================================================

# Default lookback window when the classifier does not extract one (days)
DEFAULT_DAYS_BACK = 7

# Department used for TEAM_SUMMARY when none is given
DEFAULT_DEPARTMENT = "Agent"

# =============================================================================
# Result Limits
# =============================================================================

# Maximum calls returned for LIST_CALLS
DEFAULT_CALL_LIST_LIMIT = 50

# Calls rendered in a formatted call list before "...and N more"
CALL_LIST_DISPLAY_LIMIT = 10

# Maximum search hits returned for SEARCH_CALLS
DEFAULT_SEARCH_RESULT_LIMIT = 10

# Search hits rendered in a formatted result list
SEARCH_RESULTS_DISPLAY_LIMIT = 5

# Excerpt length for search results (chars)
SEARCH_EXCERPT_CHARS = 150

# =============================================================================
# RAG / Search Configuration
# =============================================================================

# Minimum cosine similarity for semantic call search
DEFAULT_SIMILARITY_THRESHOLD = 0.5

# Default embedding vector dimension (matches text-embedding-3-small)
DEFAULT_EMBEDDING_DIMENSIONS = 1536

# =============================================================================
# LLM Configuration
# =============================================================================

# Number of retries for agent calls
AGENT_RETRY_COUNT = 2

# Token budgets per call type
CLASSIFICATION_MAX_TOKENS = 256
ANALYSIS_MAX_TOKENS = 4096
COACHING_SUMMARY_MAX_TOKENS = 2048
OBJECTION_SUMMARY_MAX_TOKENS = 1024
GENERAL_RESPONSE_MAX_TOKENS = 512

# Low temperature for JSON output, higher for prose
JSON_TEMPERATURE = 0.1
PROSE_TEMPERATURE = 0.7

# =============================================================================
# Coaching Rubric
# =============================================================================

# Category weights for the overall coaching score
COACHING_CATEGORY_WEIGHTS = {
    "opening_rapport": 0.10,
    "needs_discovery": 0.30,
    "product_presentation": 0.20,
    "objection_handling": 0.20,
    "compliance_disclosures": 0.10,
    "closing_enrollment": 0.10,
}

COACHING_CATEGORY_LABELS = {
    "opening_rapport": "Opening & Rapport",
    "needs_discovery": "Needs Discovery",
    "product_presentation": "Product Presentation",
    "objection_handling": "Objection Handling",
    "compliance_disclosures": "Compliance & Disclosures",
    "closing_enrollment": "Closing & Enrollment",
}

# Rubric score bounds
MIN_RUBRIC_SCORE = 1
MAX_RUBRIC_SCORE = 5

# =============================================================================
# Objection History
# =============================================================================

# Minimum occurrences before an objection type counts as a weak/strong area
OBJECTION_AREA_MIN_OCCURRENCES = 2

# Number of weak/strong areas returned
OBJECTION_AREA_LIMIT = 3

# =============================================================================
# Background Tasks
# =============================================================================

# Graceful shutdown timeout (seconds) - wait this long for tasks to complete
GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Rate Limiting
# =============================================================================

# Chat messages accepted per caller within one window
MAX_CHAT_MESSAGES_PER_MINUTE = 20

# Sliding window length (seconds)
RATE_LIMIT_WINDOW_SECONDS = 60
