"""Core constants: cache key names and shared literal values.

Single source of truth for named cache keys and invalidation prefixes.
Request-derived keys ("{METHOD}:{URL}:{body}") are built in
evalsync.core.cache_keys.
"""

# Named cache keys / prefixes (joined with "-" the way the server-facing UI names them)
CACHE_KEY_PENDING_EVALUATIONS = "pending-evaluations"
CACHE_PREFIX_EVALUATION_DETAILS = "evaluation-details"
CACHE_PREFIX_EVALUATOR_STATUS = "evaluator-status"

# Delimiter for request-derived keys
CACHE_KEY_SEP = ":"

# Message used when a response body is not valid JSON
INVALID_SERVER_RESPONSE = "Invalid server response"

# Timestamp format expected by the webhook for completion fields
SERVER_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
