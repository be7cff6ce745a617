"""
Operational constants for the referral engine.

Technical/operational constants used across the application.
Includes lock timeouts, retry configuration and task time limits.
"""

# =============================================================================
# LOCK TIMEOUTS (seconds)
# =============================================================================
# Used by distributed_lock.py for Redis locks

# Medium operations (feed maintenance)
LOCK_TIMEOUT_MEDIUM = 60

# Long operations (daily batch runs)
LOCK_TIMEOUT_LONG = 1800


# =============================================================================
# BLOCKING TIMEOUTS (seconds)
# =============================================================================
# How long to wait for lock acquisition

BLOCKING_TIMEOUT_DEFAULT = 5.0


# =============================================================================
# RETRY CONFIGURATIONS
# =============================================================================

# Default retry count for queued tasks
DEFAULT_MAX_RETRIES = 3

# Backoff bounds for dramatiq Retries middleware (milliseconds)
RETRY_MIN_BACKOFF_MS = 1_000
RETRY_MAX_BACKOFF_MS = 60_000


# =============================================================================
# DRAMATIQ TASK TIME LIMITS (milliseconds)
# =============================================================================

# Short tasks (1 minute) - per-deposit reward processing
DRAMATIQ_TIME_LIMIT_SHORT = 60_000

# Standard tasks (5 minutes) - feed maintenance
DRAMATIQ_TIME_LIMIT_STANDARD = 300_000

# Long tasks (30 minutes) - daily profit and bonus runs
DRAMATIQ_TIME_LIMIT_LONG = 1_800_000
