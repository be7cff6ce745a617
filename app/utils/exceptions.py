"""
Exception handling utilities.

Defines the engine's exception hierarchy and categorized exception types
for proper error handling in batch runs.
"""

from datetime import date

from sqlalchemy.exc import OperationalError


class ReferralEngineError(Exception):
    """Base class for referral engine errors."""

    pass


class CycleDetected(ReferralEngineError):
    """Raised when the hierarchy contains a parent/child cycle."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Hierarchy cycle detected at user {user_id}")


class InvalidParent(ReferralEngineError):
    """Raised when a referral or parent change is rejected."""

    def __init__(self, reason: str, user_id: int | None = None,
                 parent_id: int | None = None) -> None:
        self.reason = reason
        self.user_id = user_id
        self.parent_id = parent_id
        super().__init__(reason)


class MissingFeedEntry(ReferralEngineError):
    """No feed entry for the requested (user, date); counts as zero profit."""

    def __init__(self, user_id: int, on: date) -> None:
        self.user_id = user_id
        self.on = on
        super().__init__(f"No trade feed entry for user {user_id} on {on}")


class ExternalFeedUnavailable(ReferralEngineError):
    """The user's cached trade report is missing, expired or unreadable."""

    def __init__(self, user_id: int, reason: str) -> None:
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Trade feed unavailable for user {user_id}: {reason}")


class UserNotFound(ReferralEngineError):
    """Referenced user does not exist."""

    pass


class DepositNotFound(ReferralEngineError):
    """Referenced deposit does not exist."""

    pass


class InvalidDepositTransition(ReferralEngineError):
    """Deposit status change is not allowed."""

    pass


class LedgerError(ReferralEngineError):
    """Ledger credit request is invalid."""

    pass


# Exception categories based on handling strategy

# Must log but the batch continues with the next user
MUST_LOG = (
    CycleDetected,
    ExternalFeedUnavailable,
    OperationalError,  # Database errors (retried on next run)
)

# Must raise - validation issues reported to the caller
MUST_RAISE = (
    InvalidParent,
    DepositNotFound,
    InvalidDepositTransition,
    LedgerError,
    ValueError,
)


def must_log(exc: Exception) -> bool:
    """
    Check if exception must be logged and skipped.

    Args:
        exc: Exception to check

    Returns:
        True if exception is logged and processing continues
    """
    return isinstance(exc, MUST_LOG)


def must_raise(exc: Exception) -> bool:
    """
    Check if exception must be raised.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be raised
    """
    return isinstance(exc, MUST_RAISE)
