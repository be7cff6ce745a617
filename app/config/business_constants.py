"""
Business logic constants for the referral engine.

Central location for business rules used by the leg, bonus and reward
services. Kept free of service imports to avoid circular dependencies.
"""

from dataclasses import dataclass
from decimal import Decimal


# Direct children counted as legs (A, B, C) in join order
LEG_COUNT = 3

# Generation depth unlocked by active legs
GENERATION_ALL_LEGS = 10
GENERATION_TWO_LEGS = 6
GENERATION_ONE_LEG = 3
GENERATION_NONE = 0

# Money precision
MONEY_PLACES = Decimal("0.01")
LEDGER_PLACES = Decimal("0.00000001")

# Window for the "new subs" counter in capital history
NEW_SUB_WINDOW_HOURS = 24


class BucketType:
    """Reward bucket variants."""

    STANDARD = "standard"
    LEGACY = "legacy"


@dataclass(frozen=True)
class BucketPolicy:
    """
    Cap and payout of a capped leg bucket.

    Attributes:
        bucket_type: Discriminator stored on the bucket row
        cap: Maximum balance of each leg
        payout: Fixed reward paid once all three legs reach the cap
    """

    bucket_type: str
    cap: Decimal
    payout: Decimal


STANDARD_BUCKET = BucketPolicy(
    bucket_type=BucketType.STANDARD,
    cap=Decimal("1500"),
    payout=Decimal("500"),
)

LEGACY_BUCKET = BucketPolicy(
    bucket_type=BucketType.LEGACY,
    cap=Decimal("45000"),
    payout=Decimal("15000"),
)

# Order in which policies are applied to a completed deposit
BUCKET_POLICIES = (STANDARD_BUCKET, LEGACY_BUCKET)
