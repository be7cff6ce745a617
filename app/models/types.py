"""
Standard type definitions for database models.

Provides consistent types for monetary, percentage and document fields
across all models.
"""

from sqlalchemy import DECIMAL, JSON
from sqlalchemy.dialects.postgresql import JSONB

# Standard money type for amounts, balances, rewards
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Precise rate percentage type for daily profit percentages
# Precision: 10 digits total, 4 after decimal point
# Suitable for: feed percentages (e.g., 2.5000%, -0.7500%)
RatePercentType = DECIMAL(10, 4)

# JSON document type: JSONB on PostgreSQL, generic JSON elsewhere
DocumentType = JSON().with_variant(JSONB(), "postgresql")
