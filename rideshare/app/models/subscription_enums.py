"""
Subscription-related enumerations.
"""

import enum


class PlanType(str, enum.Enum):
    """Subscription plan length."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class SubscriptionRideStatus(str, enum.Enum):
    """Status of one materialized day of a subscription."""
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
