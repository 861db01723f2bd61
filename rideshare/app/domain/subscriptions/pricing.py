"""
Subscription pricing.

price = distance_km * fare_rate_per_km * plan multiplier
"""

from typing import Optional

from rideshare.app.core.config import settings
from rideshare.app.models.subscription_enums import PlanType

# Weekly and monthly plans are discounted against daily rides
PLAN_MULTIPLIERS = {
    PlanType.DAILY: 1,
    PlanType.WEEKLY: 6,
    PlanType.MONTHLY: 25,
}


class SubscriptionPricing:
    
    @staticmethod
    def quote(distance_km: float, plan_type: PlanType, rate_per_km: Optional[float] = None) -> float:
        """
        Price of one subscription period.
        
        Raises:
            ValueError: for a negative distance
        """
        if distance_km < 0:
            raise ValueError("Distance cannot be negative")
        rate = settings.fare_rate_per_km if rate_per_km is None else rate_per_km
        return round(distance_km * rate * PLAN_MULTIPLIERS[plan_type], 2)
    
    @staticmethod
    def refund_per_ride(price: float, ride_count: int, ratio: Optional[float] = None) -> float:
        """Share of the refund owed for each cancelled future ride."""
        if ride_count <= 0:
            return 0.0
        refund_ratio = settings.cancellation_refund_ratio if ratio is None else ratio
        return price * refund_ratio / ride_count
