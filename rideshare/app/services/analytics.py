"""
Analytics Service.

Read-only aggregates for the admin dashboard and rider stats.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from rideshare.app.models.enums import UserRole
from rideshare.app.models.subscription import Subscription, SubscriptionRide
from rideshare.app.models.subscription_enums import SubscriptionRideStatus
from rideshare.app.models.user import User
from rideshare.app.models.vehicle import Vehicle
from rideshare.app.schemas.analytics import AdminDashboardStats, RiderStats


class AnalyticsService:

    @staticmethod
    async def get_admin_dashboard(db: AsyncSession, day: Optional[date] = None) -> AdminDashboardStats:
        """Counts across the whole system; rides are counted for one UTC day."""
        day = day or datetime.now(timezone.utc).date()
        
        riders_query = select(func.count(User.id)).where(User.role == UserRole.RIDER)
        total_riders = (await db.execute(riders_query)).scalar() or 0
        
        drivers_query = select(func.count(User.id)).where(User.role == UserRole.DRIVER)
        total_drivers = (await db.execute(drivers_query)).scalar() or 0
        
        total_vehicles = (await db.execute(select(func.count(Vehicle.id)))).scalar() or 0
        
        active_query = select(func.count(Subscription.id)).where(Subscription.active == True)
        active_subscriptions = (await db.execute(active_query)).scalar() or 0
        
        rides_query = select(func.count(SubscriptionRide.id)).where(
            SubscriptionRide.ride_date == day,
            SubscriptionRide.status != SubscriptionRideStatus.CANCELLED
        )
        today_rides = (await db.execute(rides_query)).scalar() or 0
        
        # Booked price, refunds not deducted
        revenue = (await db.execute(select(func.sum(Subscription.price)))).scalar() or 0.0
        
        return AdminDashboardStats(
            total_riders=total_riders,
            total_drivers=total_drivers,
            total_vehicles=total_vehicles,
            active_subscriptions=active_subscriptions,
            today_rides=today_rides,
            total_revenue=round(revenue, 2)
        )
    
    @staticmethod
    async def get_rider_stats(db: AsyncSession, user_id: int) -> RiderStats:
        active_query = select(func.count(Subscription.id)).where(
            Subscription.user_id == user_id,
            Subscription.active == True
        )
        active_subscriptions = (await db.execute(active_query)).scalar() or 0
        
        rides_query = (
            select(func.count(SubscriptionRide.id))
            .join(Subscription, Subscription.id == SubscriptionRide.subscription_id)
            .where(Subscription.user_id == user_id)
        )
        total_rides = (await db.execute(rides_query)).scalar() or 0
        
        refunds_query = select(func.sum(Subscription.refund_amount)).where(Subscription.user_id == user_id)
        total_refunds = (await db.execute(refunds_query)).scalar() or 0.0
        
        return RiderStats(
            active_subscriptions=active_subscriptions,
            total_rides=total_rides,
            total_refunds=round(total_refunds, 2)
        )
