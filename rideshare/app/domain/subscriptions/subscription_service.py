"""
Subscription Service (Domain Logic).

Creates subscriptions with their per-day rides, cancels them with partial
refunds, and reports seat capacity of a route's assignments.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.core.exceptions import BusinessRuleError, ResourceNotFoundError
from rideshare.app.domain.routes.stop_sequence import find_stop, full_stop_sequence, path_distance_km
from rideshare.app.domain.scheduling.weekdays import matching_days, normalize_weekdays, plan_end_date
from rideshare.app.domain.subscriptions.pricing import SubscriptionPricing
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.assignment_enums import AssignmentStatus
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.subscription import Subscription, SubscriptionRide
from rideshare.app.models.subscription_enums import PlanType, SubscriptionRideStatus
from rideshare.app.models.vehicle import Vehicle

logger = logging.getLogger("rideshare.subscriptions")


class SubscriptionService:
    
    @staticmethod
    async def create_subscription(
        db: AsyncSession,
        user_id: int,
        route_id: int,
        pickup_stop: str,
        drop_stop: str,
        schedule_days: Iterable[str],
        plan_type: PlanType,
        start_date: date,
        schedule_time: Optional[str] = None,
        assignment_id: Optional[int] = None
    ) -> Subscription:
        """
        Book a pickup/drop pair on a route for one plan period.
        
        Flow:
        1. Route exists and is active
        2. Pickup and drop are on the route, pickup first
        3. Chosen assignment (if any) is on the route with a free seat
        4. Price from the pickup-to-drop distance
        5. One SubscriptionRide per scheduled weekday in the period, linked to
           the booked assignment or the first one that day with a free seat
        
        Raises:
            ResourceNotFoundError: unknown route or assignment
            BusinessRuleError: any booking rule above is broken
        """
        route = await db.get(RouteTemplate, route_id)
        if not route:
            raise ResourceNotFoundError("Route", route_id)
        if not route.active:
            raise BusinessRuleError("Route is not accepting subscriptions", {"route_id": route_id})
        
        sequence = full_stop_sequence(route)
        try:
            pickup = find_stop(sequence, pickup_stop)
            drop = find_stop(sequence, drop_stop)
            days = normalize_weekdays(schedule_days)
        except ValueError as e:
            raise BusinessRuleError(str(e))
        
        if pickup.index >= drop.index:
            raise BusinessRuleError(
                "Pickup must come before drop on the route",
                {"pickup_stop_id": pickup.id, "drop_stop_id": drop.id}
            )
        if not days:
            raise BusinessRuleError("At least one schedule day is required")
        
        assignment = None
        if assignment_id is not None:
            assignment = await SubscriptionService._bookable_assignment(db, assignment_id, route.id)
            schedule_time = schedule_time or assignment.scheduled_start_time
        
        distance_km = round(path_distance_km(sequence, pickup.index, drop.index), 3)
        price = SubscriptionPricing.quote(distance_km, plan_type)
        end_date = plan_end_date(start_date, plan_type)
        
        subscription = Subscription(
            user_id=user_id,
            route_id=route.id,
            assignment_id=assignment.id if assignment else None,
            pickup_stop_id=pickup.id,
            pickup_stop_name=pickup.name,
            drop_stop_id=drop.id,
            drop_stop_name=drop.name,
            schedule_days=days,
            schedule_time=schedule_time,
            plan_type=plan_type,
            price=price,
            distance_km=distance_km,
            start_date=start_date,
            end_date=end_date,
            active=True
        )
        db.add(subscription)
        await db.flush()
        
        ride_days = matching_days(start_date, end_date, days)
        assignments_by_day = await SubscriptionService._route_assignments_by_day(
            db, route.id, start_date, end_date
        )
        for day in ride_days:
            if assignment is not None and assignment.scheduled_date == day:
                linked_id = assignment.id
            else:
                linked_id = await SubscriptionService._first_with_free_seat(
                    db, assignments_by_day.get(day, [])
                )
            db.add(SubscriptionRide(
                subscription_id=subscription.id,
                assignment_id=linked_id,
                ride_date=day,
                status=SubscriptionRideStatus.SCHEDULED
            ))
        
        await db.commit()
        await db.refresh(subscription)
        
        logger.info(
            "Subscription %s created for user %s on route %s (%s rides, price %.2f)",
            subscription.id, user_id, route.id, len(ride_days), price
        )
        return subscription
    
    @staticmethod
    async def cancel_subscription(
        db: AsyncSession,
        subscription_id: int,
        user_id: int,
        today: Optional[date] = None
    ) -> Subscription:
        """
        Cancel a subscription and refund its remaining rides.
        
        Each still-scheduled ride from today on is cancelled and refunded
        price * refund ratio / number of such rides.
        
        Raises:
            ResourceNotFoundError: unknown subscription or not the caller's
            BusinessRuleError: already cancelled
        """
        subscription = await db.get(Subscription, subscription_id)
        if not subscription or subscription.user_id != user_id:
            raise ResourceNotFoundError("Subscription", subscription_id)
        if not subscription.active:
            raise BusinessRuleError("Subscription is already cancelled", {"subscription_id": subscription_id})
        
        today = today or datetime.now(timezone.utc).date()
        now = datetime.now(timezone.utc)
        
        result = await db.execute(
            select(SubscriptionRide).where(
                SubscriptionRide.subscription_id == subscription.id,
                SubscriptionRide.ride_date >= today,
                SubscriptionRide.status == SubscriptionRideStatus.SCHEDULED
            )
        )
        future_rides = list(result.scalars().all())
        
        per_ride = SubscriptionPricing.refund_per_ride(subscription.price, len(future_rides))
        for ride in future_rides:
            ride.status = SubscriptionRideStatus.CANCELLED
            ride.refund_amount = per_ride
            ride.cancelled_at = now
        
        subscription.active = False
        subscription.refunded = True
        subscription.refund_amount = round(per_ride * len(future_rides), 2)
        subscription.refunded_at = now
        
        await db.commit()
        await db.refresh(subscription)
        
        logger.info(
            "Subscription %s cancelled, %s rides refunded %.2f",
            subscription.id, len(future_rides), subscription.refund_amount
        )
        return subscription
    
    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: int) -> List[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        )
        return list(result.scalars().all())
    
    @staticmethod
    async def rides_for_user(
        db: AsyncSession,
        user_id: int,
        day: Optional[date] = None
    ) -> List[SubscriptionRide]:
        """A rider's materialized rides, optionally for one day."""
        query = (
            select(SubscriptionRide)
            .join(Subscription, Subscription.id == SubscriptionRide.subscription_id)
            .where(Subscription.user_id == user_id)
        )
        if day is not None:
            query = query.where(SubscriptionRide.ride_date == day)
        query = query.order_by(SubscriptionRide.ride_date, SubscriptionRide.id)
        
        result = await db.execute(query)
        return list(result.scalars().all())
    
    @staticmethod
    async def count_active_subscribers(db: AsyncSession, assignment_id: int) -> int:
        """
        Active subscriptions holding a seat on an assignment.
        
        A subscription holds the seat when it booked the assignment or when
        any of its non-cancelled rides is linked to it.
        """
        riding = select(SubscriptionRide.subscription_id).where(
            SubscriptionRide.assignment_id == assignment_id,
            SubscriptionRide.status != SubscriptionRideStatus.CANCELLED
        )
        result = await db.execute(
            select(func.count(Subscription.id)).where(
                Subscription.active == True,
                or_(Subscription.assignment_id == assignment_id, Subscription.id.in_(riding))
            )
        )
        return result.scalar_one()
    
    @staticmethod
    async def route_capacity(db: AsyncSession, route_id: int, day: date) -> List[Dict]:
        """
        Seat availability for each live assignment of a route on a day.
        
        Assignments without a vehicle report no seats.
        """
        result = await db.execute(
            select(Assignment).where(
                Assignment.route_id == route_id,
                Assignment.scheduled_date == day,
                Assignment.status != AssignmentStatus.CANCELLED
            ).order_by(Assignment.scheduled_start_time, Assignment.id)
        )
        capacity = []
        for assignment in result.scalars().all():
            vehicle = await db.get(Vehicle, assignment.vehicle_id) if assignment.vehicle_id else None
            seats = vehicle.capacity if vehicle else 0
            subscribed = await SubscriptionService.count_active_subscribers(db, assignment.id)
            capacity.append({
                "assignment": assignment,
                "vehicle": vehicle,
                "capacity": seats,
                "subscribed_count": subscribed,
                "available_seats": max(seats - subscribed, 0),
                "is_full": subscribed >= seats,
            })
        return capacity
    
    @staticmethod
    async def _bookable_assignment(db: AsyncSession, assignment_id: int, route_id: int) -> Assignment:
        assignment = await db.get(Assignment, assignment_id)
        if not assignment:
            raise ResourceNotFoundError("Assignment", assignment_id)
        if assignment.route_id != route_id:
            raise BusinessRuleError(
                "Assignment does not run this route",
                {"assignment_id": assignment_id, "route_id": route_id}
            )
        if assignment.status == AssignmentStatus.CANCELLED:
            raise BusinessRuleError("Assignment is cancelled", {"assignment_id": assignment_id})
        if not assignment.vehicle_id:
            raise BusinessRuleError("Assignment has no vehicle yet", {"assignment_id": assignment_id})
        
        vehicle = await db.get(Vehicle, assignment.vehicle_id)
        subscribed = await SubscriptionService.count_active_subscribers(db, assignment.id)
        if subscribed >= vehicle.capacity:
            raise BusinessRuleError(
                "Vehicle is at full capacity. Please choose another route or time.",
                {"capacity": vehicle.capacity, "subscribed_count": subscribed}
            )
        return assignment
    
    @staticmethod
    async def _route_assignments_by_day(
        db: AsyncSession,
        route_id: int,
        start: date,
        end: date
    ) -> Dict[date, List[Assignment]]:
        """Non-cancelled assignments of the route per day in [start, end), earliest start first."""
        result = await db.execute(
            select(Assignment).where(
                Assignment.route_id == route_id,
                Assignment.scheduled_date >= start,
                Assignment.scheduled_date < end,
                Assignment.status != AssignmentStatus.CANCELLED
            ).order_by(Assignment.scheduled_date, Assignment.scheduled_start_time, Assignment.id)
        )
        by_day = defaultdict(list)
        for assignment in result.scalars().all():
            by_day[assignment.scheduled_date].append(assignment)
        return dict(by_day)
    
    @staticmethod
    async def _first_with_free_seat(db: AsyncSession, candidates: List[Assignment]) -> Optional[int]:
        """
        Id of the first candidate whose vehicle still has a seat.
        
        Rides with no such assignment stay unlinked.
        """
        for candidate in candidates:
            if not candidate.vehicle_id:
                continue
            vehicle = await db.get(Vehicle, candidate.vehicle_id)
            if await SubscriptionService.count_active_subscribers(db, candidate.id) < vehicle.capacity:
                return candidate.id
        return None
