"""
Rider Ride API Endpoints.

A rider's materialized subscription rides with the live progress of the
assignment each one rides on.
"""

from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from rideshare.app.core.config import settings
from rideshare.app.db.session import get_db
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.enums import UserRole
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.subscription import Subscription
from rideshare.app.schemas.subscription import MyRideResponse, MyRidesResponse, RideProgress, SubscriptionRideResponse
from rideshare.app.core.guards import require_role
from rideshare.app.domain.progress.progress_service import ProgressService
from rideshare.app.domain.routes.stop_sequence import total_stop_count
from rideshare.app.domain.subscriptions.subscription_service import SubscriptionService
from rideshare.app.services.assignment_views import sequence_stop_view

router = APIRouter(prefix="/rider", tags=["Rider - Rides"])


@router.get("/rides", response_model=MyRidesResponse)
async def my_rides(
    day: Optional[date] = Query(None, alias="date", description="Only rides on this UTC day"),
    current_user: dict = Depends(require_role([UserRole.RIDER])),
    db: AsyncSession = Depends(get_db)
):
    """
    The rider's rides, oldest first, with assignment progress where linked.
    
    Poll every poll_interval_seconds to follow a running ride.
    """
    rides = await SubscriptionService.rides_for_user(db, current_user["user_id"], day)
    
    subscriptions: Dict[int, Subscription] = {}
    routes: Dict[int, RouteTemplate] = {}
    assignments: Dict[int, Assignment] = {}
    
    sub_ids = {ride.subscription_id for ride in rides}
    if sub_ids:
        result = await db.execute(select(Subscription).where(Subscription.id.in_(sub_ids)))
        subscriptions = {s.id: s for s in result.scalars().all()}
    
    assignment_ids = {ride.assignment_id for ride in rides if ride.assignment_id}
    if assignment_ids:
        result = await db.execute(select(Assignment).where(Assignment.id.in_(assignment_ids)))
        assignments = {a.id: a for a in result.scalars().all()}
    
    route_ids = {s.route_id for s in subscriptions.values()}
    if route_ids:
        result = await db.execute(select(RouteTemplate).where(RouteTemplate.id.in_(route_ids)))
        routes = {r.id: r for r in result.scalars().all()}
    
    views = []
    for ride in rides:
        subscription = subscriptions[ride.subscription_id]
        route = routes[subscription.route_id]
        
        progress = None
        assignment = assignments.get(ride.assignment_id)
        if assignment is not None:
            next_stop = ProgressService.next_stop(assignment, route)
            progress = RideProgress(
                assignment_id=assignment.id,
                status=assignment.status,
                current_stop_index=assignment.current_stop_index,
                total_stops=total_stop_count(route),
                next_stop=sequence_stop_view(next_stop) if next_stop else None
            )
        
        views.append(MyRideResponse(
            **SubscriptionRideResponse.model_validate(ride).model_dump(),
            route_id=subscription.route_id,
            pickup_stop_name=subscription.pickup_stop_name,
            drop_stop_name=subscription.drop_stop_name,
            progress=progress
        ))
    
    return MyRidesResponse(
        rides=views,
        total=len(views),
        poll_interval_seconds=settings.progress_poll_interval_seconds
    )
