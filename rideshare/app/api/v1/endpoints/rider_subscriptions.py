"""
Rider Route & Subscription API Endpoints.

Riders browse active routes, check seat availability and manage their
subscriptions.
"""

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from rideshare.app.db.session import get_db
from rideshare.app.models.enums import UserRole
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.schemas.assignment import AssignmentResponse
from rideshare.app.schemas.route_template import RouteTemplateResponse, RouteTemplateListResponse
from rideshare.app.schemas.subscription import (
    SubscriptionCreate, SubscriptionResponse, SubscriptionListResponse,
    AssignmentCapacityResponse, RouteCapacityResponse
)
from rideshare.app.schemas.vehicle import VehicleResponse
from rideshare.app.core.guards import require_role
from rideshare.app.domain.subscriptions.subscription_service import SubscriptionService
from rideshare.app.services.assignment_views import build_route_view
from rideshare.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/rider", tags=["Rider - Subscriptions"])

require_rider = require_role([UserRole.RIDER])


async def _get_active_route_or_404(db: AsyncSession, route_id: int) -> RouteTemplate:
    route = await db.get(RouteTemplate, route_id)
    if not route or not route.active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Route not found"
        )
    return route


@router.get("/routes", response_model=RouteTemplateListResponse)
async def list_active_routes(
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db)
):
    """Active routes with their full stop sequences."""
    result = await db.execute(
        select(RouteTemplate).where(RouteTemplate.active == True).order_by(RouteTemplate.name)
    )
    routes = result.scalars().all()
    return RouteTemplateListResponse(
        routes=[build_route_view(route) for route in routes],
        total=len(routes)
    )


@router.get("/routes/{route_id}", response_model=RouteTemplateResponse)
async def get_active_route(
    route_id: int = Path(..., description="Route ID"),
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db)
):
    return build_route_view(await _get_active_route_or_404(db, route_id))


@router.get("/routes/{route_id}/assignments", response_model=RouteCapacityResponse)
async def route_assignments_with_capacity(
    route_id: int = Path(..., description="Route ID"),
    day: Optional[date] = Query(None, alias="date", description="UTC day, defaults to today"),
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db)
):
    """
    Assignments running a route on a day, with free seats per vehicle.
    """
    route = await _get_active_route_or_404(db, route_id)
    day = day or datetime.now(timezone.utc).date()
    
    entries = await SubscriptionService.route_capacity(db, route.id, day)
    
    return RouteCapacityResponse(
        route_id=route.id,
        service_date=day,
        assignments=[
            AssignmentCapacityResponse(
                assignment=AssignmentResponse.model_validate(entry["assignment"]),
                vehicle=VehicleResponse.model_validate(entry["vehicle"]) if entry["vehicle"] else None,
                capacity=entry["capacity"],
                subscribed_count=entry["subscribed_count"],
                available_seats=entry["available_seats"],
                is_full=entry["is_full"]
            )
            for entry in entries
        ]
    )


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    subscription_data: SubscriptionCreate,
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db)
):
    """
    Subscribe to a pickup/drop pair on a route.
    
    Price is the pickup-to-drop distance times the per-km fare times the
    plan multiplier (daily 1, weekly 6, monthly 25).
    """
    subscription = await SubscriptionService.create_subscription(
        db,
        user_id=current_user["user_id"],
        route_id=subscription_data.route_id,
        pickup_stop=subscription_data.pickup_stop,
        drop_stop=subscription_data.drop_stop,
        schedule_days=subscription_data.schedule_days,
        plan_type=subscription_data.plan_type,
        start_date=subscription_data.start_date or datetime.now(timezone.utc).date(),
        schedule_time=subscription_data.schedule_time,
        assignment_id=subscription_data.assignment_id
    )
    
    await log_event(
        db=db,
        action=AuditAction.SUBSCRIPTION_CREATED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        metadata={
            "subscription_id": subscription.id,
            "route_id": subscription.route_id,
            "plan_type": subscription.plan_type.value,
            "price": subscription.price
        }
    )
    
    return SubscriptionResponse.model_validate(subscription)


@router.get("/subscriptions", response_model=SubscriptionListResponse)
async def list_my_subscriptions(
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db)
):
    subscriptions = await SubscriptionService.list_for_user(db, current_user["user_id"])
    return SubscriptionListResponse(
        subscriptions=[SubscriptionResponse.model_validate(s) for s in subscriptions],
        total=len(subscriptions)
    )


@router.post("/subscriptions/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: int = Path(..., description="Subscription ID"),
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel a subscription.
    
    Remaining rides from today on are cancelled and refunded half the
    subscription price, split evenly.
    """
    subscription = await SubscriptionService.cancel_subscription(
        db, subscription_id, current_user["user_id"]
    )
    
    await log_event(
        db=db,
        action=AuditAction.SUBSCRIPTION_CANCELLED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        metadata={"subscription_id": subscription.id, "refund_amount": subscription.refund_amount}
    )
    
    return SubscriptionResponse.model_validate(subscription)
