"""
Admin Route Template API Endpoints.

Admins define the preset routes that assignments run and riders
subscribe to.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from rideshare.app.db.session import get_db
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.subscription import Subscription
from rideshare.app.schemas.route_template import (
    RouteStopIn, RouteTemplateCreate, RouteTemplateUpdate,
    RouteTemplateResponse, RouteTemplateListResponse
)
from rideshare.app.core.guards import require_admin
from rideshare.app.services.assignment_views import build_route_view
from rideshare.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin - Routes"])


def _stops_payload(stops: List[RouteStopIn]) -> List[dict]:
    # Explicit order wins; otherwise list position
    return [
        {
            "name": stop.name,
            "lat": stop.lat,
            "lng": stop.lng,
            "order": stop.order if stop.order is not None else position,
        }
        for position, stop in enumerate(stops)
    ]


async def _get_route_or_404(db: AsyncSession, route_id: int) -> RouteTemplate:
    route = await db.get(RouteTemplate, route_id)
    if not route:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Route not found"
        )
    return route


@router.post("/routes", response_model=RouteTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_route(
    route_data: RouteTemplateCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a route template (admin-only).
    
    Stops are stored with an explicit order; duplicate orders are rejected.
    """
    stops = _stops_payload(route_data.stops)
    orders = [s["order"] for s in stops]
    if len(orders) != len(set(orders)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Stop orders must be unique"
        )
    
    route = RouteTemplate(
        name=route_data.name,
        description=route_data.description,
        start_name=route_data.start_name,
        start_lat=route_data.start_lat,
        start_lng=route_data.start_lng,
        end_name=route_data.end_name,
        end_lat=route_data.end_lat,
        end_lng=route_data.end_lng,
        stops=stops,
        estimated_time=route_data.estimated_time,
        fare=route_data.fare,
        active=True
    )
    db.add(route)
    await db.commit()
    await db.refresh(route)
    
    await log_event(
        db=db,
        action=AuditAction.ROUTE_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"route_id": route.id, "name": route.name, "stop_count": len(stops)}
    )
    
    return build_route_view(route)


@router.get("/routes", response_model=RouteTemplateListResponse)
async def list_routes(
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List route templates (admin-only), including inactive ones unless filtered."""
    query = select(RouteTemplate)
    if active is not None:
        query = query.where(RouteTemplate.active == active)
    
    result = await db.execute(query.order_by(RouteTemplate.name, RouteTemplate.id))
    routes = result.scalars().all()
    
    return RouteTemplateListResponse(
        routes=[build_route_view(route) for route in routes],
        total=len(routes)
    )


@router.get("/routes/{route_id}", response_model=RouteTemplateResponse)
async def get_route(
    route_id: int = Path(..., description="Route ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get one route template with its stop sequence (admin-only)."""
    return build_route_view(await _get_route_or_404(db, route_id))


@router.put("/routes/{route_id}", response_model=RouteTemplateResponse)
async def update_route(
    route_data: RouteTemplateUpdate,
    route_id: int = Path(..., description="Route ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a route template (admin-only).
    
    Replacing the stops rewrites them under `stops` and drops any legacy
    `stoppages`. Running assignments keep their stop index, so edit stops
    between rides.
    """
    route = await _get_route_or_404(db, route_id)
    
    update_data = route_data.model_dump(exclude_unset=True)
    if "stops" in update_data:
        stops = _stops_payload(route_data.stops or [])
        orders = [s["order"] for s in stops]
        if len(orders) != len(set(orders)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Stop orders must be unique"
            )
        route.stops = stops
        route.stoppages = None
        del update_data["stops"]
    
    for field, value in update_data.items():
        setattr(route, field, value)
    
    await db.commit()
    await db.refresh(route)
    
    await log_event(
        db=db,
        action=AuditAction.ROUTE_UPDATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"route_id": route.id, "updated_fields": sorted(route_data.model_dump(exclude_unset=True))}
    )
    
    return build_route_view(route)


@router.post("/routes/{route_id}/deactivate", response_model=RouteTemplateResponse)
async def deactivate_route(
    route_id: int = Path(..., description="Route ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a route template (admin-only).
    
    Hidden from riders; existing assignments and subscriptions are untouched.
    """
    route = await _get_route_or_404(db, route_id)
    
    if not route.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Route is already inactive"
        )
    
    route.active = False
    await db.commit()
    await db.refresh(route)
    
    await log_event(
        db=db,
        action=AuditAction.ROUTE_DEACTIVATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"route_id": route.id}
    )
    
    return build_route_view(route)


@router.delete("/routes/{route_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_route(
    route_id: int = Path(..., description="Route ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a route template that nothing references (admin-only).
    
    Routes with assignments or subscriptions must be deactivated instead.
    """
    route = await _get_route_or_404(db, route_id)
    
    assignments = await db.execute(
        select(func.count(Assignment.id)).where(Assignment.route_id == route.id)
    )
    subscriptions = await db.execute(
        select(func.count(Subscription.id)).where(Subscription.route_id == route.id)
    )
    if assignments.scalar_one() or subscriptions.scalar_one():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Route has assignments or subscriptions; deactivate it instead"
        )
    
    await db.delete(route)
    await db.commit()
    
    await log_event(
        db=db,
        action=AuditAction.ROUTE_DEACTIVATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"route_id": route_id, "deleted": True}
    )
