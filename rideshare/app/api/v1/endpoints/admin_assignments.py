"""
Admin Assignment API Endpoints.

Scheduling (single, recurring and bulk) plus admin overrides of ride
progress. Progress writes go through ProgressService like the driver
endpoints.
"""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from rideshare.app.db.session import get_db
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.assignment_enums import AssignmentStatus
from rideshare.app.models.enums import UserRole
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.user import User
from rideshare.app.models.vehicle import Vehicle
from rideshare.app.models.vehicle_enums import VehicleStatus
from rideshare.app.schemas.assignment import (
    AssignmentCreate, AssignmentBulkCreate, AssignmentBulkResponse, AssignmentUpdate,
    AssignmentResponse, AssignmentListResponse, AssignmentDetailResponse, StatusUpdate
)
from rideshare.app.core.guards import require_admin
from rideshare.app.domain.progress.progress_service import ProgressService
from rideshare.app.domain.progress.state_machine import coerce_status
from rideshare.app.domain.scheduling.weekdays import matching_days
from rideshare.app.services.assignment_views import build_assignment_detail
from rideshare.app.services.audit import log_assignment_event, log_event, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin - Assignments"])


async def _check_driver(db: AsyncSession, driver_id: int) -> User:
    driver = await db.get(User, driver_id)
    if not driver or driver.role != UserRole.DRIVER:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Driver not found"
        )
    if not driver.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Driver account is blocked"
        )
    return driver


async def _check_route(db: AsyncSession, route_id: int) -> RouteTemplate:
    route = await db.get(RouteTemplate, route_id)
    if not route:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Route not found"
        )
    if not route.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Route is inactive"
        )
    return route


async def _check_vehicle(db: AsyncSession, vehicle_id: Optional[int]) -> Optional[Vehicle]:
    if vehicle_id is None:
        return None
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found"
        )
    if vehicle.status != VehicleStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Vehicle is {vehicle.status.value}"
        )
    return vehicle


@router.post("/assignments", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    assignment_data: AssignmentCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Schedule a driver on a route for a day (admin-only).
    
    Validates:
    - Driver exists, has the DRIVER role and is not blocked
    - Route exists and is active
    - Vehicle (optional) exists and is active
    
    With recurring_days the assignment is a recurring template.
    """
    await _check_driver(db, assignment_data.driver_id)
    await _check_route(db, assignment_data.route_id)
    await _check_vehicle(db, assignment_data.vehicle_id)
    
    assignment = Assignment(
        driver_id=assignment_data.driver_id,
        route_id=assignment_data.route_id,
        vehicle_id=assignment_data.vehicle_id,
        scheduled_date=assignment_data.scheduled_date,
        scheduled_start_time=assignment_data.scheduled_start_time,
        recurring_days=assignment_data.recurring_days,
        recurrence_end_date=assignment_data.recurrence_end_date,
        current_stop_index=0,
        status=AssignmentStatus.SCHEDULED
    )
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    
    await log_assignment_event(
        db, AuditAction.ASSIGNMENT_CREATED, admin, assignment.id,
        {"driver_id": assignment.driver_id, "route_id": assignment.route_id,
         "scheduled_date": assignment.scheduled_date.isoformat()}
    )
    
    return AssignmentResponse.model_validate(assignment)


@router.post("/assignments/bulk", response_model=AssignmentBulkResponse, status_code=status.HTTP_201_CREATED)
async def bulk_create_assignments(
    bulk_data: AssignmentBulkCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create one assignment per matching day in [start_date, end_date] (admin-only).
    
    Days where the driver already runs this route at the same start time are
    skipped and reported.
    """
    await _check_driver(db, bulk_data.driver_id)
    await _check_route(db, bulk_data.route_id)
    await _check_vehicle(db, bulk_data.vehicle_id)
    
    days = matching_days(bulk_data.start_date, bulk_data.end_date + timedelta(days=1), bulk_data.days)
    
    existing = await db.execute(
        select(Assignment.scheduled_date).where(
            Assignment.driver_id == bulk_data.driver_id,
            Assignment.route_id == bulk_data.route_id,
            Assignment.scheduled_start_time == bulk_data.scheduled_start_time,
            Assignment.scheduled_date >= bulk_data.start_date,
            Assignment.scheduled_date <= bulk_data.end_date
        )
    )
    taken = set(existing.scalars().all())
    
    created = []
    skipped = []
    for day in days:
        if day in taken:
            skipped.append(day)
            continue
        assignment = Assignment(
            driver_id=bulk_data.driver_id,
            route_id=bulk_data.route_id,
            vehicle_id=bulk_data.vehicle_id,
            scheduled_date=day,
            scheduled_start_time=bulk_data.scheduled_start_time,
            recurring_days=[],
            current_stop_index=0,
            status=AssignmentStatus.SCHEDULED
        )
        db.add(assignment)
        created.append(assignment)
    
    await db.commit()
    for assignment in created:
        await db.refresh(assignment)
    
    await log_event(
        db=db,
        action=AuditAction.ASSIGNMENTS_BULK_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={
            "driver_id": bulk_data.driver_id,
            "route_id": bulk_data.route_id,
            "created": len(created),
            "skipped": len(skipped)
        }
    )
    
    return AssignmentBulkResponse(
        created=[AssignmentResponse.model_validate(a) for a in created],
        skipped_dates=skipped,
        total_created=len(created)
    )


@router.get("/assignments", response_model=AssignmentListResponse)
async def list_assignments(
    day: Optional[date] = Query(None, alias="date", description="UTC day (YYYY-MM-DD)"),
    status_filter: Optional[str] = Query(None, alias="status"),
    driver_id: Optional[int] = Query(None),
    route_id: Optional[int] = Query(None),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List assignments with optional filters (admin-only), by day then start time."""
    query = select(Assignment)
    if day is not None:
        query = query.where(Assignment.scheduled_date == day)
    if status_filter is not None:
        query = query.where(Assignment.status == coerce_status(status_filter))
    if driver_id is not None:
        query = query.where(Assignment.driver_id == driver_id)
    if route_id is not None:
        query = query.where(Assignment.route_id == route_id)
    
    result = await db.execute(
        query.order_by(Assignment.scheduled_date, Assignment.scheduled_start_time, Assignment.id)
    )
    assignments = result.scalars().all()
    
    return AssignmentListResponse(
        assignments=[AssignmentResponse.model_validate(a) for a in assignments],
        total=len(assignments)
    )


@router.get("/assignments/{assignment_id}", response_model=AssignmentDetailResponse)
async def get_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Progress view of any assignment (admin-only)."""
    assignment = await ProgressService.load_assignment(db, assignment_id)
    return await build_assignment_detail(db, assignment)


@router.patch("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    update_data: AssignmentUpdate,
    assignment_id: int = Path(..., description="Assignment ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Reassign the driver or vehicle, or move the start time (admin-only).
    
    Progress fields are not editable here; use the status and reset calls.
    """
    assignment = await ProgressService.load_assignment(db, assignment_id)
    changes = update_data.model_dump(exclude_unset=True)
    
    if changes.get("driver_id") is not None:
        await _check_driver(db, changes["driver_id"])
    if "vehicle_id" in changes:
        await _check_vehicle(db, changes["vehicle_id"])
    if "scheduled_start_time" in changes and changes["scheduled_start_time"] is None:
        del changes["scheduled_start_time"]
    if "driver_id" in changes and changes["driver_id"] is None:
        del changes["driver_id"]
    
    for field, value in changes.items():
        setattr(assignment, field, value)
    
    await db.commit()
    await db.refresh(assignment)
    
    await log_assignment_event(
        db, AuditAction.ASSIGNMENT_UPDATED, admin, assignment.id,
        {"updated_fields": sorted(changes)}
    )
    
    return AssignmentResponse.model_validate(assignment)


@router.put("/assignments/{assignment_id}/status", response_model=AssignmentDetailResponse)
async def override_status(
    status_update: StatusUpdate,
    assignment_id: int = Path(..., description="Assignment ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Force an assignment's status (admin-only).
    
    Same semantics as the driver call: "scheduled" also resets progress,
    nothing else is validated.
    """
    assignment = await ProgressService.set_status(db, assignment_id, status_update.status)
    
    await log_assignment_event(
        db, AuditAction.ASSIGNMENT_STATUS_SET, admin, assignment.id,
        {"status": assignment.status.value, "override": True}
    )
    
    return await build_assignment_detail(db, assignment)


@router.post("/assignments/{assignment_id}/reset", response_model=AssignmentDetailResponse)
async def reset_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reset an assignment's progress (admin-only)."""
    assignment = await ProgressService.reset_progress(db, assignment_id)
    
    await log_assignment_event(db, AuditAction.ASSIGNMENT_RESET, admin, assignment.id)
    
    return await build_assignment_detail(db, assignment)
