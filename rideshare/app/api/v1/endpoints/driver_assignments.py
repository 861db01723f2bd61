"""
Driver Assignment API Endpoints.

Drivers see their day's assignments and report progress stop by stop.
Assignments of other drivers answer 404, never 403.
"""

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path, Body
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from rideshare.app.db.session import get_db
from rideshare.app.models.attendance import AttendanceRecord
from rideshare.app.models.enums import UserRole
from rideshare.app.models.subscription import Subscription, SubscriptionRide
from rideshare.app.models.subscription_enums import SubscriptionRideStatus
from rideshare.app.models.user import User
from rideshare.app.schemas.assignment import (
    AssignmentListResponse, AssignmentResponse, AssignmentDetailResponse,
    StatusUpdate, ProgressUpdate, AttendanceMark, AttendanceResponse,
    PassengerResponse, PassengerListResponse
)
from rideshare.app.core.guards import require_role
from rideshare.app.domain.progress.progress_service import ProgressService
from rideshare.app.domain.routes.stop_sequence import find_stop, full_stop_sequence
from rideshare.app.services.assignment_views import build_assignment_detail
from rideshare.app.services.audit import log_assignment_event, AuditAction

router = APIRouter(prefix="/driver", tags=["Driver - Assignments"])

require_driver = require_role([UserRole.DRIVER])


def _resolve_stop_id(route, identifier: str) -> str:
    try:
        return find_stop(full_stop_sequence(route), identifier).id
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/assignments", response_model=AssignmentListResponse)
async def list_my_assignments(
    day: Optional[date] = Query(None, alias="date", description="UTC day (YYYY-MM-DD), defaults to today"),
    status_filter: Optional[str] = Query(None, alias="status", description="Only this status"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    The driver's assignments for one day, earliest start first.
    """
    day = day or datetime.now(timezone.utc).date()
    assignments = await ProgressService.select_for_driver_and_date(
        db, current_user["user_id"], day, status_filter
    )
    return AssignmentListResponse(
        assignments=[AssignmentResponse.model_validate(a) for a in assignments],
        total=len(assignments)
    )


@router.get("/assignments/{assignment_id}", response_model=AssignmentDetailResponse)
async def get_my_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Progress view of one of the driver's assignments.
    
    Includes the route's full stop sequence, completed stops and the next
    stop. Poll it every poll_interval_seconds while driving.
    """
    assignment = await ProgressService.load_assignment(db, assignment_id, current_user["user_id"])
    return await build_assignment_detail(db, assignment)


@router.put("/assignments/{assignment_id}/status", response_model=AssignmentDetailResponse)
async def set_assignment_status(
    status_update: StatusUpdate,
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Set the status explicitly (start, cancel, finish early).
    
    "scheduled" also resets progress. Unknown values answer 400.
    """
    assignment = await ProgressService.set_status(
        db, assignment_id, status_update.status, current_user["user_id"]
    )
    
    await log_assignment_event(
        db, AuditAction.ASSIGNMENT_STATUS_SET, current_user, assignment.id,
        {"status": assignment.status.value}
    )
    
    return await build_assignment_detail(db, assignment)


@router.put("/assignments/{assignment_id}/progress", response_model=AssignmentDetailResponse)
async def complete_stop(
    progress: ProgressUpdate,
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Mark the current stop as reached.
    
    Returns:
        409 ERR_PROGRESS_001 when stop_index is not the current stop (or
        another request advanced first); re-fetch and retry.
        400 ERR_STATE_001 when the assignment is completed or cancelled.
    """
    assignment = await ProgressService.advance_stop(
        db, assignment_id, progress.stop_index, current_user["user_id"]
    )
    
    await log_assignment_event(
        db, AuditAction.STOP_COMPLETED, current_user, assignment.id,
        {
            "stop_index": progress.stop_index,
            "current_stop_index": assignment.current_stop_index,
            "status": assignment.status.value
        }
    )
    
    return await build_assignment_detail(db, assignment)


@router.post("/assignments/{assignment_id}/reset", response_model=AssignmentDetailResponse)
async def reset_my_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """Start the ride over: stop 0, scheduled, no completed stops."""
    assignment = await ProgressService.reset_progress(db, assignment_id, current_user["user_id"])
    
    await log_assignment_event(db, AuditAction.ASSIGNMENT_RESET, current_user, assignment.id)
    
    return await build_assignment_detail(db, assignment)


@router.post("/assignments/{assignment_id}/roll-forward", response_model=AssignmentDetailResponse)
async def roll_forward_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a recurring assignment to its next recurring day with fresh progress.
    
    One-off assignments and finished recurrences answer 400.
    """
    previous_day = (
        await ProgressService.load_assignment(db, assignment_id, current_user["user_id"])
    ).scheduled_date
    assignment = await ProgressService.roll_forward(db, assignment_id, current_user["user_id"])
    
    await log_assignment_event(
        db, AuditAction.ASSIGNMENT_ROLLED_FORWARD, current_user, assignment.id,
        {"from": previous_day.isoformat(), "to": assignment.scheduled_date.isoformat()}
    )
    
    return await build_assignment_detail(db, assignment)


@router.get("/assignments/{assignment_id}/passengers", response_model=PassengerListResponse)
async def list_passengers(
    assignment_id: int = Path(..., description="Assignment ID"),
    stop_id: Optional[str] = Query(None, description="Only riders boarding at this stop (id or name)"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Subscribers riding this assignment, with their attendance.
    """
    assignment = await ProgressService.load_assignment(db, assignment_id, current_user["user_id"])
    
    resolved_stop = None
    if stop_id is not None:
        route = await ProgressService.load_route(db, assignment.route_id)
        resolved_stop = _resolve_stop_id(route, stop_id)
    
    query = (
        select(SubscriptionRide, Subscription, User)
        .join(Subscription, Subscription.id == SubscriptionRide.subscription_id)
        .join(User, User.id == Subscription.user_id)
        .where(
            SubscriptionRide.assignment_id == assignment.id,
            SubscriptionRide.status != SubscriptionRideStatus.CANCELLED
        )
        .order_by(Subscription.pickup_stop_id, User.username)
    )
    if resolved_stop is not None:
        query = query.where(Subscription.pickup_stop_id == resolved_stop)
    rows = (await db.execute(query)).all()
    
    marks = await db.execute(
        select(AttendanceRecord).where(AttendanceRecord.assignment_id == assignment.id)
    )
    attendance = {(m.user_id, m.stop_id): m.status for m in marks.scalars().all()}
    
    passengers = [
        PassengerResponse(
            subscription_id=subscription.id,
            user_id=user.id,
            username=user.username,
            full_name=user.full_name,
            phone=user.phone,
            pickup_stop_id=subscription.pickup_stop_id,
            pickup_stop_name=subscription.pickup_stop_name,
            drop_stop_id=subscription.drop_stop_id,
            drop_stop_name=subscription.drop_stop_name,
            attendance=attendance.get((user.id, subscription.pickup_stop_id))
        )
        for _, subscription, user in rows
    ]
    
    return PassengerListResponse(
        assignment_id=assignment.id,
        stop_id=resolved_stop,
        passengers=passengers,
        total=len(passengers)
    )


@router.put("/assignments/{assignment_id}/attendance", response_model=AttendanceResponse)
async def mark_attendance(
    mark: AttendanceMark = Body(...),
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Mark a rider present or absent at a stop. Marking again overwrites.
    """
    assignment = await ProgressService.load_assignment(db, assignment_id, current_user["user_id"])
    route = await ProgressService.load_route(db, assignment.route_id)
    stop_id = _resolve_stop_id(route, mark.stop_id)
    
    riding = await db.execute(
        select(SubscriptionRide.id)
        .join(Subscription, Subscription.id == SubscriptionRide.subscription_id)
        .where(
            SubscriptionRide.assignment_id == assignment.id,
            Subscription.user_id == mark.user_id,
            SubscriptionRide.status != SubscriptionRideStatus.CANCELLED
        )
    )
    if riding.first() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Passenger is not riding this assignment"
        )
    
    existing = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.assignment_id == assignment.id,
            AttendanceRecord.user_id == mark.user_id,
            AttendanceRecord.stop_id == stop_id
        )
    )
    record = existing.scalar_one_or_none()
    if record is None:
        record = AttendanceRecord(
            assignment_id=assignment.id,
            user_id=mark.user_id,
            stop_id=stop_id,
            status=mark.status
        )
        db.add(record)
    else:
        record.status = mark.status
        record.recorded_at = datetime.now(timezone.utc)
    
    await db.commit()
    await db.refresh(record)
    
    await log_assignment_event(
        db, AuditAction.ATTENDANCE_MARKED, current_user, assignment.id,
        {"user_id": mark.user_id, "stop_id": stop_id, "status": mark.status.value}
    )
    
    return AttendanceResponse.model_validate(record)
