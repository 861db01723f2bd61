"""
Progress Service.

Persists assignment progress. Every write to current_stop_index, status,
started_at, completed_at or the completed-stops log goes through here.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.core.exceptions import (
    InvalidStateError, OutOfOrderProgressError, ResourceNotFoundError
)
from rideshare.app.domain.progress.state_machine import (
    ADVANCEABLE_STATUSES, RESET_STATUS, RESET_STOP_INDEX,
    AdvancePlan, ProgressSnapshot, coerce_status, plan_advance,
    status_resets_progress, timestamps_for_status
)
from rideshare.app.domain.routes.stop_sequence import (
    SequenceStop, full_stop_sequence, stop_at, total_stop_count
)
from rideshare.app.domain.scheduling.weekdays import next_matching_day
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.stop_completion import AssignmentStopCompletion

logger = logging.getLogger("rideshare.progress")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressService:
    
    @staticmethod
    async def load_assignment(
        db: AsyncSession,
        assignment_id: int,
        driver_id: Optional[int] = None
    ) -> Assignment:
        """
        Fetch an assignment, optionally scoped to its driver.
        
        Raises:
            ResourceNotFoundError: if missing, or owned by another driver
        """
        result = await db.execute(select(Assignment).where(Assignment.id == assignment_id))
        assignment = result.scalar_one_or_none()
        
        if not assignment or (driver_id is not None and assignment.driver_id != driver_id):
            raise ResourceNotFoundError("Assignment", assignment_id)
        
        return assignment
    
    @staticmethod
    async def load_route(db: AsyncSession, route_id: int) -> RouteTemplate:
        result = await db.execute(select(RouteTemplate).where(RouteTemplate.id == route_id))
        route = result.scalar_one_or_none()
        if not route:
            raise ResourceNotFoundError("Route", route_id)
        return route
    
    @staticmethod
    async def get_completed_stops(db: AsyncSession, assignment_id: int) -> List[AssignmentStopCompletion]:
        """Completed-stops log in stop order."""
        result = await db.execute(
            select(AssignmentStopCompletion)
            .where(AssignmentStopCompletion.assignment_id == assignment_id)
            .order_by(AssignmentStopCompletion.stop_index)
        )
        return list(result.scalars().all())
    
    @staticmethod
    async def advance_stop(
        db: AsyncSession,
        assignment_id: int,
        stop_index: int,
        driver_id: Optional[int] = None
    ) -> Assignment:
        """
        Mark stop_index as reached and move to the next stop.
        
        Raises:
            ResourceNotFoundError: unknown assignment or not the caller's
            InvalidStateError: completed, cancelled or already past the last stop
            OutOfOrderProgressError: stop_index is not the current stop, or a
                concurrent writer advanced first
        """
        assignment = await ProgressService.load_assignment(db, assignment_id, driver_id)
        route = await ProgressService.load_route(db, assignment.route_id)
        
        snapshot = ProgressSnapshot(
            current_stop_index=assignment.current_stop_index,
            status=assignment.status,
            total_stops=total_stop_count(route),
        )
        plan = plan_advance(snapshot, stop_index, _utcnow())
        
        return await ProgressService.apply_advance(db, assignment.id, plan)
    
    @staticmethod
    async def apply_advance(db: AsyncSession, assignment_id: int, plan: AdvancePlan) -> Assignment:
        """
        Write a planned advance as one conditional update plus the log row.
        
        The UPDATE only matches while the row still sits at plan.stop_index in
        an advanceable status, so of two writers holding the same snapshot
        exactly one succeeds.
        """
        values = {
            "current_stop_index": plan.new_stop_index,
            "status": plan.new_status,
            "started_at": func.coalesce(Assignment.started_at, plan.completed_at),
        }
        if plan.finishes_ride:
            values["completed_at"] = plan.completed_at
        
        stmt = (
            update(Assignment)
            .where(
                Assignment.id == assignment_id,
                Assignment.current_stop_index == plan.stop_index,
                Assignment.status.in_(ADVANCEABLE_STATUSES)
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        
        if result.rowcount != 1:
            await db.rollback()
            logger.info(
                "Lost advance race on assignment %s at stop %s", assignment_id, plan.stop_index
            )
            raise OutOfOrderProgressError(
                requested_stop_index=plan.stop_index,
                message="Assignment progress changed; re-fetch and retry with the current stop"
            )
        
        db.add(AssignmentStopCompletion(
            assignment_id=assignment_id,
            stop_index=plan.stop_index,
            completed_at=plan.completed_at
        ))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise OutOfOrderProgressError(
                requested_stop_index=plan.stop_index,
                message=f"Stop {plan.stop_index} was already completed"
            )
        
        await db.commit()
        
        assignment = await db.get(Assignment, assignment_id)
        await db.refresh(assignment)
        
        logger.info(
            "Assignment %s completed stop %s (now %s, status=%s)",
            assignment_id, plan.stop_index, plan.new_stop_index, plan.new_status.value
        )
        return assignment
    
    @staticmethod
    async def set_status(
        db: AsyncSession,
        assignment_id: int,
        new_status,
        driver_id: Optional[int] = None
    ) -> Assignment:
        """
        Explicit status change (start, cancel, complete, back to scheduled).
        
        "scheduled" also resets progress. Nothing else is checked.
        
        Raises:
            ResourceNotFoundError: unknown assignment or not the caller's
            InvalidStateError: unknown status value
        """
        assignment = await ProgressService.load_assignment(db, assignment_id, driver_id)
        status_value = coerce_status(new_status)
        previous = assignment.status
        now = _utcnow()
        
        if status_resets_progress(status_value):
            await ProgressService._clear_progress(db, assignment.id)
        else:
            assignment.started_at, assignment.completed_at = timestamps_for_status(
                status_value, assignment.started_at, assignment.completed_at, now
            )
            assignment.status = status_value
        
        await db.commit()
        await db.refresh(assignment)
        
        logger.info(
            "Assignment %s status set %s -> %s", assignment.id, previous.value, status_value.value
        )
        return assignment
    
    @staticmethod
    async def reset_progress(
        db: AsyncSession,
        assignment_id: int,
        driver_id: Optional[int] = None
    ) -> Assignment:
        """Back to stop 0, scheduled, empty log. Idempotent."""
        assignment = await ProgressService.load_assignment(db, assignment_id, driver_id)
        await ProgressService._clear_progress(db, assignment.id)
        
        await db.commit()
        await db.refresh(assignment)
        
        logger.info("Assignment %s progress reset", assignment.id)
        return assignment
    
    @staticmethod
    async def roll_forward(
        db: AsyncSession,
        assignment_id: int,
        driver_id: Optional[int] = None
    ) -> Assignment:
        """
        Move a recurring assignment to its next recurring day with fresh progress.
        
        Raises:
            InvalidStateError: one-off assignment, or no day left before
                recurrence_end_date
        """
        assignment = await ProgressService.load_assignment(db, assignment_id, driver_id)
        
        if not assignment.is_recurring:
            raise InvalidStateError(
                "Only recurring assignments can be rolled forward",
                current_status=assignment.status.value
            )
        
        next_day = next_matching_day(
            assignment.scheduled_date,
            assignment.recurring_days,
            until=assignment.recurrence_end_date
        )
        if next_day is None:
            raise InvalidStateError(
                "Recurring assignment has no remaining scheduled day",
                current_status=assignment.status.value
            )
        
        previous_day = assignment.scheduled_date
        await ProgressService._clear_progress(db, assignment.id, scheduled_date=next_day)
        
        await db.commit()
        await db.refresh(assignment)
        
        logger.info("Assignment %s rolled forward %s -> %s", assignment.id, previous_day, next_day)
        return assignment
    
    @staticmethod
    async def select_for_driver_and_date(
        db: AsyncSession,
        driver_id: int,
        day: date,
        status_filter=None
    ) -> List[Assignment]:
        """A driver's assignments on one UTC day, earliest start first."""
        query = select(Assignment).where(
            Assignment.driver_id == driver_id,
            Assignment.scheduled_date == day
        )
        if status_filter is not None:
            query = query.where(Assignment.status == coerce_status(status_filter))
        query = query.order_by(Assignment.scheduled_start_time, Assignment.id)
        
        result = await db.execute(query)
        return list(result.scalars().all())
    
    @staticmethod
    def next_stop(assignment: Assignment, route: RouteTemplate) -> Optional[SequenceStop]:
        """The stop the driver is heading to, or None once every stop is done."""
        return stop_at(full_stop_sequence(route), assignment.current_stop_index)
    
    @staticmethod
    async def _clear_progress(db: AsyncSession, assignment_id: int, **extra_values) -> None:
        """
        Zero an assignment's progress inside the caller's transaction.
        
        The row UPDATE runs before the log DELETE so it takes the row lock
        first: an advance racing with the reset either commits before it (and
        its log row is then deleted) or waits and fails its conditional
        UPDATE. Callers commit and refresh.
        """
        await db.execute(
            update(Assignment)
            .where(Assignment.id == assignment_id)
            .values(
                current_stop_index=RESET_STOP_INDEX,
                status=RESET_STATUS,
                started_at=None,
                completed_at=None,
                **extra_values
            )
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(AssignmentStopCompletion)
            .where(AssignmentStopCompletion.assignment_id == assignment_id)
        )
