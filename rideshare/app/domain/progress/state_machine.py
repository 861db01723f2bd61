"""
Assignment progress state machine.

Pure functions only: nothing here touches the database. ProgressService
loads the assignment, asks this module what should happen, then persists
the result.

    scheduled -> in-progress -> completed
    scheduled | in-progress -> cancelled
    any -> scheduled (reset)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from rideshare.app.core.exceptions import InvalidStateError, OutOfOrderProgressError
from rideshare.app.models.assignment_enums import AssignmentStatus

TERMINAL_STATUSES = frozenset({AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED})

# Statuses a stop can be completed from; mirrored in the conditional UPDATE
ADVANCEABLE_STATUSES = (AssignmentStatus.SCHEDULED, AssignmentStatus.IN_PROGRESS)

RESET_STOP_INDEX = 0
RESET_STATUS = AssignmentStatus.SCHEDULED


@dataclass(frozen=True)
class ProgressSnapshot:
    """The progress fields of an assignment at the time it was read."""
    current_stop_index: int
    status: AssignmentStatus
    total_stops: int


@dataclass(frozen=True)
class AdvancePlan:
    """What a successful AdvanceStop writes."""
    stop_index: int
    new_stop_index: int
    new_status: AssignmentStatus
    completed_at: datetime
    starts_ride: bool
    finishes_ride: bool


def coerce_status(value) -> AssignmentStatus:
    """
    Parse a status from the wire ("in-progress") or an enum member.
    
    Raises:
        InvalidStateError: for anything outside the four statuses
    """
    if isinstance(value, AssignmentStatus):
        return value
    try:
        return AssignmentStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in AssignmentStatus)
        raise InvalidStateError(f"Unknown status '{value}'. Allowed: {allowed}")


def derive_status(current: AssignmentStatus, new_stop_index: int, total_stops: int) -> AssignmentStatus:
    """Status after the index moved to new_stop_index."""
    if new_stop_index >= total_stops:
        return AssignmentStatus.COMPLETED
    if current == AssignmentStatus.SCHEDULED:
        return AssignmentStatus.IN_PROGRESS
    return current


def plan_advance(snapshot: ProgressSnapshot, stop_index: int, now: datetime) -> AdvancePlan:
    """
    Validate completing `stop_index` against a snapshot and describe the result.
    
    Checks run in a fixed order: terminal status, route already finished,
    then sequence.
    
    Raises:
        InvalidStateError: if the assignment is completed, cancelled or past its last stop
        OutOfOrderProgressError: if stop_index is not the current stop
    """
    if snapshot.status in TERMINAL_STATUSES:
        raise InvalidStateError(
            f"Cannot complete stops on a {snapshot.status.value} assignment",
            current_status=snapshot.status.value
        )
    
    if snapshot.current_stop_index >= snapshot.total_stops:
        raise InvalidStateError(
            "All stops on this route are already completed",
            current_status=snapshot.status.value
        )
    
    if stop_index != snapshot.current_stop_index:
        raise OutOfOrderProgressError(
            expected_stop_index=snapshot.current_stop_index,
            requested_stop_index=stop_index
        )
    
    new_stop_index = stop_index + 1
    new_status = derive_status(snapshot.status, new_stop_index, snapshot.total_stops)
    
    return AdvancePlan(
        stop_index=stop_index,
        new_stop_index=new_stop_index,
        new_status=new_status,
        completed_at=now,
        starts_ride=snapshot.status == AssignmentStatus.SCHEDULED,
        finishes_ride=new_status == AssignmentStatus.COMPLETED,
    )


def status_resets_progress(new_status: AssignmentStatus) -> bool:
    """
    Whether SetStatus to new_status also zeroes progress.
    
    SetStatus is an override for drivers and admins: apart from this, it
    does not check the index against the status, so the two can disagree
    (e.g. "completed" at index 0).
    """
    return new_status == RESET_STATUS


def timestamps_for_status(
    new_status: AssignmentStatus,
    started_at: Optional[datetime],
    completed_at: Optional[datetime],
    now: datetime
):
    """(started_at, completed_at) after an explicit status change."""
    if new_status == AssignmentStatus.SCHEDULED:
        return None, None
    if new_status == AssignmentStatus.IN_PROGRESS:
        return started_at or now, None
    if new_status == AssignmentStatus.COMPLETED:
        return started_at, completed_at or now
    return started_at, completed_at
