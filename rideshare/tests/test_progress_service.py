"""
Progress engine tests against the database.

Covers stop-by-stop advancement, rejection paths, reset and status
overrides, the conditional-update guard and recurring roll-forward.
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import event

from rideshare.app.core.exceptions import InvalidStateError, OutOfOrderProgressError, ResourceNotFoundError
from rideshare.app.domain.progress.progress_service import ProgressService
from rideshare.app.domain.progress.state_machine import ProgressSnapshot, plan_advance
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.assignment_enums import AssignmentStatus
from rideshare.app.models.stop_completion import AssignmentStopCompletion


async def completed_indexes(db, assignment_id):
    return [c.stop_index for c in await ProgressService.get_completed_stops(db, assignment_id)]


async def add_assignment(db, driver, route, day, start_time="08:00", **extra):
    assignment = Assignment(
        driver_id=driver.id,
        route_id=route.id,
        scheduled_date=day,
        scheduled_start_time=start_time,
        recurring_days=extra.pop("recurring_days", []),
        status=AssignmentStatus.SCHEDULED,
        **extra
    )
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    return assignment


@pytest.mark.asyncio
async def test_full_ride_advances_to_completion(db_session, assignment):
    """Four stops: start, two intermediate, end."""
    a = await ProgressService.advance_stop(db_session, assignment.id, 0)
    assert a.status == AssignmentStatus.IN_PROGRESS
    assert a.current_stop_index == 1
    assert a.started_at is not None
    
    a = await ProgressService.advance_stop(db_session, assignment.id, 1)
    assert a.current_stop_index == 2
    a = await ProgressService.advance_stop(db_session, assignment.id, 2)
    assert a.current_stop_index == 3
    assert a.status == AssignmentStatus.IN_PROGRESS
    
    a = await ProgressService.advance_stop(db_session, assignment.id, 3)
    assert a.current_stop_index == 4
    assert a.status == AssignmentStatus.COMPLETED
    assert a.completed_at is not None
    
    assert await completed_indexes(db_session, assignment.id) == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_skipping_a_stop_is_rejected_without_changes(db_session, assignment):
    with pytest.raises(OutOfOrderProgressError):
        await ProgressService.advance_stop(db_session, assignment.id, 2)
    
    a = await ProgressService.load_assignment(db_session, assignment.id)
    assert a.current_stop_index == 0
    assert a.status == AssignmentStatus.SCHEDULED
    assert await completed_indexes(db_session, assignment.id) == []


@pytest.mark.asyncio
async def test_completed_assignment_rejects_advance(db_session, assignment):
    await ProgressService.set_status(db_session, assignment.id, "completed")
    
    with pytest.raises(InvalidStateError):
        await ProgressService.advance_stop(db_session, assignment.id, 0)


@pytest.mark.asyncio
async def test_cancelled_assignment_rejects_advance(db_session, assignment):
    await ProgressService.set_status(db_session, assignment.id, "cancelled")
    
    with pytest.raises(InvalidStateError):
        await ProgressService.advance_stop(db_session, assignment.id, 0)


@pytest.mark.asyncio
async def test_reset_mid_ride(db_session, assignment):
    for index in range(3):
        await ProgressService.advance_stop(db_session, assignment.id, index)
    
    a = await ProgressService.reset_progress(db_session, assignment.id)
    assert a.current_stop_index == 0
    assert a.status == AssignmentStatus.SCHEDULED
    assert a.started_at is None and a.completed_at is None
    assert await completed_indexes(db_session, assignment.id) == []
    
    # Idempotent
    a = await ProgressService.reset_progress(db_session, assignment.id)
    assert a.current_stop_index == 0
    
    # Ride can run again from the start
    a = await ProgressService.advance_stop(db_session, assignment.id, 0)
    assert a.current_stop_index == 1


@pytest.mark.asyncio
async def test_set_status_scheduled_restarts_progress(db_session, assignment):
    await ProgressService.advance_stop(db_session, assignment.id, 0)
    await ProgressService.advance_stop(db_session, assignment.id, 1)
    
    a = await ProgressService.set_status(db_session, assignment.id, "scheduled")
    assert a.current_stop_index == 0
    assert a.status == AssignmentStatus.SCHEDULED
    assert await completed_indexes(db_session, assignment.id) == []


@pytest.mark.asyncio
async def test_set_status_is_an_unchecked_override(db_session, assignment):
    """Status may disagree with the index after an override."""
    a = await ProgressService.set_status(db_session, assignment.id, "completed")
    assert a.status == AssignmentStatus.COMPLETED
    assert a.current_stop_index == 0
    
    a = await ProgressService.set_status(db_session, assignment.id, "in-progress")
    assert a.status == AssignmentStatus.IN_PROGRESS
    assert a.started_at is not None


@pytest.mark.asyncio
async def test_set_status_past_last_stop_then_advance(db_session, assignment):
    for index in range(4):
        await ProgressService.advance_stop(db_session, assignment.id, index)
    await ProgressService.set_status(db_session, assignment.id, "in-progress")
    
    with pytest.raises(InvalidStateError):
        await ProgressService.advance_stop(db_session, assignment.id, 4)


@pytest.mark.asyncio
async def test_set_status_unknown_value(db_session, assignment):
    with pytest.raises(InvalidStateError):
        await ProgressService.set_status(db_session, assignment.id, "paused")
    
    a = await ProgressService.load_assignment(db_session, assignment.id)
    assert a.status == AssignmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_stale_writer_loses(db_session, assignment):
    """Two writers holding the same snapshot: only the first write lands."""
    await ProgressService.advance_stop(db_session, assignment.id, 0)
    
    snapshot = ProgressSnapshot(
        current_stop_index=1, status=AssignmentStatus.IN_PROGRESS, total_stops=4
    )
    plan = plan_advance(snapshot, 1, datetime.now(timezone.utc))
    
    winner = await ProgressService.apply_advance(db_session, assignment.id, plan)
    assert winner.current_stop_index == 2
    
    with pytest.raises(OutOfOrderProgressError):
        await ProgressService.apply_advance(db_session, assignment.id, plan)
    
    a = await ProgressService.load_assignment(db_session, assignment.id)
    assert a.current_stop_index == 2
    assert await completed_indexes(db_session, assignment.id) == [0, 1]


@pytest.mark.asyncio
async def test_ownership_mismatch_is_not_found(db_session, assignment, other_driver):
    with pytest.raises(ResourceNotFoundError):
        await ProgressService.advance_stop(db_session, assignment.id, 0, driver_id=other_driver.id)
    
    a = await ProgressService.load_assignment(db_session, assignment.id)
    assert a.current_stop_index == 0


@pytest.mark.asyncio
async def test_unknown_assignment(db_session):
    with pytest.raises(ResourceNotFoundError):
        await ProgressService.reset_progress(db_session, 12345)


@pytest.mark.asyncio
async def test_next_stop_follows_progress(db_session, assignment, route):
    assert ProgressService.next_stop(assignment, route).name == "Depot"
    
    a = await ProgressService.advance_stop(db_session, assignment.id, 0)
    assert ProgressService.next_stop(a, route).name == "School"
    
    for index in range(1, 4):
        a = await ProgressService.advance_stop(db_session, assignment.id, index)
    assert ProgressService.next_stop(a, route) is None


@pytest.mark.asyncio
async def test_select_for_driver_and_date(db_session, driver_user, other_driver, route):
    day = date(2024, 3, 4)
    late = await add_assignment(db_session, driver_user, route, day, "17:30")
    early = await add_assignment(db_session, driver_user, route, day, "07:15")
    await add_assignment(db_session, driver_user, route, date(2024, 3, 5), "06:00")
    await add_assignment(db_session, other_driver, route, day, "06:00")
    
    found = await ProgressService.select_for_driver_and_date(db_session, driver_user.id, day)
    assert [a.id for a in found] == [early.id, late.id]
    
    await ProgressService.advance_stop(db_session, late.id, 0)
    running = await ProgressService.select_for_driver_and_date(
        db_session, driver_user.id, day, "in-progress"
    )
    assert [a.id for a in running] == [late.id]


@pytest.mark.asyncio
async def test_roll_forward_recurring(db_session, driver_user, route):
    # 2024-01-05 is a Friday
    recurring = await add_assignment(
        db_session, driver_user, route, date(2024, 1, 5),
        recurring_days=["monday", "wednesday", "friday"]
    )
    await ProgressService.advance_stop(db_session, recurring.id, 0)
    
    a = await ProgressService.roll_forward(db_session, recurring.id)
    assert a.scheduled_date == date(2024, 1, 8)
    assert a.current_stop_index == 0
    assert a.status == AssignmentStatus.SCHEDULED
    assert await completed_indexes(db_session, recurring.id) == []


@pytest.mark.asyncio
async def test_roll_forward_stops_at_recurrence_end(db_session, driver_user, route):
    recurring = await add_assignment(
        db_session, driver_user, route, date(2024, 1, 5),
        recurring_days=["monday"], recurrence_end_date=date(2024, 1, 7)
    )
    
    with pytest.raises(InvalidStateError):
        await ProgressService.roll_forward(db_session, recurring.id)
    
    a = await ProgressService.load_assignment(db_session, recurring.id)
    assert a.scheduled_date == date(2024, 1, 5)


@pytest.mark.asyncio
async def test_roll_forward_one_off_rejected(db_session, assignment):
    with pytest.raises(InvalidStateError):
        await ProgressService.roll_forward(db_session, assignment.id)


async def _clear_by(operation, db, assignment_id):
    if operation == "reset":
        return await ProgressService.reset_progress(db, assignment_id)
    if operation == "set_scheduled":
        return await ProgressService.set_status(db, assignment_id, "scheduled")
    return await ProgressService.roll_forward(db, assignment_id)


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["reset", "set_scheduled", "roll_forward"])
async def test_clearing_progress_updates_row_before_log(db_session, driver_user, route, operation):
    """The assignment row is written (and locked) before its completions are deleted."""
    recurring = await add_assignment(
        db_session, driver_user, route, date(2024, 1, 1), recurring_days=["monday", "wednesday"]
    )
    await ProgressService.advance_stop(db_session, recurring.id, 0)
    
    statements = []
    
    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(" ".join(statement.split()).upper())
    
    sync_engine = db_session.bind.sync_engine
    event.listen(sync_engine, "before_cursor_execute", record)
    try:
        a = await _clear_by(operation, db_session, recurring.id)
    finally:
        event.remove(sync_engine, "before_cursor_execute", record)
    
    writes = [s for s in statements if s.startswith(("UPDATE", "DELETE", "INSERT"))]
    assert writes[0].startswith("UPDATE ASSIGNMENTS")
    assert writes[1].startswith("DELETE FROM ASSIGNMENT_STOP_COMPLETIONS")
    assert len(writes) == 2
    
    assert a.current_stop_index == 0
    assert a.status == AssignmentStatus.SCHEDULED
    assert a.started_at is None
    assert await completed_indexes(db_session, recurring.id) == []


@pytest.mark.asyncio
async def test_reset_recovers_from_stray_completion_at_first_stop(db_session, assignment):
    """A completion row for stop 0 while the index is 0 blocks every advance until reset."""
    db_session.add(AssignmentStopCompletion(
        assignment_id=assignment.id,
        stop_index=0,
        completed_at=datetime.now(timezone.utc)
    ))
    await db_session.commit()
    
    with pytest.raises(OutOfOrderProgressError):
        await ProgressService.advance_stop(db_session, assignment.id, 0)
    
    await ProgressService.reset_progress(db_session, assignment.id)
    
    a = await ProgressService.advance_stop(db_session, assignment.id, 0)
    assert a.current_stop_index == 1
    assert await completed_indexes(db_session, assignment.id) == [0]
