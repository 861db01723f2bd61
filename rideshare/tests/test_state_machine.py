"""
Unit tests for the pure progress state machine.
"""

from datetime import datetime, timezone

import pytest

from rideshare.app.core.exceptions import InvalidStateError, OutOfOrderProgressError
from rideshare.app.domain.progress.state_machine import (
    ProgressSnapshot, coerce_status, derive_status, plan_advance,
    status_resets_progress, timestamps_for_status
)
from rideshare.app.models.assignment_enums import AssignmentStatus

NOW = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def snapshot(index=0, status=AssignmentStatus.SCHEDULED, total=4):
    return ProgressSnapshot(current_stop_index=index, status=status, total_stops=total)


def test_first_advance_starts_ride():
    plan = plan_advance(snapshot(), 0, NOW)
    assert plan.new_stop_index == 1
    assert plan.new_status == AssignmentStatus.IN_PROGRESS
    assert plan.starts_ride and not plan.finishes_ride


def test_last_advance_completes_ride():
    plan = plan_advance(snapshot(index=3, status=AssignmentStatus.IN_PROGRESS), 3, NOW)
    assert plan.new_stop_index == 4
    assert plan.new_status == AssignmentStatus.COMPLETED
    assert plan.finishes_ride


def test_single_leg_route_completes_from_scheduled():
    plan = plan_advance(snapshot(index=1, total=2), 1, NOW)
    assert plan.new_status == AssignmentStatus.COMPLETED


@pytest.mark.parametrize("requested", [2, 0, -1, 99])
def test_out_of_order_rejected(requested):
    with pytest.raises(OutOfOrderProgressError) as exc:
        plan_advance(snapshot(index=1, status=AssignmentStatus.IN_PROGRESS), requested, NOW)
    assert exc.value.details["expected_stop_index"] == 1
    assert exc.value.details["retryable"] is True
    assert exc.value.status_code == 409


@pytest.mark.parametrize("terminal", [AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED])
def test_terminal_status_checked_before_sequence(terminal):
    # A wrong index on a terminal assignment is still an invalid state
    with pytest.raises(InvalidStateError):
        plan_advance(snapshot(index=1, status=terminal), 3, NOW)


def test_index_past_end_is_invalid_state():
    # Only reachable after a status override back to in-progress
    with pytest.raises(InvalidStateError):
        plan_advance(snapshot(index=4, status=AssignmentStatus.IN_PROGRESS), 4, NOW)


def test_derive_status():
    assert derive_status(AssignmentStatus.SCHEDULED, 1, 4) == AssignmentStatus.IN_PROGRESS
    assert derive_status(AssignmentStatus.IN_PROGRESS, 2, 4) == AssignmentStatus.IN_PROGRESS
    assert derive_status(AssignmentStatus.IN_PROGRESS, 4, 4) == AssignmentStatus.COMPLETED


def test_coerce_status():
    assert coerce_status("in-progress") == AssignmentStatus.IN_PROGRESS
    assert coerce_status(" Completed ") == AssignmentStatus.COMPLETED
    assert coerce_status(AssignmentStatus.CANCELLED) == AssignmentStatus.CANCELLED
    with pytest.raises(InvalidStateError):
        coerce_status("paused")


def test_only_scheduled_resets_progress():
    assert status_resets_progress(AssignmentStatus.SCHEDULED)
    assert not status_resets_progress(AssignmentStatus.CANCELLED)


def test_timestamps_for_status():
    started = datetime(2024, 1, 1, 7, 0, tzinfo=timezone.utc)
    assert timestamps_for_status(AssignmentStatus.IN_PROGRESS, None, None, NOW) == (NOW, None)
    assert timestamps_for_status(AssignmentStatus.IN_PROGRESS, started, None, NOW) == (started, None)
    assert timestamps_for_status(AssignmentStatus.COMPLETED, started, None, NOW) == (started, NOW)
    assert timestamps_for_status(AssignmentStatus.SCHEDULED, started, NOW, NOW) == (None, None)
