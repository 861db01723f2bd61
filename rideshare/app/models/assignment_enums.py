"""
Assignment-related enumerations.

Status values are the wire values shown to driver and rider clients.
"""

import enum


class AssignmentStatus(str, enum.Enum):
    """Assignment (per-day ride) lifecycle status."""
    SCHEDULED = "scheduled"  # Initial state, and the state after a reset
    IN_PROGRESS = "in-progress"  # At least one stop completed, or started by hand
    COMPLETED = "completed"  # Every stop of the route visited
    CANCELLED = "cancelled"  # Terminal until reset


class AttendanceStatus(str, enum.Enum):
    """Rider attendance at a pickup stop."""
    PRESENT = "present"
    ABSENT = "absent"
