"""
Assignment Pydantic schemas.

Request models for admin scheduling and driver progress calls, and the
progress view returned to drivers and riders.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from typing import Optional, List
from rideshare.app.domain.scheduling.weekdays import normalize_clock_time, normalize_weekdays
from rideshare.app.models.assignment_enums import AssignmentStatus, AttendanceStatus
from rideshare.app.schemas.route_template import RouteTemplateResponse, SequenceStopResponse


class _ScheduleFields(BaseModel):
    
    @field_validator("scheduled_start_time", check_fields=False)
    @classmethod
    def normalize_start_time(cls, value):
        if value is None:
            return value
        return normalize_clock_time(value)
    
    @field_validator("recurring_days", "days", check_fields=False)
    @classmethod
    def normalize_days(cls, value):
        if value is None:
            return value
        return normalize_weekdays(value)


class AssignmentCreate(_ScheduleFields):
    """
    Schema for scheduling one assignment.
    
    With recurring_days it becomes a recurring template that drivers roll
    forward day by day until recurrence_end_date.
    """
    driver_id: int
    route_id: int
    vehicle_id: Optional[int] = None
    scheduled_date: date = Field(..., description="UTC calendar day")
    scheduled_start_time: str = Field(..., description="HH:MM (24h) or HH:MM AM/PM")
    recurring_days: List[str] = Field(default_factory=list)
    recurrence_end_date: Optional[date] = None
    
    @model_validator(mode="after")
    def check_recurrence(self):
        if self.recurrence_end_date and self.recurrence_end_date < self.scheduled_date:
            raise ValueError("recurrence_end_date cannot be before scheduled_date")
        return self


class AssignmentBulkCreate(_ScheduleFields):
    """One assignment per matching day in [start_date, end_date] (inclusive)."""
    driver_id: int
    route_id: int
    vehicle_id: Optional[int] = None
    start_date: date
    end_date: date
    scheduled_start_time: str
    days: List[str] = Field(default_factory=list, description="Weekdays to schedule; empty means every day")
    
    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        if (self.end_date - self.start_date).days > 366:
            raise ValueError("Bulk range cannot exceed one year")
        return self


class AssignmentUpdate(_ScheduleFields):
    """Reassign driver or vehicle, or move the start time."""
    driver_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    scheduled_start_time: Optional[str] = None


class StatusUpdate(BaseModel):
    """Explicit status change; validated by the progress service."""
    status: str = Field(..., description="scheduled | in-progress | completed | cancelled")


class ProgressUpdate(BaseModel):
    """Mark the stop at stop_index as reached."""
    stop_index: int


class AttendanceMark(BaseModel):
    user_id: int
    stop_id: str = Field(..., min_length=1, max_length=50)
    status: AttendanceStatus


class AssignmentResponse(BaseModel):
    """Schema for assignment response."""
    id: int
    driver_id: int
    route_id: int
    vehicle_id: Optional[int]
    scheduled_date: date
    scheduled_start_time: str
    recurring_days: List[str]
    recurrence_end_date: Optional[date]
    current_stop_index: int
    status: AssignmentStatus
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class AssignmentListResponse(BaseModel):
    assignments: List[AssignmentResponse]
    total: int


class CompletedStopResponse(BaseModel):
    stop_index: int
    completed_at: datetime
    
    class Config:
        from_attributes = True


class AssignmentDetailResponse(AssignmentResponse):
    """
    Progress view of one assignment.
    
    Clients re-fetch it every poll_interval_seconds while the ride runs.
    """
    total_stops: int
    completed_stops: List[CompletedStopResponse]
    next_stop: Optional[SequenceStopResponse]
    poll_interval_seconds: int
    route: RouteTemplateResponse


class PassengerResponse(BaseModel):
    """A subscriber riding an assignment."""
    subscription_id: int
    user_id: int
    username: str
    full_name: Optional[str]
    phone: Optional[str]
    pickup_stop_id: str
    pickup_stop_name: str
    drop_stop_id: str
    drop_stop_name: str
    attendance: Optional[AttendanceStatus] = None


class PassengerListResponse(BaseModel):
    assignment_id: int
    stop_id: Optional[str]
    passengers: List[PassengerResponse]
    total: int


class AttendanceResponse(BaseModel):
    id: int
    assignment_id: int
    user_id: int
    stop_id: str
    status: AttendanceStatus
    recorded_at: datetime
    
    class Config:
        from_attributes = True


class AssignmentBulkResponse(BaseModel):
    created: List[AssignmentResponse]
    skipped_dates: List[date]
    total_created: int
