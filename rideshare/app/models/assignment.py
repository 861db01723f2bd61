"""
Assignment database model.

Binds a driver, vehicle and route template to a day and carries the
ride's progress state.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Enum, JSON, Index
from sqlalchemy.sql import func
from rideshare.app.db.session import Base
from rideshare.app.models.assignment_enums import AssignmentStatus


class Assignment(Base):
    """
    Assignment model (one driver running one route on one day).
    
    Progress fields are only written by
    rideshare.app.domain.progress.progress_service.ProgressService.
    An assignment with recurring_days is a recurring template that can be
    rolled forward to its next day instead of being recreated.
    """
    __tablename__ = "assignments"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    route_id = Column(Integer, ForeignKey('route_templates.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True, index=True)
    
    # Schedule
    scheduled_date = Column(Date, nullable=False, index=True)  # UTC calendar day
    scheduled_start_time = Column(String(5), nullable=False)  # "HH:MM", 24h
    
    # Recurrence
    recurring_days = Column(JSON, nullable=False, default=list)
    recurrence_end_date = Column(Date, nullable=True)
    
    # Progress
    current_stop_index = Column(Integer, default=0, nullable=False)
    status = Column(Enum(AssignmentStatus), default=AssignmentStatus.SCHEDULED, nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    __table_args__ = (
        Index('ix_assignments_driver_day', 'driver_id', 'scheduled_date'),
        Index('ix_assignments_route_day', 'route_id', 'scheduled_date'),
    )
    
    @property
    def is_recurring(self) -> bool:
        return bool(self.recurring_days)
    
    def __repr__(self):
        return f"<Assignment(id={self.id}, driver_id={self.driver_id}, day={self.scheduled_date}, status='{self.status.value}')>"
