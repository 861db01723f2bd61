"""
Rider attendance recorded by drivers at pickup stops.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from rideshare.app.db.session import Base
from rideshare.app.models.assignment_enums import AttendanceStatus


class AttendanceRecord(Base):
    """Present/absent mark for one rider at one stop of one assignment."""
    __tablename__ = "attendance_records"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    assignment_id = Column(Integer, ForeignKey('assignments.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    stop_id = Column(String(50), nullable=False)
    status = Column(Enum(AttendanceStatus), nullable=False)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    __table_args__ = (
        UniqueConstraint('assignment_id', 'user_id', 'stop_id', name='uq_attendance_assignment_user_stop'),
    )
