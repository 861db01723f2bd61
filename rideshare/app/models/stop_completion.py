"""
Completed-stops log for assignments.

Append-only; a reset deletes the rows of its assignment.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from rideshare.app.db.session import Base


class AssignmentStopCompletion(Base):
    """
    One reached stop of an assignment.
    
    The unique constraint rejects a second completion of the same stop,
    which backs the conditional update in the progress service.
    """
    __tablename__ = "assignment_stop_completions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    assignment_id = Column(Integer, ForeignKey('assignments.id'), nullable=False, index=True)
    stop_index = Column(Integer, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False)
    
    __table_args__ = (
        UniqueConstraint('assignment_id', 'stop_index', name='uq_stop_completion_assignment_stop'),
    )
    
    def __repr__(self):
        return f"<AssignmentStopCompletion(assignment_id={self.assignment_id}, stop_index={self.stop_index})>"
