"""
Route Template database model.

Admin-defined preset routes: a named start point, ordered intermediate
stops and a named end point.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, JSON, Text
from sqlalchemy.sql import func
from rideshare.app.db.session import Base


class RouteTemplate(Base):
    """
    Route Template model.
    
    Stops are stored as a JSON list of {name, lat, lng, order}; the explicit
    order, not list position, defines the visiting sequence. Rows written by
    older releases keep their stops under `stoppages` instead; read them
    through rideshare.app.domain.routes.stop_sequence.resolve_stops.
    """
    __tablename__ = "route_templates"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    
    # Start point
    start_name = Column(String(200), nullable=False)
    start_lat = Column(Float, nullable=False)
    start_lng = Column(Float, nullable=False)
    
    # End point
    end_name = Column(String(200), nullable=False)
    end_lat = Column(Float, nullable=False)
    end_lng = Column(Float, nullable=False)
    
    # Intermediate stops
    stops = Column(JSON, nullable=True)
    stoppages = Column(JSON, nullable=True)  # legacy field name
    
    estimated_time = Column(String(50), nullable=True)  # e.g. "45 min"
    fare = Column(String(50), nullable=True)
    
    active = Column(Boolean, default=True, nullable=False, index=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<RouteTemplate(id={self.id}, name='{self.name}', active={self.active})>"
