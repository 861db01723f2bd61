"""
Vehicle database model.

Vans and buses that run assignments; capacity bounds subscriptions.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from rideshare.app.db.session import Base
from rideshare.app.models.vehicle_enums import VehicleType, VehicleStatus


class Vehicle(Base):
    """
    Vehicle model.
    
    Registered by an admin and attached to assignments. Soft deactivated
    through status, never deleted while assignments reference it.
    """
    __tablename__ = "vehicles"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    vehicle_type = Column(Enum(VehicleType), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(50), nullable=False)
    license_plate = Column(String(50), unique=True, nullable=False, index=True)
    
    # Seats available to subscribers
    capacity = Column(Integer, nullable=False)
    
    is_available = Column(Boolean, default=True, nullable=False)
    status = Column(Enum(VehicleStatus), default=VehicleStatus.ACTIVE, nullable=False, index=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.license_plate}', capacity={self.capacity})>"
