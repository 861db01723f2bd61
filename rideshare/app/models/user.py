"""
User database model.

Admins, drivers and riders share one table, distinguished by role.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from rideshare.app.db.session import Base
from rideshare.app.models.enums import UserRole


class User(Base):
    """
    User model for authentication and user management.
    
    Drivers additionally carry the vehicle they were last assigned.
    """
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_superuser = Column(Boolean, default=False, nullable=False)
    
    role = Column(Enum(UserRole), default=UserRole.RIDER, nullable=False, index=True)
    
    # Drivers only
    assigned_vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role.value}')>"
