"""
Analytics and profile schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional


class AdminDashboardStats(BaseModel):
    """System-wide counts for the admin dashboard."""
    total_riders: int
    total_drivers: int
    total_vehicles: int
    active_subscriptions: int
    today_rides: int
    total_revenue: float


class RiderStats(BaseModel):
    """A rider's own booking totals."""
    active_subscriptions: int
    total_rides: int
    total_refunds: float


class ProfileUpdate(BaseModel):
    """
    Editable profile fields.
    
    Omitted fields are left unchanged.
    """
    full_name: Optional[str] = Field(None, max_length=200, description="Display name")
    phone: Optional[str] = Field(None, max_length=50, description="Contact phone")
