"""
Subscription Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List
from rideshare.app.models.assignment_enums import AssignmentStatus
from rideshare.app.models.subscription_enums import PlanType, SubscriptionRideStatus
from rideshare.app.schemas.assignment import AssignmentResponse
from rideshare.app.schemas.route_template import SequenceStopResponse
from rideshare.app.schemas.vehicle import VehicleResponse


class SubscriptionCreate(BaseModel):
    """
    Schema for subscribing to a route.
    
    Stops are given by id ("start", "stop-2", "end") or by name.
    """
    route_id: int
    pickup_stop: str = Field(..., min_length=1)
    drop_stop: str = Field(..., min_length=1)
    schedule_days: List[str] = Field(..., min_length=1)
    plan_type: PlanType
    start_date: Optional[date] = Field(None, description="Defaults to today (UTC)")
    schedule_time: Optional[str] = None
    assignment_id: Optional[int] = Field(None, description="Assignment whose vehicle seat is booked")


class SubscriptionResponse(BaseModel):
    id: int
    user_id: int
    route_id: int
    assignment_id: Optional[int]
    pickup_stop_id: str
    pickup_stop_name: str
    drop_stop_id: str
    drop_stop_name: str
    schedule_days: List[str]
    schedule_time: Optional[str]
    plan_type: PlanType
    price: float
    distance_km: float
    start_date: date
    end_date: date
    active: bool
    refunded: bool
    refund_amount: float
    refunded_at: Optional[datetime]
    created_at: datetime
    
    class Config:
        from_attributes = True


class SubscriptionListResponse(BaseModel):
    subscriptions: List[SubscriptionResponse]
    total: int


class SubscriptionRideResponse(BaseModel):
    id: int
    subscription_id: int
    assignment_id: Optional[int]
    ride_date: date
    status: SubscriptionRideStatus
    refund_amount: float
    cancelled_at: Optional[datetime]
    
    class Config:
        from_attributes = True


class RideProgress(BaseModel):
    """Live progress of the assignment a ride is linked to."""
    assignment_id: int
    status: AssignmentStatus
    current_stop_index: int
    total_stops: int
    next_stop: Optional[SequenceStopResponse]


class MyRideResponse(SubscriptionRideResponse):
    route_id: int
    pickup_stop_name: str
    drop_stop_name: str
    progress: Optional[RideProgress] = None


class MyRidesResponse(BaseModel):
    rides: List[MyRideResponse]
    total: int
    poll_interval_seconds: int


class AssignmentCapacityResponse(BaseModel):
    assignment: AssignmentResponse
    vehicle: Optional[VehicleResponse]
    capacity: int
    subscribed_count: int
    available_seats: int
    is_full: bool


class RouteCapacityResponse(BaseModel):
    route_id: int
    service_date: date
    assignments: List[AssignmentCapacityResponse]
