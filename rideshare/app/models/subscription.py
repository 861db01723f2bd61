"""
Subscription database models.

A rider's recurring booking of a pickup/drop pair on a route, and the
per-day rides it materializes into.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, ForeignKey, Enum, JSON, Index
from sqlalchemy.sql import func
from rideshare.app.db.session import Base
from rideshare.app.models.subscription_enums import PlanType, SubscriptionRideStatus


class Subscription(Base):
    """
    Subscription model.
    
    Pickup and drop reference stop ids of the route's full stop sequence
    ("start", "stop-<index>", "end"); the names are kept for display.
    """
    __tablename__ = "subscriptions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    route_id = Column(Integer, ForeignKey('route_templates.id'), nullable=False, index=True)
    assignment_id = Column(Integer, ForeignKey('assignments.id'), nullable=True, index=True)
    
    pickup_stop_id = Column(String(50), nullable=False)
    pickup_stop_name = Column(String(200), nullable=False)
    drop_stop_id = Column(String(50), nullable=False)
    drop_stop_name = Column(String(200), nullable=False)
    
    # Weekly schedule
    schedule_days = Column(JSON, nullable=False)  # ["monday", "tuesday", ...]
    schedule_time = Column(String(5), nullable=True)  # "HH:MM"
    
    plan_type = Column(Enum(PlanType), nullable=False)
    price = Column(Float, nullable=False)
    distance_km = Column(Float, nullable=False)
    
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)  # exclusive
    
    active = Column(Boolean, default=True, nullable=False, index=True)
    
    # Cancellation refunds
    refunded = Column(Boolean, default=False, nullable=False)
    refund_amount = Column(Float, default=0.0, nullable=False)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Subscription(id={self.id}, user_id={self.user_id}, plan='{self.plan_type.value}', active={self.active})>"


class SubscriptionRide(Base):
    """One scheduled day of a subscription, linked to that day's assignment when one exists."""
    __tablename__ = "subscription_rides"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    subscription_id = Column(Integer, ForeignKey('subscriptions.id'), nullable=False, index=True)
    assignment_id = Column(Integer, ForeignKey('assignments.id'), nullable=True, index=True)
    ride_date = Column(Date, nullable=False)
    status = Column(Enum(SubscriptionRideStatus), default=SubscriptionRideStatus.SCHEDULED, nullable=False)
    refund_amount = Column(Float, default=0.0, nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    
    __table_args__ = (
        Index('ix_subscription_rides_subscription_day', 'subscription_id', 'ride_date'),
    )
