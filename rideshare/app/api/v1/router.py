"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from rideshare.app.api.v1.endpoints import (
    auth, admin, admin_routes, admin_fleet, admin_assignments,
    driver_assignments, rider_subscriptions, rider_rides, analytics
)

router = APIRouter()

# Authentication
router.include_router(auth.router)

# Admin: users, routes, vehicles, scheduling
router.include_router(admin.router)
router.include_router(admin_routes.router)
router.include_router(admin_fleet.router)
router.include_router(admin_assignments.router)

# Driver ride progress
router.include_router(driver_assignments.router)

# Rider routes, subscriptions and rides
router.include_router(rider_subscriptions.router)
router.include_router(rider_rides.router)

# Dashboards, rider stats and profile
router.include_router(analytics.admin_router)
router.include_router(analytics.rider_router)
