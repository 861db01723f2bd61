"""
Analytics and Profile API Endpoints.

Read-only dashboard data for admins, booking totals and profile edits for riders.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.db.session import get_db
from rideshare.app.models.enums import UserRole
from rideshare.app.models.user import User
from rideshare.app.core.exceptions import ResourceNotFoundError
from rideshare.app.core.guards import require_role
from rideshare.app.services.analytics import AnalyticsService
from rideshare.app.services.audit import log_event, AuditAction
from rideshare.app.schemas.analytics import AdminDashboardStats, RiderStats, ProfileUpdate
from rideshare.app.schemas.auth import UserResponse

admin_router = APIRouter(prefix="/admin", tags=["Admin - Analytics"])
rider_router = APIRouter(prefix="/rider", tags=["Rider - Profile"])


# --- Admin ---

@admin_router.get("/dashboard", response_model=AdminDashboardStats)
async def get_admin_dashboard(
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Rider, driver and vehicle counts, today's rides and booked revenue."""
    return await AnalyticsService.get_admin_dashboard(db)


# --- Rider ---

@rider_router.get("/stats", response_model=RiderStats)
async def get_rider_stats(
    current_user: dict = Depends(require_role([UserRole.RIDER])),
    db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService.get_rider_stats(db, current_user["user_id"])


async def _load_self(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise ResourceNotFoundError("User", user_id)
    return user


@rider_router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: dict = Depends(require_role([UserRole.RIDER])),
    db: AsyncSession = Depends(get_db)
):
    user = await _load_self(db, current_user["user_id"])
    return UserResponse.model_validate(user)


@rider_router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: dict = Depends(require_role([UserRole.RIDER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the rider's display name and phone.
    
    Only fields present in the body change.
    """
    user = await _load_self(db, current_user["user_id"])
    
    changes = profile_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(user, field, value)
    
    await db.commit()
    await db.refresh(user)
    
    await log_event(
        db=db,
        action=AuditAction.PROFILE_UPDATED,
        actor_id=user.id,
        actor_username=user.username,
        metadata={"fields": sorted(changes)}
    )
    
    return UserResponse.model_validate(user)
