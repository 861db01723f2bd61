"""
Admin API Endpoints.

User management, driver onboarding and the audit trail. Every mutating
call writes an audit log entry.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from rideshare.app.db.session import get_db
from rideshare.app.models.user import User
from rideshare.app.models.vehicle import Vehicle
from rideshare.app.models.enums import UserRole
from rideshare.app.schemas.admin import (
    UserListResponse, UserListItem, BlockUserRequest, UnblockUserRequest,
    AdminActionResponse, AuditTrailResponse, AuditLogResponse, DriverCreate
)
from rideshare.app.core.guards import require_admin
from rideshare.app.core.security import get_password_hash
from rideshare.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from rideshare.app.services.audit import (
    log_admin_action, AuditAction, get_audit_trail, get_user_audit_history
)

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List users (admin-only), newest first.
    """
    count_query = select(func.count(User.id))
    query = select(User)
    if role is not None:
        count_query = count_query.where(User.role == role)
        query = query.where(User.role == role)
    
    total = (await db.execute(count_query)).scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    )
    users = result.scalars().all()
    
    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/users/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get one user (admin-only)."""
    return UserListItem.model_validate(await _get_user_or_404(db, user_id))


@router.post("/users/{user_id}/block", response_model=AdminActionResponse)
async def block_user(
    user_id: int,
    request: BlockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Block a user and revoke all their active tokens (admin-only).
    
    A blocked driver keeps their assignments; admins reassign them.
    """
    target_user = await _get_user_or_404(db, user_id)
    
    if target_user.id == admin["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot block yourself"
        )
    
    if target_user.role == UserRole.ADMIN or target_user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot block another admin user"
        )
    
    if not target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already blocked"
        )
    
    target_user.is_active = False
    await db.commit()
    
    await revoke_all_user_tokens(user_id)
    
    audit_log = await log_admin_action(
        db=db,
        admin_id=admin["user_id"],
        admin_username=admin["sub"],
        action=AuditAction.USER_BLOCKED,
        target_user_id=target_user.id,
        target_username=target_user.username,
        metadata={"reason": request.reason} if request.reason else None
    )
    
    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.username}' has been blocked",
        user_id=user_id,
        action=AuditAction.USER_BLOCKED,
        audit_log_id=audit_log.id
    )


@router.post("/users/{user_id}/unblock", response_model=AdminActionResponse)
async def unblock_user(
    user_id: int,
    request: UnblockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Unblock a user and clear token revocations (admin-only).
    
    The user can log in again; tokens issued before the block work again
    until they expire.
    """
    target_user = await _get_user_or_404(db, user_id)
    
    if target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already active"
        )
    
    target_user.is_active = True
    await db.commit()
    
    await clear_user_token_revocation(user_id)
    
    audit_log = await log_admin_action(
        db=db,
        admin_id=admin["user_id"],
        admin_username=admin["sub"],
        action=AuditAction.USER_UNBLOCKED,
        target_user_id=target_user.id,
        target_username=target_user.username,
        metadata={"reason": request.reason} if request.reason else None
    )
    
    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.username}' has been unblocked",
        user_id=user_id,
        action=AuditAction.USER_UNBLOCKED,
        audit_log_id=audit_log.id
    )


@router.post("/drivers", response_model=UserListItem, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Onboard a driver account (admin-only).
    
    Optionally pins the vehicle the driver usually runs.
    """
    existing = await db.execute(
        select(User).where(
            or_(User.username == driver_data.username, User.email == driver_data.email)
        )
    )
    if existing.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already registered"
        )
    
    if driver_data.assigned_vehicle_id is not None:
        if not await db.get(Vehicle, driver_data.assigned_vehicle_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Vehicle not found"
            )
    
    driver = User(
        email=driver_data.email,
        username=driver_data.username,
        full_name=driver_data.full_name,
        phone=driver_data.phone,
        hashed_password=get_password_hash(driver_data.password),
        role=UserRole.DRIVER,
        assigned_vehicle_id=driver_data.assigned_vehicle_id,
        is_active=True,
        is_superuser=False
    )
    db.add(driver)
    await db.commit()
    await db.refresh(driver)
    
    await log_admin_action(
        db=db,
        admin_id=admin["user_id"],
        admin_username=admin["sub"],
        action=AuditAction.DRIVER_CREATED,
        target_user_id=driver.id,
        target_username=driver.username,
        metadata={"assigned_vehicle_id": driver.assigned_vehicle_id}
    )
    
    return UserListItem.model_validate(driver)


@router.get("/drivers", response_model=UserListResponse)
async def list_drivers(
    active_only: bool = Query(False, description="Hide blocked drivers"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List driver accounts (admin-only), alphabetically."""
    query = select(User).where(User.role == UserRole.DRIVER)
    if active_only:
        query = query.where(User.is_active == True)
    
    result = await db.execute(query.order_by(User.username))
    drivers = result.scalars().all()
    
    return UserListResponse(
        users=[UserListItem.model_validate(d) for d in drivers],
        total=len(drivers),
        page=1,
        page_size=len(drivers)
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by target user ID"),
    actor_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail with optional filtering (admin-only).
    
    Includes ride progress events (STOP_COMPLETED, ASSIGNMENT_RESET, ...).
    """
    logs = await get_audit_trail(
        db=db,
        target_user_id=user_id,
        actor_id=actor_id,
        action=action,
        limit=limit,
        offset=offset
    )
    
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


@router.get("/users/{user_id}/audit-history", response_model=AuditTrailResponse)
async def user_audit_history(
    user_id: int,
    limit: int = Query(50, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """All actions performed by or on one user (admin-only)."""
    logs = await get_user_audit_history(db=db, user_id=user_id, limit=limit)
    
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
