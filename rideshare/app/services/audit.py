"""
Audit logging service for tracking security events and admin actions.

Provides centralized logging for compliance and security monitoring.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from rideshare.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    USER_REGISTERED = "USER_REGISTERED"
    USER_BLOCKED = "USER_BLOCKED"
    USER_UNBLOCKED = "USER_UNBLOCKED"
    DRIVER_CREATED = "DRIVER_CREATED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    
    # Route templates
    ROUTE_CREATED = "ROUTE_CREATED"
    ROUTE_UPDATED = "ROUTE_UPDATED"
    ROUTE_DEACTIVATED = "ROUTE_DEACTIVATED"
    
    # Vehicles
    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_DEACTIVATED = "VEHICLE_DEACTIVATED"
    
    # Scheduling
    ASSIGNMENT_CREATED = "ASSIGNMENT_CREATED"
    ASSIGNMENTS_BULK_CREATED = "ASSIGNMENTS_BULK_CREATED"
    ASSIGNMENT_UPDATED = "ASSIGNMENT_UPDATED"
    
    # Ride progress
    STOP_COMPLETED = "STOP_COMPLETED"
    ASSIGNMENT_STATUS_SET = "ASSIGNMENT_STATUS_SET"
    ASSIGNMENT_RESET = "ASSIGNMENT_RESET"
    ASSIGNMENT_ROLLED_FORWARD = "ASSIGNMENT_ROLLED_FORWARD"
    ATTENDANCE_MARKED = "ATTENDANCE_MARKED"
    
    # Subscriptions
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"
    
    # Profiles
    PROFILE_UPDATED = "PROFILE_UPDATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    target_user_id: Optional[int] = None,
    target_username: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log a security or admin event to the audit log.
    
    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        target_user_id: ID of user being acted upon (if applicable)
        target_username: Username of target
        metadata: Additional context as JSON
        ip_address: IP address of the request
        
    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        target_user_id=target_user_id,
        target_username=target_username,
        meta_data=metadata,
        ip_address=ip_address
    )
    
    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)
    
    return audit_log


async def log_admin_action(
    db: AsyncSession,
    admin_id: int,
    admin_username: str,
    action: str,
    target_user_id: int,
    target_username: str,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an admin action against a user account (block, unblock, onboarding).
    
    Args:
        db: Database session
        admin_id: ID of admin user
        admin_username: Username of admin
        action: Action performed (use AuditAction constants)
        target_user_id: ID of user being acted upon
        target_username: Username of target
        metadata: Additional context
        
    Returns:
        Created AuditLog instance
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=admin_id,
        actor_username=admin_username,
        target_user_id=target_user_id,
        target_username=target_username,
        metadata=metadata
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    username: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure).
    
    Args:
        db: Database session
        action: AuditAction.LOGIN_SUCCESS or AuditAction.LOGIN_FAILED
        user_id: ID of user attempting login
        username: Username attempting login
        ip_address: IP address of login attempt
        metadata: Additional context (e.g., failure reason)
        
    Returns:
        Created AuditLog instance
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_username=username,
        ip_address=ip_address,
        metadata=metadata
    )


async def log_assignment_event(
    db: AsyncSession,
    action: str,
    current_user: dict,
    assignment_id: int,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log a scheduling or ride progress action on an assignment.
    
    Args:
        db: Database session
        action: AuditAction constant (STOP_COMPLETED, ASSIGNMENT_RESET, ...)
        current_user: Token payload of the caller
        assignment_id: Assignment acted upon
        metadata: Extra context merged after the assignment id
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={"assignment_id": assignment_id, **(metadata or {})}
    )


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100,
    offset: int = 0
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.
    
    Args:
        db: Database session
        target_user_id: Filter by target user ID
        actor_id: Filter by acting user ID
        action: Filter by action type
        limit: Maximum number of records to return
        offset: Records to skip
        
    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    
    if target_user_id:
        query = query.where(AuditLog.target_user_id == target_user_id)
    
    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)
    
    if action:
        query = query.where(AuditLog.action == action)
    
    query = query.offset(offset).limit(limit)
    
    result = await db.execute(query)
    return result.scalars().all()


async def get_user_audit_history(
    db: AsyncSession,
    user_id: int,
    limit: int = 50
) -> list[AuditLog]:
    """
    Get complete audit history for a specific user.
    
    Args:
        db: Database session
        user_id: User ID to get history for
        limit: Maximum number of records
        
    Returns:
        List of audit logs where user was actor or target
    """
    query = select(AuditLog).where(
        (AuditLog.actor_id == user_id) | (AuditLog.target_user_id == user_id)
    ).order_by(desc(AuditLog.timestamp)).limit(limit)
    
    result = await db.execute(query)
    return result.scalars().all()
