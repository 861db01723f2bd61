"""
Authentication API endpoints.

Provides register, login, logout and user info endpoints for rider and driver apps.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from rideshare.app.db.session import get_db
from rideshare.app.models.user import User
from rideshare.app.models.enums import UserRole
from rideshare.app.schemas.auth import UserRegister, UserLogin, TokenResponse, UserResponse, LogoutResponse
from rideshare.app.core.security import get_password_hash, verify_password
from rideshare.app.core.jwt import create_access_token
from rideshare.app.core.dependencies import get_current_user
from rideshare.app.core.token_revocation import revoke_token
from rideshare.app.services.audit import log_auth_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.
    
    Riders register by default; drivers may self-register. ADMIN accounts
    are only created out of band (see seed_users.py).
    """
    # 1. Block ADMIN registration
    if user_data.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin users cannot be registered via API"
        )

    # 2. Check if username or email already exists
    result = await db.execute(
        select(User).where(
            or_(User.username == user_data.username, User.email == user_data.email)
        )
    )
    existing_user = result.scalars().first()
    
    if existing_user:
        if existing_user.username == user_data.username:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already registered"
            )
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )
            
    # Create new user
    new_user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name,
        phone=user_data.phone,
        role=user_data.role or UserRole.RIDER,
        is_active=True,
        is_superuser=False
    )
    
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)
    
    await log_auth_event(
        db=db,
        action=AuditAction.USER_REGISTERED,
        user_id=new_user.id,
        username=new_user.username,
        metadata={"role": new_user.role.value}
    )
    
    # Generate JWT token with role
    jwt_payload = {
        "sub": new_user.username,
        "user_id": new_user.id,
        "role": new_user.role.value
    }
    
    access_token = create_access_token(data=jwt_payload)
    
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=new_user.id,
        username=new_user.username,
        email=new_user.email,
        role=new_user.role,
        assigned_vehicle_id=new_user.assigned_vehicle_id
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.
    
    Accepts username or email for login.
    Logs successful and failed login attempts for security monitoring.
    """
    # Find user by username or email
    result = await db.execute(
        select(User).where(
            or_(User.username == credentials.username, User.email == credentials.username)
        )
    )
    user = result.scalar_one_or_none()
    
    if not user:
        # Log failed login attempt
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=None,
            username=credentials.username,
            metadata={"reason": "User not found"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    # Verify password
    if not verify_password(credentials.password, user.hashed_password):
        # Log failed login attempt
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            username=user.username,
            metadata={"reason": "Invalid password"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    # Check if user is active
    if not user.is_active:
        # Log failed login attempt for blocked user
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            username=user.username,
            metadata={"reason": "Account is inactive/blocked"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )
    
    # Generate JWT token with role
    jwt_payload = {
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value
    }
    
    access_token = create_access_token(data=jwt_payload)
    
    # Log successful login
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        username=user.username
    )
    
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        assigned_vehicle_id=user.assigned_vehicle_id
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.
    
    Returns detailed user info including role.
    Requires valid JWT token in Authorization header.
    
    Args:
        current_user: Decoded JWT payload from auth dependency
        db: Database session
        
    Returns:
        UserResponse with complete user information
        
    Raises:
        404: If user not found in database
    """
    user_id = current_user.get("user_id")
    
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    
    return UserResponse.model_validate(user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the bearer token used for this request.
    
    The token is rejected by every endpoint until it would have expired.
    """
    await revoke_token(current_user["token"], current_user["user_id"])
    
    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        username=current_user.get("sub")
    )
    
    return LogoutResponse(success=True, message="Logged out")
