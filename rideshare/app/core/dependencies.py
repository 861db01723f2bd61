"""
Authentication dependencies for FastAPI.

Every driver, rider and admin endpoint resolves the caller through
get_current_user before touching any assignment or subscription.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from rideshare.app.core.jwt import decode_access_token
from rideshare.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from rideshare.app.db.session import get_db
from rideshare.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.
    
    Checks, in order:
    1. Token signature and expiry
    2. Token not individually revoked (logout)
    3. User tokens not globally revoked (blocked user)
    4. User still exists and is active in the database
    
    Returns:
        Decoded token payload (sub, user_id, role) plus the raw token
        
    Raises:
        HTTPException: 401 if authentication fails, 403 if the account is inactive
    """
    token = credentials.credentials
    
    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Could not validate credentials")
    
    user_id = payload.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")
    
    if await is_token_revoked(token):
        raise _unauthorized("Token has been revoked")
    
    if await are_user_tokens_revoked(user_id):
        raise _unauthorized("User access has been revoked")
    
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    if not user:
        raise _unauthorized("User not found")
    
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )
    
    return {**payload, "token": token}
