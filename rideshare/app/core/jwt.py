"""
JWT token utilities for authentication.

Tokens carry the user id and role so driver/rider/admin routers can
authorize requests without an extra lookup.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from rideshare.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.
    
    Args:
        data: Claims to encode (should include: sub, user_id, role)
        expires_delta: Optional custom lifetime, defaults to the configured one
        
    Returns:
        Encoded JWT token string
        
    Example payload:
        {
            "sub": "driver_karim",
            "user_id": 12,
            "role": "DRIVER",
            "exp": 1767225600
        }
    """
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token.
    
    Returns:
        Decoded claims if the signature and expiry are valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
