"""
Admin API Schema Definitions.

Pydantic schemas for user management, driver onboarding and audit endpoints.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional, List
from rideshare.app.models.enums import UserRole
from rideshare.app.schemas.auth import check_password_bytes


class UserListItem(BaseModel):
    """Schema for user in list response."""
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    assigned_vehicle_id: Optional[int] = None
    is_active: bool
    is_superuser: bool
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserListItem]
    total: int
    page: int
    page_size: int


class BlockUserRequest(BaseModel):
    """Schema for blocking a user."""
    reason: Optional[str] = Field(None, description="Reason for blocking (for audit log)")


class UnblockUserRequest(BaseModel):
    """Schema for unblocking a user."""
    reason: Optional[str] = Field(None, description="Reason for unblocking (for audit log)")


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    user_id: int
    action: str
    audit_log_id: int


class DriverCreate(BaseModel):
    """Schema for onboarding a driver account."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    assigned_vehicle_id: Optional[int] = None
    
    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return check_password_bytes(value)


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_username: Optional[str]
    action: str
    target_user_id: Optional[int]
    target_username: Optional[str]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime
    
    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
