"""
Request and response models for the Auth Service API.
"""

from typing import Optional

from pydantic import BaseModel, Field

from shared.contracts import Principal


class PermissionCheckRequest(BaseModel):
    """Check the session user; without ``action`` any action in the category counts."""
    category: str = Field(..., min_length=1)
    action: Optional[str] = None


class PermissionCheckResponse(BaseModel):
    user_id: str
    category: str
    action: Optional[str] = None
    allowed: bool


class PermissionCreateRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=64, description="Action within the category")
    description: Optional[str] = None


class GrantRequest(BaseModel):
    permission_id: str


class GrantChangeResponse(BaseModel):
    user_id: str
    permission_id: str
    changed: bool


class TokenVerificationRequest(BaseModel):
    token: str


class TokenVerificationResponse(BaseModel):
    valid: bool
    principal: Optional[Principal] = None
    error: Optional[str] = None
