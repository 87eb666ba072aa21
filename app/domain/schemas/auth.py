"""
Authentication schemas.
"""
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class TokenType(str, Enum):
    """Context a token was issued for."""
    INSTITUTION = "institution"
    ADMIN = "admin"


class SubjectKind(str, Enum):
    """What an institution token's `institution_id` claim names."""
    APPLICATION = "application"
    INSTITUTION = "institution"


class InstitutionRole(str, Enum):
    """Roles a member can hold inside an institution."""
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    VIEWER = "viewer"
    AMBASSADOR = "ambassador"


# Roles allowed to change team membership
TEAM_MANAGERS = (InstitutionRole.OWNER.value, InstitutionRole.ADMIN.value)

# Roles allowed to edit the institution profile
PROFILE_EDITORS = (
    InstitutionRole.OWNER.value,
    InstitutionRole.ADMIN.value,
    InstitutionRole.MANAGER.value,
)


class TokenPayload(BaseModel):
    """Decoded JWT claim set."""
    type: TokenType
    email: str
    institution_id: Optional[str] = None
    kind: Optional[SubjectKind] = None
    sub: Optional[str] = None
    iat: int
    exp: int
    iss: Optional[str] = None
    jti: Optional[str] = None


class InstitutionContext(BaseModel):
    """Identity resolved from an institution token."""
    institution_id: Optional[UUID] = None
    application_id: Optional[UUID] = None
    email: str
    role: str = InstitutionRole.OWNER.value
    user_id: Optional[UUID] = None


class AdminContext(BaseModel):
    """Identity resolved from an admin token."""
    email: str
    subject: str


class AdminLogin(BaseModel):
    """Admin credentials."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Issued bearer token."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class OTPRequest(BaseModel):
    """Ask for a one-time login code."""
    email: EmailStr


class OTPRequestResponse(BaseModel):
    """Identifier of the OTP session the code belongs to."""
    session_id: UUID
    expires_in: int


class OTPVerify(BaseModel):
    """Redeem a one-time login code."""
    session_id: Optional[UUID] = None
    otp: Optional[str] = None


class InstitutionLoginResponse(TokenResponse):
    """Token plus the context it resolves to."""
    kind: SubjectKind
    institution_id: Optional[UUID] = None
    application_id: UUID
    email: str
