"""
Institution and institution application schemas.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class ApplicationStatus(str, Enum):
    """Lifecycle of an institution application."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InstitutionStatus(str, Enum):
    """Visibility of an institution profile."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# Fields an applicant must fill before asking for approval
REQUIRED_FOR_APPROVAL = ("type", "name", "tagline", "city", "country", "description")


class InstitutionProfileFields(BaseModel):
    """Editable descriptive fields shared by applications and institutions."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = Field(None, max_length=120)
    tagline: Optional[str] = Field(None, max_length=280)
    description: Optional[str] = None
    logo: Optional[str] = Field(None, max_length=512)
    city: Optional[str] = Field(None, max_length=180)
    country: Optional[str] = Field(None, max_length=180)
    country_code: Optional[str] = Field(None, max_length=8)
    operating_mode: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=50)
    website: Optional[str] = Field(None, max_length=512)
    linkedin: Optional[str] = Field(None, max_length=512)
    sdg_focus: Optional[List[str]] = None
    sector_focus: Optional[List[str]] = None
    legal_documents: Optional[List[str]] = None
    startups_supported: Optional[int] = Field(None, ge=0)
    students_mentored: Optional[int] = Field(None, ge=0)
    funding_facilitated: Optional[Decimal] = Field(None, ge=0)
    funding_currency: Optional[str] = Field(None, max_length=8)


class InstitutionApplicationCreate(BaseModel):
    """Public submission of a new institution application."""
    name: Optional[str] = None
    email: Optional[str] = None
    type: Optional[str] = Field(None, max_length=120)
    tagline: Optional[str] = Field(None, max_length=280)
    city: Optional[str] = Field(None, max_length=180)
    country: Optional[str] = Field(None, max_length=180)
    website: Optional[str] = Field(None, max_length=512)
    description: Optional[str] = None


class InstitutionApplicationUpdate(InstitutionProfileFields):
    """Applicant edits to onboarding fields."""


class ApplicationDecision(BaseModel):
    """Admin decision on a pending application."""
    status: Literal["approved", "rejected"]
    remark: Optional[str] = None


class VerifyRequest(BaseModel):
    """Magic-link token posted by the client."""
    token: Optional[str] = None


class InstitutionApplicationRead(BaseModel):
    """Application as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    type: str
    tagline: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    operating_mode: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    sdg_focus: Optional[List[str]] = None
    sector_focus: Optional[List[str]] = None
    legal_documents: Optional[List[str]] = None
    startups_supported: int = 0
    students_mentored: int = 0
    funding_facilitated: Decimal = Decimal("0")
    funding_currency: str = "USD"
    verified: bool
    status: ApplicationStatus
    remark: Optional[str] = None
    institution_id: Optional[UUID] = None
    applicant_user_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class SubmittedApplication(BaseModel):
    """Result of a submission: the record and its magic link."""
    application: InstitutionApplicationRead
    magic_link: str


class VerifiedApplication(BaseModel):
    """Result of a verification."""
    application: InstitutionApplicationRead
    applicant_user_id: UUID


class DecidedApplication(BaseModel):
    """Result of an admin decision."""
    application: InstitutionApplicationRead
    institution_id: Optional[UUID] = None


class InstitutionCreate(InstitutionProfileFields):
    """Direct institution creation by an admin."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    slug: Optional[str] = Field(None, max_length=100)
    status: InstitutionStatus = InstitutionStatus.DRAFT

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class InstitutionUpdate(InstitutionProfileFields):
    """Profile edits by institution staff."""
    cover_image: Optional[str] = Field(None, max_length=512)
    status: Optional[Literal["draft", "published"]] = None


class InstitutionRead(BaseModel):
    """Institution as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    name: str
    type: str
    email: str
    tagline: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    cover_image: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    operating_mode: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    sdg_focus: Optional[List[str]] = None
    sector_focus: Optional[List[str]] = None
    legal_documents: Optional[List[str]] = None
    startups_supported: int = 0
    students_mentored: int = 0
    funding_facilitated: Decimal = Decimal("0")
    funding_currency: str = "USD"
    profile_views: int = 0
    status: InstitutionStatus
    verified: bool
    created_at: datetime
    updated_at: datetime


class TeamMemberCreate(BaseModel):
    """Invite someone to the institution team."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: Literal["admin", "manager", "viewer", "ambassador"]
    title: Optional[str] = Field(None, max_length=120)


class TeamMemberUpdate(BaseModel):
    """Change a member's role or title."""
    role: Optional[Literal["admin", "manager", "viewer", "ambassador"]] = None
    title: Optional[str] = Field(None, max_length=120)


class TeamMemberRead(BaseModel):
    """Team member joined with their user identity."""
    id: UUID
    institution_id: UUID
    user_id: UUID
    name: str
    email: str
    role: str
    title: Optional[str] = None
    is_active: bool
    admin_approved: bool
    manager_approved: bool
    is_approved: bool
    invited_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None

    @classmethod
    def from_member(cls, member) -> "TeamMemberRead":
        return cls(
            id=member.id,
            institution_id=member.institution_id,
            user_id=member.user_id,
            name=member.user.name,
            email=member.user.email,
            role=member.role,
            title=member.title,
            is_active=member.is_active,
            admin_approved=member.admin_approved,
            manager_approved=member.manager_approved,
            is_approved=member.is_approved,
            invited_at=member.invited_at,
            accepted_at=member.accepted_at,
        )
