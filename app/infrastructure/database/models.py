"""
Database models for XENTRO identity, institutions and their onboarding.
"""
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from app.infrastructure.database.base import Base


class TimestampMixin:
    """Mixin for created_at and updated_at."""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class InstitutionProfileMixin:
    """Descriptive fields shared by an application and the institution it becomes."""
    name = Column(String(255), nullable=False)
    type = Column(String(120), nullable=False, default="incubator")  # incubator, accelerator, university, ...
    tagline = Column(String(280))
    description = Column(Text)
    logo = Column(String(512))

    # Location
    city = Column(String(180))
    country = Column(String(180))
    country_code = Column(String(8))
    operating_mode = Column(String(50))  # local, national, global

    # Contact
    phone = Column(String(50))
    website = Column(String(512))
    linkedin = Column(String(512))

    # Focus areas
    sdg_focus = Column(JSON, default=list)
    sector_focus = Column(JSON, default=list)
    legal_documents = Column(JSON, default=list)

    # Metrics
    startups_supported = Column(Integer, default=0, nullable=False)
    students_mentored = Column(Integer, default=0, nullable=False)
    funding_facilitated = Column(Numeric(16, 2), default=0, nullable=False)
    funding_currency = Column(String(8), default="USD", nullable=False)


class User(Base, TimestampMixin):
    """Global identity. One email, one user."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50))
    avatar = Column(String(512))

    account_type = Column(String(50), default="explorer", nullable=False)
    active_context = Column(String(50), default="explorer", nullable=False)
    unlocked_contexts = Column(JSON, default=lambda: ["explorer"], nullable=False)

    email_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True))

    memberships = relationship("InstitutionMember", back_populates="user", foreign_keys="InstitutionMember.user_id")


class InstitutionApplication(Base, TimestampMixin, InstitutionProfileMixin):
    """Request to create an institution, preceding the Institution record."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), nullable=False, index=True)

    verified = Column(Boolean, default=False, nullable=False)
    verification_token = Column(String(255), unique=True, index=True)
    status = Column(String(32), default="pending", nullable=False)  # pending, approved, rejected
    remark = Column(Text)

    institution_id = Column(Uuid, ForeignKey("institution.id", ondelete="SET NULL"), nullable=True)
    applicant_user_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)

    institution = relationship("Institution", foreign_keys=[institution_id])

    __table_args__ = (
        Index("idx_institution_application_status", "status"),
    )


class Institution(Base, TimestampMixin, InstitutionProfileMixin):
    """Canonical institution entity; archived rather than deleted."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slug = Column(String(100), nullable=False, unique=True)
    email = Column(String(320), nullable=False, unique=True)
    cover_image = Column(String(512))
    profile_views = Column(Integer, default=0, nullable=False)

    status = Column(String(32), default="draft", nullable=False)  # draft, published, archived
    verified = Column(Boolean, default=False, nullable=False)  # platform trust badge

    members = relationship("InstitutionMember", back_populates="institution", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_institution_status", "status"),
    )


class InstitutionMember(Base):
    """User holding the institution context for one institution."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institution.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)

    role = Column(String(32), nullable=False)  # owner, admin, manager, viewer, ambassador
    title = Column(String(120))

    invited_by = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    invited_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    accepted_at = Column(DateTime(timezone=True))

    is_active = Column(Boolean, default=True, nullable=False)
    admin_approved = Column(Boolean, default=False, nullable=False)
    manager_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    institution = relationship("Institution", back_populates="members")
    user = relationship("User", back_populates="memberships", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("institution_id", "user_id", name="uq_institution_member_institution_user"),
    )

    @property
    def is_approved(self) -> bool:
        """Owners are implicitly approved; everyone else needs an approval flag."""
        return self.role == "owner" or bool(self.admin_approved or self.manager_approved)


class InstitutionSession(Base):
    """One-time code issued to an institution applicant for login."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), nullable=False, index=True)
    otp = Column(String(12), nullable=False)
    institution_id = Column(Uuid, ForeignKey("institution.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ActivityLog(Base):
    """Audit trail of actions taken on the platform."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True)
    actor_email = Column(String(320))
    action = Column(String(100), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid, nullable=True)
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_activity_log_entity", "entity_type", "entity_id"),
    )


class Notification(Base):
    """In-app notification for a user."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(512))
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
