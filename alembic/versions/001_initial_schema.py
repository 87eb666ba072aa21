"""Initial schema: users, institutions and onboarding

Revision ID: 001
Revises: 
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _profile_columns() -> list:
    """Descriptive columns shared by applications and institutions."""
    return [
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=120), nullable=False, server_default='incubator'),
        sa.Column('tagline', sa.String(length=280), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo', sa.String(length=512), nullable=True),
        sa.Column('city', sa.String(length=180), nullable=True),
        sa.Column('country', sa.String(length=180), nullable=True),
        sa.Column('country_code', sa.String(length=8), nullable=True),
        sa.Column('operating_mode', sa.String(length=50), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('website', sa.String(length=512), nullable=True),
        sa.Column('linkedin', sa.String(length=512), nullable=True),
        sa.Column('sdg_focus', sa.JSON(), nullable=True),
        sa.Column('sector_focus', sa.JSON(), nullable=True),
        sa.Column('legal_documents', sa.JSON(), nullable=True),
        sa.Column('startups_supported', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('students_mentored', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('funding_facilitated', sa.Numeric(16, 2), nullable=False, server_default='0'),
        sa.Column('funding_currency', sa.String(length=8), nullable=False, server_default='USD'),
    ]


def upgrade() -> None:
    """Create all tables."""

    # Users
    op.create_table('user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('avatar', sa.String(length=512), nullable=True),
        sa.Column('account_type', sa.String(length=50), nullable=False, server_default='explorer'),
        sa.Column('active_context', sa.String(length=50), nullable=False, server_default='explorer'),
        sa.Column('unlocked_contexts', sa.JSON(), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user')),
    )
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)

    # Institutions
    op.create_table('institution',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        *_profile_columns(),
        sa.Column('cover_image', sa.String(length=512), nullable=True),
        sa.Column('profile_views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='draft'),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_institution')),
        sa.UniqueConstraint('slug', name=op.f('uq_institution_slug')),
        sa.UniqueConstraint('email', name=op.f('uq_institution_email')),
    )
    op.create_index('idx_institution_status', 'institution', ['status'])

    # Institution applications
    op.create_table('institution_application',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        *_profile_columns(),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_token', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('institution_id', sa.Uuid(), nullable=True),
        sa.Column('applicant_user_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['institution_id'], ['institution.id'], ondelete='SET NULL',
                                name=op.f('fk_institution_application_institution_id_institution')),
        sa.ForeignKeyConstraint(['applicant_user_id'], ['user.id'], ondelete='SET NULL',
                                name=op.f('fk_institution_application_applicant_user_id_user')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_institution_application')),
    )
    op.create_index(op.f('ix_institution_application_email'), 'institution_application', ['email'])
    op.create_index(op.f('ix_institution_application_verification_token'), 'institution_application',
                    ['verification_token'], unique=True)
    op.create_index('idx_institution_application_status', 'institution_application', ['status'])

    # Institution members
    op.create_table('institution_member',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('institution_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=120), nullable=True),
        sa.Column('invited_by', sa.Uuid(), nullable=True),
        sa.Column('invited_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('admin_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('manager_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['institution_id'], ['institution.id'], ondelete='CASCADE',
                                name=op.f('fk_institution_member_institution_id_institution')),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE',
                                name=op.f('fk_institution_member_user_id_user')),
        sa.ForeignKeyConstraint(['invited_by'], ['user.id'], ondelete='SET NULL',
                                name=op.f('fk_institution_member_invited_by_user')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_institution_member')),
        sa.UniqueConstraint('institution_id', 'user_id', name='uq_institution_member_institution_user'),
    )
    op.create_index(op.f('ix_institution_member_institution_id'), 'institution_member', ['institution_id'])
    op.create_index(op.f('ix_institution_member_user_id'), 'institution_member', ['user_id'])

    # OTP login sessions
    op.create_table('institution_session',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('otp', sa.String(length=12), nullable=False),
        sa.Column('institution_id', sa.Uuid(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['institution_id'], ['institution.id'], ondelete='SET NULL',
                                name=op.f('fk_institution_session_institution_id_institution')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_institution_session')),
    )
    op.create_index(op.f('ix_institution_session_email'), 'institution_session', ['email'])

    # Activity log
    op.create_table('activity_log',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('actor_email', sa.String(length=320), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='SET NULL',
                                name=op.f('fk_activity_log_user_id_user')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_activity_log')),
    )
    op.create_index(op.f('ix_activity_log_user_id'), 'activity_log', ['user_id'])
    op.create_index('idx_activity_log_entity', 'activity_log', ['entity_type', 'entity_id'])

    # Notifications
    op.create_table('notification',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String(length=512), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE',
                                name=op.f('fk_notification_user_id_user')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notification')),
    )
    op.create_index(op.f('ix_notification_user_id'), 'notification', ['user_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('notification')
    op.drop_table('activity_log')
    op.drop_table('institution_session')
    op.drop_table('institution_member')
    op.drop_table('institution_application')
    op.drop_table('institution')
    op.drop_table('user')
