"""Initial schema: users, requests, applications, activity_logs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum members are stored by name, matching Column(Enum(...)) on the models
userrole = sa.Enum('ADMIN', 'VOLUNTEER', name='userrole')
userstatus = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'SUSPENDED', name='userstatus')
requeststatus = sa.Enum(
    'PENDING', 'OPEN', 'PUBLISHED', 'MATCHED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED',
    name='requeststatus',
)
applicationstatus = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'COMPLETED', name='applicationstatus')
targettype = sa.Enum('USER', 'REQUEST', 'APPLICATION', 'SYSTEM', name='targettype')


def upgrade() -> None:
    """Create the four core tables."""

    # 1. users (primary key is the identity provider's uid)
    op.create_table(
        'users',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('role', userrole, nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('age', sa.String(20), nullable=True),
        sa.Column('fields', sa.JSON(), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=True),
        sa.Column('availability', sa.JSON(), nullable=True),
        sa.Column('target_audience', sa.JSON(), nullable=True),
        sa.Column('goals', sa.Text(), nullable=True),
        sa.Column('status', userstatus, nullable=False),
        sa.Column('interview_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('interview_notes', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('completed_tasks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    # 2. requests
    op.create_table(
        'requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('requester_name', sa.String(100), nullable=False),
        sa.Column('requester_phone', sa.String(20), nullable=False),
        sa.Column('requester_age', sa.String(20), nullable=False),
        sa.Column('requester_district', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('fields', sa.JSON(), nullable=False),
        sa.Column('urgency', sa.String(50), nullable=True),
        sa.Column('service_type', sa.String(100), nullable=True),
        sa.Column('estimated_duration', sa.String(100), nullable=True),
        sa.Column('appreciation', sa.String(255), nullable=True),
        sa.Column('status', requeststatus, nullable=False),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('follow_ups', sa.JSON(), nullable=False),
        sa.Column('is_merged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('merged_with', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_requests_requester_phone', 'requests', ['requester_phone'])
    op.create_index('ix_requests_status', 'requests', ['status'])
    op.create_index('ix_requests_is_merged', 'requests', ['is_merged'])
    op.create_index('ix_requests_created_at', 'requests', ['created_at'])

    # 3. applications (one per request/volunteer pair)
    op.create_table(
        'applications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('request_id', sa.String(36), sa.ForeignKey('requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('volunteer_id', sa.String(128), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('volunteer_name', sa.String(100), nullable=True),
        sa.Column('status', applicationstatus, nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('available_time', sa.String(255), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('request_id', 'volunteer_id', name='uq_applications_request_volunteer'),
    )
    op.create_index('ix_applications_request_id', 'applications', ['request_id'])
    op.create_index('ix_applications_volunteer_id', 'applications', ['volunteer_id'])

    # 4. activity_logs (append-only)
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('actor_id', sa.String(128), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('target_type', targettype, nullable=False),
        sa.Column('target_id', sa.String(128), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_activity_logs_actor_id', 'activity_logs', ['actor_id'])
    op.create_index('ix_activity_logs_action', 'activity_logs', ['action'])
    op.create_index('ix_activity_logs_created_at', 'activity_logs', ['created_at'])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table('activity_logs')
    op.drop_table('applications')
    op.drop_table('requests')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (targettype, applicationstatus, requeststatus, userstatus, userrole):
        enum_type.drop(bind, checkfirst=True)
