"""Baseline migration - users, matters, phase records, scheduling, audit

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Portable column types so the same revision runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _phase_record_columns() -> list[sa.Column]:
    return [
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('pdf_url', sa.Text(), nullable=True),
        sa.Column('storage_key', sa.String(500), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    ]


def upgrade() -> None:
    """Create all workflow tables."""

    # ==========================================================================
    # Users + counters
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='client'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'case_counters',
        sa.Column('name', sa.String(50), primary_key=True),
        sa.Column('current_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ==========================================================================
    # Matters
    # ==========================================================================
    op.create_table(
        'matters',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('case_code', sa.String(16), nullable=True, unique=True),
        sa.Column('client_key', sa.String(64), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('path_type', sa.String(20), nullable=True),
        sa.Column('deceased_name', sa.String(255), nullable=True),
        sa.Column('right_fit_status', sa.String(20), nullable=True),
        sa.Column('right_fit_answers', sa.JSON(), nullable=True),
        sa.Column('right_fit_reasons', sa.JSON(), nullable=True),
        sa.Column('right_fit_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('portal_status', sa.String(40), nullable=False, server_default='intake_complete'),
        sa.Column('journey_status', sa.JSON(), nullable=False),
        sa.Column('will_search_mailed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notices_mailed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('probate_filed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('grant_issued_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        'uq_matters_client_key_active',
        'matters',
        ['client_key'],
        unique=True,
        postgresql_where=sa.text('deleted_at IS NULL'),
        sqlite_where=sa.text('deleted_at IS NULL'),
    )
    op.create_index('idx_matters_user', 'matters', ['user_id', 'created_at'])
    op.create_index('idx_matters_portal_status', 'matters', ['portal_status'])

    op.create_table(
        'intake_drafts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('final_snapshot', sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'matter_step_progress',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('step_key', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('matter_id', 'step_key', name='uq_matter_step_progress'),
    )

    op.create_table(
        'resume_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('token', sa.String(128), nullable=False, unique=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_resume_tokens_matter', 'resume_tokens', ['matter_id'])

    op.create_table(
        'reminders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('matter_id', 'type', name='uq_reminders_matter_type'),
    )
    op.create_index('idx_reminders_due', 'reminders', ['sent_at', 'due_at'])

    # ==========================================================================
    # Phase records (one current row per key)
    # ==========================================================================
    op.create_table(
        'will_search_requests',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False, unique=True),
        *_phase_record_columns(),
    )

    op.create_table(
        'generated_packs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False, unique=True),
        *_phase_record_columns(),
    )

    op.create_table(
        'supplemental_schedules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.String(30), nullable=False),
        *_phase_record_columns(),
        sa.UniqueConstraint('matter_id', 'kind', name='uq_supplemental_schedules_matter_kind'),
    )

    # ==========================================================================
    # Callbacks + requisitions
    # ==========================================================================
    op.create_table(
        'availability_slots',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('slot_date', sa.Date(), nullable=False),
        sa.Column('slot_time', sa.Time(), nullable=False),
        sa.Column('created_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('slot_date', 'slot_time', name='uq_availability_slot_datetime'),
    )

    op.create_table(
        'callback_schedules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('slot_id', sa.Uuid(), sa.ForeignKey('availability_slots.id', ondelete='SET NULL'), nullable=True),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='scheduled'),
        *_timestamps(),
    )
    op.create_index(
        'uq_callback_schedules_active_slot',
        'callback_schedules',
        ['slot_id'],
        unique=True,
        postgresql_where=sa.text("status = 'scheduled'"),
        sqlite_where=sa.text("status = 'scheduled'"),
    )
    op.create_index('idx_callback_schedules_matter', 'callback_schedules', ['matter_id'])

    op.create_table(
        'requisitions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('response', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_requisitions_matter', 'requisitions', ['matter_id', 'created_at'])

    # ==========================================================================
    # Audit
    # ==========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('matter_id', sa.Uuid(), sa.ForeignKey('matters.id', ondelete='SET NULL'), nullable=True),
        sa.Column('actor_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(60), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_audit_logs_matter', 'audit_logs', ['matter_id', 'created_at'])


def downgrade() -> None:
    for table in (
        'audit_logs',
        'requisitions',
        'callback_schedules',
        'availability_slots',
        'supplemental_schedules',
        'generated_packs',
        'will_search_requests',
        'reminders',
        'resume_tokens',
        'matter_step_progress',
        'intake_drafts',
        'matters',
        'case_counters',
        'users',
    ):
        op.drop_table(table)
