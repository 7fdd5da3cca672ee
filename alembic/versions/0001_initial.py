"""Create classroom, destination, check-in and waitlist tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

This migration creates the tables for check-in tracking and waitlists:
- classrooms / classroom_students: teacher-owned rooms and their roster
- destinations: where a student may go; optional capacity
- check_ins: open/closed occupancy intervals
- waitlist_entries: queue for a full capacity-limited destination
- waitlist_events: event log for waitlist activities
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'classrooms',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('teacher_id', sa.String(), nullable=False),  # No FK - users live in the auth service
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_classrooms_teacher_id', 'classrooms', ['teacher_id'])

    op.create_table(
        'classroom_students',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('student_id', sa.String(), nullable=False),
        sa.Column('classroom_id', sa.String(), sa.ForeignKey('classrooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('student_id', 'classroom_id', name='unique_classroom_student'),
    )
    op.create_index('ix_classroom_students_student_id', 'classroom_students', ['student_id'])
    op.create_index('ix_classroom_students_classroom_id', 'classroom_students', ['classroom_id'])

    op.create_table(
        'destinations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('classroom_id', sa.String(), sa.ForeignKey('classrooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=True),  # NULL = unlimited
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('classroom_id', 'name', name='unique_classroom_destination_name'),
        sa.CheckConstraint('capacity IS NULL OR capacity > 0', name='check_destination_capacity_positive'),
    )
    op.create_index('ix_destinations_classroom_id', 'destinations', ['classroom_id'])

    op.create_table(
        'check_ins',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('student_id', sa.String(), nullable=False),
        sa.Column('classroom_id', sa.String(), sa.ForeignKey('classrooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('destination', sa.String(), nullable=True),
        sa.Column('check_out_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('check_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('manual_override', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_check_ins_student_id', 'check_ins', ['student_id'])
    op.create_index('idx_check_ins_classroom_open', 'check_ins', ['classroom_id', 'check_in_at'])
    # At most one open interval per student
    op.create_index(
        'uq_check_ins_open_per_student',
        'check_ins',
        ['student_id'],
        unique=True,
        postgresql_where=sa.text("check_in_at IS NULL"),
        sqlite_where=sa.text("check_in_at IS NULL"),
    )

    op.create_table(
        'waitlist_entries',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('student_id', sa.String(), nullable=False),
        sa.Column('classroom_id', sa.String(), sa.ForeignKey('classrooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('destination_id', sa.String(), sa.ForeignKey('destinations.id', ondelete='CASCADE'), nullable=False),

        # Queue Management
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='waiting'),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('queued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),

        sa.CheckConstraint('position > 0', name='check_waitlist_position_positive'),
        sa.CheckConstraint(
            "status IN ('waiting', 'approved', 'checked_out', 'cancelled')",
            name='check_waitlist_status',
        ),
    )
    op.create_index(
        'idx_waitlist_classroom_destination_status',
        'waitlist_entries',
        ['classroom_id', 'destination_id', 'status'],
    )
    op.create_index('idx_waitlist_student_classroom', 'waitlist_entries', ['student_id', 'classroom_id'])
    # One active entry per student per classroom
    op.create_index(
        'uq_waitlist_active_student',
        'waitlist_entries',
        ['student_id', 'classroom_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('waiting', 'approved')"),
        sqlite_where=sa.text("status IN ('waiting', 'approved')"),
    )

    op.create_table(
        'waitlist_events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column(
            'waitlist_entry_id',
            sa.String(),
            sa.ForeignKey('waitlist_entries.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('event_data', sa.JSON().with_variant(JSONB(), 'postgresql'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_waitlist_events_waitlist_entry_id', 'waitlist_events', ['waitlist_entry_id'])


def downgrade() -> None:
    op.drop_index('ix_waitlist_events_waitlist_entry_id', table_name='waitlist_events')
    op.drop_table('waitlist_events')

    op.drop_index('uq_waitlist_active_student', table_name='waitlist_entries')
    op.drop_index('idx_waitlist_student_classroom', table_name='waitlist_entries')
    op.drop_index('idx_waitlist_classroom_destination_status', table_name='waitlist_entries')
    op.drop_table('waitlist_entries')

    op.drop_index('uq_check_ins_open_per_student', table_name='check_ins')
    op.drop_index('idx_check_ins_classroom_open', table_name='check_ins')
    op.drop_index('ix_check_ins_student_id', table_name='check_ins')
    op.drop_table('check_ins')

    op.drop_index('ix_destinations_classroom_id', table_name='destinations')
    op.drop_table('destinations')

    op.drop_index('ix_classroom_students_classroom_id', table_name='classroom_students')
    op.drop_index('ix_classroom_students_student_id', table_name='classroom_students')
    op.drop_table('classroom_students')

    op.drop_index('ix_classrooms_teacher_id', table_name='classrooms')
    op.drop_table('classrooms')
