"""Initial schema: users, counselors, courses, leads, sessions, presence.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

Creates:
- users
- counselor_profiles (capacity check, load indexes)
- courses
- leads
- counseling_sessions
- counselor_presence (1:1 with counselor_profiles)
- daily_attendance (unique per counselor per day)
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==========================================================================
    # users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('token_version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    # ==========================================================================
    # counselor_profiles
    # ==========================================================================
    op.create_table(
        'counselor_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('mobile', sa.String(50), nullable=True),
        sa.Column('expertise', sa.JSON(), nullable=False),
        sa.Column('languages', sa.JSON(), nullable=False),
        sa.Column('availability', sa.String(20), nullable=False),
        sa.Column('max_capacity', sa.Integer(), nullable=False),
        sa.Column('current_load', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.CheckConstraint('max_capacity >= 1', name='ck_counselor_max_capacity'),
    )
    op.create_index('idx_counselor_profiles_availability', 'counselor_profiles', ['availability'])
    op.create_index('idx_counselor_profiles_current_load', 'counselor_profiles', ['current_load'])

    # ==========================================================================
    # courses
    # ==========================================================================
    op.create_table(
        'courses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    # ==========================================================================
    # leads
    # ==========================================================================
    op.create_table(
        'leads',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('lead_number', sa.String(30), nullable=False),
        sa.Column('student_name', sa.String(255), nullable=False),
        sa.Column('parent_name', sa.String(255), nullable=True),
        sa.Column('parent_email', sa.String(255), nullable=True),
        sa.Column('parent_mobile', sa.String(50), nullable=True),
        sa.Column('preferred_language', sa.String(50), nullable=False),
        sa.Column('course_id', sa.Uuid(), nullable=False),
        sa.Column('assigned_counselor_id', sa.Uuid(), nullable=True),
        sa.Column('auto_assigned', sa.Boolean(), nullable=False),
        sa.Column('assignment_reason', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(
            ['assigned_counselor_id'], ['counselor_profiles.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('lead_number'),
    )
    op.create_index(
        'idx_leads_assigned_counselor_status', 'leads', ['assigned_counselor_id', 'status']
    )
    op.create_index('idx_leads_status_submitted', 'leads', ['status', 'submitted_at'])

    # ==========================================================================
    # counseling_sessions
    # ==========================================================================
    op.create_table(
        'counseling_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('lead_id', sa.Uuid(), nullable=False),
        sa.Column('counselor_id', sa.Uuid(), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('mode', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['counselor_id'], ['counselor_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_counseling_sessions_counselor_status', 'counseling_sessions', ['counselor_id', 'status']
    )
    op.create_index('idx_counseling_sessions_lead', 'counseling_sessions', ['lead_id'])

    # ==========================================================================
    # counselor_presence
    # ==========================================================================
    op.create_table(
        'counselor_presence',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('counselor_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_status_change', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active_minutes_today', sa.Integer(), nullable=False),
        sa.Column('total_active_minutes', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['counselor_id'], ['counselor_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('counselor_id'),
    )
    op.create_index('idx_counselor_presence_status', 'counselor_presence', ['status'])
    op.create_index(
        'idx_counselor_presence_last_activity', 'counselor_presence', ['last_activity_at']
    )

    # ==========================================================================
    # daily_attendance
    # ==========================================================================
    op.create_table(
        'daily_attendance',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('counselor_id', sa.Uuid(), nullable=False),
        sa.Column('presence_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('login_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('logout_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.ForeignKeyConstraint(['counselor_id'], ['counselor_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['presence_id'], ['counselor_presence.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('counselor_id', 'date', name='uq_daily_attendance_counselor_date'),
    )
    op.create_index('idx_daily_attendance_date', 'daily_attendance', ['date'])
    op.create_index('idx_daily_attendance_status', 'daily_attendance', ['status'])


def downgrade() -> None:
    op.drop_table('daily_attendance')
    op.drop_table('counselor_presence')
    op.drop_table('counseling_sessions')
    op.drop_table('leads')
    op.drop_table('courses')
    op.drop_table('counselor_profiles')
    op.drop_table('users')
