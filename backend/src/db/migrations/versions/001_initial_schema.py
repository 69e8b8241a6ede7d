"""Initial EventFlow schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-01-12

Creates the attendees, events and settings tables:
- attendees: registered people and their check-in state
- events: agenda items with running order (cue_order) and lifecycle status
- settings: key/value runtime settings (forum name)
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column():
    # Native UUID on PostgreSQL, 16 raw bytes elsewhere (matches UUIDType)
    if op.get_bind().dialect.name == 'postgresql':
        return sa.Column('uuid', postgresql.UUID(as_uuid=True), nullable=False)
    return sa.Column('uuid', sa.LargeBinary(16), nullable=False)


def upgrade() -> None:
    """Create attendees, events and settings tables."""

    # =========================================================================
    # attendees
    # =========================================================================
    op.create_table(
        'attendees',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _uuid_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('company', sa.String(255), nullable=True),
        sa.Column('checked_in', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('check_in_time', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_attendees_uuid', 'attendees', ['uuid'], unique=True)
    op.create_index('ix_attendees_email', 'attendees', ['email'], unique=True)
    op.create_index('ix_attendees_created_at', 'attendees', ['created_at'])

    # =========================================================================
    # events
    # =========================================================================
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _uuid_column(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('presenter', sa.String(255), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('status', sa.String(50), nullable=False, server_default='scheduled'),
        sa.Column('cue_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_events_uuid', 'events', ['uuid'], unique=True)
    op.create_index('ix_events_cue_order', 'events', ['cue_order'])
    op.create_index('idx_events_location_status', 'events', ['location', 'status'])

    # =========================================================================
    # settings
    # =========================================================================
    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False, server_default=''),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_settings_key', 'settings', ['key'], unique=True)


def downgrade() -> None:
    """Drop all EventFlow tables."""
    op.drop_index('ix_settings_key', table_name='settings')
    op.drop_table('settings')

    op.drop_index('idx_events_location_status', table_name='events')
    op.drop_index('ix_events_cue_order', table_name='events')
    op.drop_index('ix_events_uuid', table_name='events')
    op.drop_table('events')

    op.drop_index('ix_attendees_created_at', table_name='attendees')
    op.drop_index('ix_attendees_email', table_name='attendees')
    op.drop_index('ix_attendees_uuid', table_name='attendees')
    op.drop_table('attendees')
