"""Create activity stats rollup and view tables

Revision ID: s001_create_stats_tables
Revises:
Create Date: 2026-01-12

This migration creates the tables owned by the stats service:
- activity_views: append-only view log
- host_metrics / activity_metrics: current-state rollups
- attendee_relationships: per host/attendee history
- host_daily_snapshots / host_monthly_snapshots: period snapshots

The activities and bookings ledger tables belong to the listing and booking
systems and are not created here.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 's001_create_stats_tables'
down_revision = None
branch_labels = None
depends_on = None


def _count(name):
    return sa.Column(name, sa.Integer(), nullable=False, server_default=sa.text('0'))


def _amount(name):
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default=sa.text('0'))


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # View log
    op.create_table(
        'activity_views',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('activity_id', sa.String(), sa.ForeignKey('activities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('viewer_id', sa.String(), nullable=True),  # Null for anonymous visitors
        sa.Column('source', sa.String(50), nullable=True),
        sa.Column('device_type', sa.String(20), nullable=True),
        sa.Column('viewed_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_activity_views_activity_id', 'activity_views', ['activity_id'])
    op.create_index('ix_activity_views_viewed_at', 'activity_views', ['viewed_at'])
    op.create_index('ix_activity_views_activity_viewer', 'activity_views', ['activity_id', 'viewer_id'])

    # Host rollup
    op.create_table(
        'host_metrics',
        sa.Column('host_id', sa.String(), primary_key=True),
        _count('total_events'),
        _count('total_events_this_month'),
        _count('total_events_this_year'),
        _count('upcoming_events'),
        _count('completed_events'),
        _count('cancelled_events'),
        _count('total_bookings'),
        _count('total_bookings_this_month'),
        _count('total_unique_attendees'),
        _count('total_unique_attendees_this_month'),
        _count('repeat_attendees'),
        _count('total_spots_offered'),
        _count('total_spots_filled'),
        _amount('average_attendance_rate'),
        _amount('average_attendees_per_event'),
        _amount('repeat_attendee_rate'),
        _amount('average_revenue_per_event'),
        _amount('booking_conversion_rate'),
        _amount('total_revenue'),
        _amount('total_revenue_this_month'),
        _amount('total_revenue_this_year'),
        _count('total_activity_views'),
        sa.Column('last_aggregated_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    # Activity rollup
    op.create_table(
        'activity_metrics',
        sa.Column('activity_id', sa.String(), sa.ForeignKey('activities.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('host_id', sa.String(), nullable=False),
        _count('total_spots'),
        _count('spots_filled'),
        _count('spots_remaining'),
        _amount('fill_rate'),
        _count('total_bookings'),
        _count('confirmed_bookings'),
        _count('cancelled_bookings'),
        _count('view_count'),
        _count('unique_viewers'),
        _amount('view_to_booking_rate'),
        _amount('total_revenue'),
        sa.Column('last_aggregated_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_activity_metrics_host_id', 'activity_metrics', ['host_id'])

    # Attendee history
    op.create_table(
        'attendee_relationships',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('host_id', sa.String(), nullable=False),
        sa.Column('attendee_id', sa.String(), nullable=False),
        _count('total_events_attended'),
        sa.Column('first_attended_at', sa.DateTime(), nullable=True),
        sa.Column('last_attended_at', sa.DateTime(), nullable=True),
        _amount('total_spent'),
        *_timestamps(),
        sa.UniqueConstraint('host_id', 'attendee_id', name='uq_attendee_relationship_host_attendee'),
    )
    op.create_index('ix_attendee_relationships_host_id', 'attendee_relationships', ['host_id'])
    op.create_index('ix_attendee_relationships_attendee_id', 'attendee_relationships', ['attendee_id'])

    # Snapshots
    op.create_table(
        'host_daily_snapshots',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('host_id', sa.String(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        _count('events_hosted'),
        _count('new_bookings'),
        _count('cancellations'),
        _amount('revenue'),
        _count('activity_views'),
        *_timestamps(),
        sa.UniqueConstraint('host_id', 'date', name='uq_host_daily_snapshot_host_date'),
    )
    op.create_index('ix_host_daily_snapshots_host_id', 'host_daily_snapshots', ['host_id'])
    op.create_index('ix_host_daily_snapshots_date', 'host_daily_snapshots', ['date'])

    op.create_table(
        'host_monthly_snapshots',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('host_id', sa.String(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        _count('events_hosted'),
        _count('total_bookings'),
        _count('unique_attendees'),
        _count('cancellations'),
        _count('total_spots_offered'),
        _count('total_spots_filled'),
        _amount('average_fill_rate'),
        _amount('total_revenue'),
        _amount('average_revenue_per_event'),
        _count('activity_views'),
        *_timestamps(),
        sa.UniqueConstraint('host_id', 'year', 'month', name='uq_host_monthly_snapshot_period'),
    )
    op.create_index('ix_host_monthly_snapshots_host_id', 'host_monthly_snapshots', ['host_id'])


def downgrade() -> None:
    op.drop_index('ix_host_monthly_snapshots_host_id', table_name='host_monthly_snapshots')
    op.drop_table('host_monthly_snapshots')

    op.drop_index('ix_host_daily_snapshots_date', table_name='host_daily_snapshots')
    op.drop_index('ix_host_daily_snapshots_host_id', table_name='host_daily_snapshots')
    op.drop_table('host_daily_snapshots')

    op.drop_index('ix_attendee_relationships_attendee_id', table_name='attendee_relationships')
    op.drop_index('ix_attendee_relationships_host_id', table_name='attendee_relationships')
    op.drop_table('attendee_relationships')

    op.drop_index('ix_activity_metrics_host_id', table_name='activity_metrics')
    op.drop_table('activity_metrics')

    op.drop_table('host_metrics')

    op.drop_index('ix_activity_views_activity_viewer', table_name='activity_views')
    op.drop_index('ix_activity_views_viewed_at', table_name='activity_views')
    op.drop_index('ix_activity_views_activity_id', table_name='activity_views')
    op.drop_table('activity_views')
